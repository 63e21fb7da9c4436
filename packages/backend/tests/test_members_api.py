"""Membership API tests — inviting collaborators and listing members."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from syncscript.cache import vaults_key

from conftest import add_member, auth_headers, create_vault


@pytest.mark.asyncio
async def test_owner_adds_member(client, alice, bob):
    vault = await create_vault(client, alice["token"])
    r = await client.post(
        f"/vaults/{vault['id']}/members",
        json={"email": "bob@lab.org", "role": "CONTRIBUTOR"},
        headers=auth_headers(alice["token"]),
    )
    assert r.status_code == 201
    assert r.json() == {"success": True, "message": "User bob@lab.org added as CONTRIBUTOR"}

    listing = await client.get("/vaults", headers=auth_headers(bob["token"]))
    assert [(v["id"], v["role"]) for v in listing.json()["data"]] == [(vault["id"], "CONTRIBUTOR")]


@pytest.mark.asyncio
async def test_add_member_notifies_invitee(client, alice, bob, monkeypatch):
    vault = await create_vault(client, alice["token"], "Lab Notes")
    publish = AsyncMock()
    monkeypatch.setattr("syncscript.services.vault_service.publish_event", publish)

    await add_member(client, alice["token"], vault["id"], "bob@lab.org", "VIEWER")

    publish.assert_awaited_once()
    room, event, data = publish.await_args.args
    assert room == f"user_{bob['user']['id']}"
    assert event == "notification"
    assert data == {
        "type": "COLLABORATION",
        "message": 'You have been added to the vault "Lab Notes" as a VIEWER.',
        "vaultId": vault["id"],
        "vaultName": "Lab Notes",
    }


@pytest.mark.asyncio
async def test_add_member_validation(client, alice, bob):
    vault = await create_vault(client, alice["token"])
    url = f"/vaults/{vault['id']}/members"
    headers = auth_headers(alice["token"])

    r = await client.post(url, json={"email": "bob@lab.org"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Email and role are required"

    r = await client.post(url, json={"email": "bob@lab.org", "role": "OWNER"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid role. Use CONTRIBUTOR or VIEWER"

    r = await client.post(url, json={"email": "nobody@lab.org", "role": "VIEWER"}, headers=headers)
    assert r.status_code == 404
    assert r.json()["error"] == "User not found"


@pytest.mark.asyncio
async def test_add_member_without_body(client, alice):
    vault = await create_vault(client, alice["token"])
    r = await client.post(f"/vaults/{vault['id']}/members", headers=auth_headers(alice["token"]))
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Email and role are required"}


@pytest.mark.asyncio
async def test_add_existing_member_conflicts(client, alice, bob):
    vault = await create_vault(client, alice["token"])
    await add_member(client, alice["token"], vault["id"], "bob@lab.org", "VIEWER")

    r = await client.post(
        f"/vaults/{vault['id']}/members",
        json={"email": "bob@lab.org", "role": "CONTRIBUTOR"},
        headers=auth_headers(alice["token"]),
    )
    assert r.status_code == 409
    assert r.json()["error"] == "User is already a member of this vault"


@pytest.mark.asyncio
async def test_owner_cannot_be_re_added(client, alice):
    vault = await create_vault(client, alice["token"])
    r = await client.post(
        f"/vaults/{vault['id']}/members",
        json={"email": "alice@lab.org", "role": "VIEWER"},
        headers=auth_headers(alice["token"]),
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_only_owner_adds_members(client, shared_vault, bob, carol):
    r = await client.post(
        f"/vaults/{shared_vault['id']}/members",
        json={"email": "carol@lab.org", "role": "CONTRIBUTOR"},
        headers=auth_headers(bob["token"]),
    )
    assert r.status_code == 403
    assert r.json()["error"] == "This action requires one of these roles: OWNER"


@pytest.mark.asyncio
async def test_non_member_cannot_add(client, alice, bob):
    vault = await create_vault(client, alice["token"])
    r = await client.post(
        f"/vaults/{vault['id']}/members",
        json={"email": "bob@lab.org", "role": "VIEWER"},
        headers=auth_headers(bob["token"]),
    )
    assert r.status_code == 403
    assert r.json()["error"] == "You do not have access to this vault"


@pytest.mark.asyncio
async def test_list_members_owner_first(client, shared_vault, carol):
    r = await client.get(
        f"/vaults/{shared_vault['id']}/members",
        headers=auth_headers(carol["token"]),
    )
    assert r.status_code == 200
    members = r.json()["data"]
    assert [(m["name"], m["role"]) for m in members] == [
        ("Alice", "OWNER"),
        ("Bob", "CONTRIBUTOR"),
        ("Carol", "VIEWER"),
    ]
    assert set(members[0]) == {"userId", "name", "email", "role", "joinedAt"}


@pytest.mark.asyncio
async def test_list_members_requires_membership(client, alice, bob):
    vault = await create_vault(client, alice["token"])
    r = await client.get(f"/vaults/{vault['id']}/members", headers=auth_headers(bob["token"]))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_add_member_invalidates_invitee_vault_cache(client, alice, bob, fake_redis):
    vault = await create_vault(client, alice["token"])
    bob_headers = auth_headers(bob["token"])

    r = await client.get("/vaults", headers=bob_headers)
    assert r.json()["data"] == []
    assert vaults_key(bob["user"]["id"]) in fake_redis.store

    await add_member(client, alice["token"], vault["id"], "bob@lab.org", "VIEWER")
    assert vaults_key(bob["user"]["id"]) not in fake_redis.store

    r = await client.get("/vaults", headers=bob_headers)
    assert "_cached" not in r.json()
    assert [v["id"] for v in r.json()["data"]] == [vault["id"]]


@pytest.mark.asyncio
async def test_membership_lookup_failure_is_500(client, alice, monkeypatch):
    vault = await create_vault(client, alice["token"])
    monkeypatch.setattr(
        "syncscript.auth.rbac.get_membership",
        AsyncMock(side_effect=SQLAlchemyError("connection lost")),
    )

    r = await client.get(f"/vaults/{vault['id']}/members", headers=auth_headers(alice["token"]))
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Failed to verify permissions"}
