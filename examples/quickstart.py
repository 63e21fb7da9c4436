#!/usr/bin/env python3
"""
SyncScript Quickstart — a vault's full lifecycle in one script.

Registers two researchers → creates a vault → adds sources of each kind →
invites a collaborator → checks what each role may do → reads the audit log.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:3000 (or set SYNCSCRIPT_API_URL)
"""

from _common import check_backend, create_user, data


def main():
    check_backend()

    print("\n1. Registering researchers...")
    owner = create_user("Ada")
    viewer = create_user("Grace")
    client = owner["client"]

    print("\n2. Creating vault...")
    vault = data(client.post("/vaults", json={"name": "Thesis research"}), 201)
    print(f"   Vault #{vault['id']}: {vault['name']} (you are {vault['role']})")
    sources_url = f"/vaults/{vault['id']}/sources"
    members_url = f"/vaults/{vault['id']}/members"

    print("\n3. Adding sources...")
    link = data(client.post(sources_url, json={
        "title": "Attention Is All You Need",
        "type": "url",
        "url": "https://arxiv.org/abs/1706.03762",
    }), 201)
    print(f"   [{link['type']}] {link['title']}")

    note = data(client.post(sources_url, json={
        "title": "Reading notes",
        "type": "note",
        "content": "Compare positional encodings with the RNN baseline.",
    }), 201)
    print(f"   [{note['type']}] {note['title']}")

    upload = data(client.post(
        sources_url,
        data={"title": "Outline", "type": "file"},
        files={"file": ("outline.txt", b"1. Intro\n2. Method\n3. Results\n", "text/plain")},
    ), 201)
    print(f"   [{upload['type']}] {upload['title']} → {upload['content']} ({upload['size']} bytes)")

    print("\n4. Inviting a viewer...")
    invite = {"email": viewer["user"]["email"], "role": "VIEWER"}
    print(f"   {data(client.post(members_url, json=invite), 201)}")

    members = data(client.get(members_url))
    for m in members:
        print(f"   {m['name']:<8} {m['role']}")

    print("\n5. Checking viewer permissions...")
    listing = data(viewer["client"].get(sources_url))
    print(f"   Viewer sees {len(listing)} sources")
    resp = viewer["client"].post(sources_url, json={"title": "Nope", "url": "https://example.com"})
    print(f"   Viewer adding a source → {resp.status_code} {resp.json()['error']}")

    resp = viewer["client"].get(f"/sources/{upload['id']}/download")
    print(f"   Viewer downloads the outline → {resp.status_code}, {len(resp.content)} bytes")

    print("\n6. Audit log (owner only)...")
    for entry in data(client.get(f"/vaults/{vault['id']}/audit")):
        print(f"   {entry['createdAt']}  {entry['action']:<14} by {entry['user']}")

    print("\nDone.")


if __name__ == "__main__":
    main()
