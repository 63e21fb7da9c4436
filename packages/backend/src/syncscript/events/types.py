"""Event and audit action constants.

Centralizing names as constants prevents typos and makes it easy to
discover everything the system records or broadcasts.
"""

# ─── Audit log actions ───────────────────────────────────

VAULT_CREATED = "VAULT_CREATED"
SOURCE_ADDED = "SOURCE_ADDED"
MEMBER_ADDED = "MEMBER_ADDED"

# ─── Audit resource types ────────────────────────────────

RESOURCE_VAULT = "vault"
RESOURCE_SOURCE = "source"
RESOURCE_USER = "user"

# ─── Socket.IO events (server → client) ──────────────────

EVENT_VAULT_CREATED = "vault:created"
EVENT_SOURCE_ADDED = "source:added"
EVENT_NOTIFICATION = "notification"

NOTIFICATION_COLLABORATION = "COLLABORATION"
