"""Authentication and authorization.

Two layers:
1. Identity — email/password → bcrypt-verified user → JWT bearer token
2. Vault RBAC — the caller's vault_members row decides what they may do
   (OWNER > CONTRIBUTOR > VIEWER)
"""
