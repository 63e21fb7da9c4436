"""SyncScript — collaborative research vaults.

Users collect sources (links, notes, files) into shared vaults,
invite collaborators with a role, and see each other's additions
in real time.
"""

__version__ = "2.0.0"
