"""API route aggregation.

All routers registered here get mounted in main.py. Paths are served
from the root (/auth, /vaults, /sources) because existing clients call
them there. Authentication and role checks are per-route dependencies;
the banner, health and auth routes are open.
"""

from fastapi import APIRouter

from syncscript.api.auth import router as auth_router
from syncscript.api.health import router as health_router
from syncscript.api.sources import router as sources_router
from syncscript.api.vaults import router as vaults_router

api_router = APIRouter()

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: bearer token + vault role per route
api_router.include_router(vaults_router, tags=["vaults", "members", "audit"])
api_router.include_router(sources_router, tags=["sources"])
