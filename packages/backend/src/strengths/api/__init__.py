"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a blanket auth dependency at include_router level, auth here
is per-route: /entries needs a bearer token (except the guest read),
/community-entries is deliberately open, and /auth mixes both.
"""

from fastapi import APIRouter

from strengths.api.auth import router as auth_router
from strengths.api.community import router as community_router
from strengths.api.entries import router as entries_router
from strengths.api.health import router as health_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(entries_router, tags=["entries"])
api_router.include_router(community_router, tags=["community"])
