"""
API v1 Router

Drawer endpoints are prefixed with /drawers, user endpoints with /users.
Routers with literal path segments (``/invitations/{code}``, ``/join``,
``/search``) are included before the ``/{drawer_id}`` ones.
"""

from fastapi import APIRouter

from . import drawers, invitations, join_requests, members, users

router = APIRouter()

router.include_router(invitations.router, prefix="/drawers", tags=["Invitations"])
router.include_router(drawers.router, prefix="/drawers", tags=["Drawers"])
router.include_router(join_requests.router, prefix="/drawers", tags=["Join Requests"])
router.include_router(members.router, prefix="/drawers", tags=["Members"])
router.include_router(users.router, prefix="/users", tags=["Users"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/drawers",
            "/drawers/search",
            "/drawers/join",
            "/drawers/invitations/{code}",
            "/drawers/{drawerId}/members",
            "/drawers/{drawerId}/requests",
            "/users/auth",
        ],
    }
