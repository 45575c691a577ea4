"""
API Router for User Management API
Mounted by the application under `API_PREFIX`.
"""

from fastapi import APIRouter

from usermanager.api.endpoints import auth, users

api_router = APIRouter()

api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["authentication"]
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)
