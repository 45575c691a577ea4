"""
Authentication Endpoints for User Management API
Administrator registration, login and profile.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from usermanager.api.responses import success_response
from usermanager.dependencies import (
    RequestValidator,
    get_client_ip,
    get_current_principal,
    get_db,
)
from usermanager.models.admin import AdminCreate, AdminResponse
from usermanager.security.permissions import Principal
from usermanager.services.auth import AdminConflictError, AuthenticationError, auth_service
from usermanager.utils.logging import security_logger
from usermanager.validation.rulesets import LOGIN, REGISTER

logger = structlog.get_logger(__name__)

router = APIRouter()


def _session_payload(admin, token: str) -> dict:
    return {
        "admin": AdminResponse.model_validate(admin),
        "token": token,
        "tokenType": "bearer",
        "expiresIn": auth_service.tokens.expires_in,
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    values: dict = Depends(RequestValidator(REGISTER)),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new administrator and return its first access token.
    """
    try:
        admin, token = await auth_service.register_admin(AdminCreate(**values), db)

        return success_response(
            "Admin registered successfully",
            _session_payload(admin, token),
            status_code=status.HTTP_201_CREATED,
        )

    except AdminConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Registration failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during registration"
        )


@router.post("/login")
async def login(
    http_request: Request,
    values: dict = Depends(RequestValidator(LOGIN)),
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate an administrator and return an access token.
    """
    try:
        admin, token = await auth_service.authenticate_admin(values["email"], values["password"], db)

        security_logger.log_authentication_attempt(
            user_id=str(admin.id),
            email=admin.email,
            success=True,
            ip_address=get_client_ip(http_request),
        )

        return success_response("Login successful", _session_payload(admin, token))

    except AuthenticationError as e:
        security_logger.log_authentication_attempt(
            email=values["email"],
            success=False,
            reason=str(e),
            ip_address=get_client_ip(http_request),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Login failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during login"
        )


@router.get("/profile")
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Return the authenticated administrator.
    """
    try:
        admin = await auth_service.get_active_admin(principal.id, db)
        if admin is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")

        return success_response(
            "Profile retrieved successfully",
            {"admin": AdminResponse.model_validate(admin)},
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to retrieve profile", admin_id=str(principal.id), error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error while retrieving profile"
        )
