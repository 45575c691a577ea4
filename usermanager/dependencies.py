"""
Dependency Injection for User Management API
Provides database sessions, authentication, authorization and request
validation dependencies.

Route parameters are resolved in declaration order, so routes list the
auth dependency before the validator: an unauthenticated request is
rejected before any validation error is reported.
"""

import json
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from usermanager.models.admin import Role
from usermanager.models.database import get_async_session
from usermanager.security.permissions import Principal, allows
from usermanager.services.auth import auth_service
from usermanager.services.tokens import TokenExpired, TokenInvalid, token_service
from usermanager.utils.logging import security_logger
from usermanager.validation.rules import BODY, PATH, QUERY, RuleSet

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)

MISSING_TOKEN_MESSAGE = "Access token is required"
EXPIRED_TOKEN_MESSAGE = "Token has expired"
INVALID_TOKEN_MESSAGE = "Invalid token"
UNKNOWN_PRINCIPAL_MESSAGE = "Invalid token or user no longer exists"
FORBIDDEN_MESSAGE = "Access denied. Insufficient permissions."


class ValidationFailed(HTTPException):
    """400 carrying the full ordered list of field errors."""

    def __init__(self, errors: list, message: str = "Validation failed"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
        self.errors = errors


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session dependency.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """
    Resolve the bearer token to an active administrator.

    Returns:
        Principal: Identity of the caller

    Raises:
        HTTPException: 401 if the token is missing, expired, invalid or
            belongs to an unknown or inactive administrator
    """
    if not credentials or credentials.scheme != "Bearer" or not credentials.credentials:
        raise _unauthorized(MISSING_TOKEN_MESSAGE)

    try:
        admin_id = token_service.verify(credentials.credentials)
    except TokenExpired:
        security_logger.log_authentication_attempt(
            reason="token_expired", ip_address=get_client_ip(request)
        )
        raise _unauthorized(EXPIRED_TOKEN_MESSAGE)
    except TokenInvalid:
        security_logger.log_authentication_attempt(
            reason="token_invalid", ip_address=get_client_ip(request)
        )
        raise _unauthorized(INVALID_TOKEN_MESSAGE)

    admin = await auth_service.get_active_admin(admin_id, db)
    if admin is None:
        security_logger.log_authentication_attempt(
            user_id=str(admin_id), reason="principal_not_found", ip_address=get_client_ip(request)
        )
        raise _unauthorized(UNKNOWN_PRINCIPAL_MESSAGE)

    return Principal(id=admin.id, email=admin.email, role=admin.role)


def require_roles(*roles: Role):
    """
    Build a dependency that admits only principals holding one of `roles`.

    Authentication always runs first; unauthenticated callers never reach
    the role check.
    """
    required = frozenset(roles)

    async def role_guard(
        request: Request,
        principal: Principal = Depends(get_current_principal)
    ) -> Principal:
        if not allows(principal.role, required):
            security_logger.log_authorization_failure(
                user_id=str(principal.id),
                role=principal.role.value,
                required_roles=[role.value for role in required],
                resource=request.url.path,
                action=request.method,
                ip_address=get_client_ip(request),
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_MESSAGE)
        return principal

    return role_guard


require_admin = require_roles(Role.ADMIN)


class RequestValidator:
    """
    Dependency running a rule set over the path, query and JSON body.

    Returns the cleaned values of every present field; raises
    ValidationFailed with all violations otherwise.
    """

    def __init__(self, rules: RuleSet):
        self.rules = rules

    async def __call__(self, request: Request) -> Dict[str, Any]:
        sources: Dict[str, Dict[str, Any]] = {
            PATH: dict(request.path_params),
            QUERY: dict(request.query_params),
        }
        if BODY in self.rules.locations:
            sources[BODY] = await self._read_body(request)

        result = self.rules.validate(sources)
        if not result.is_valid:
            raise ValidationFailed([error.as_dict() for error in result.errors])
        return result.values

    @staticmethod
    async def _read_body(request: Request) -> Dict[str, Any]:
        # A missing or non-object body validates like an empty one
        raw = await request.body()
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        str: Client IP address
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"
