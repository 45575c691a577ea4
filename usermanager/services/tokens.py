"""
Token Service for User Management API
Issues and verifies signed, time-limited access tokens (JWT).
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
import structlog

from usermanager.config.settings import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

ACCESS_TOKEN_TYPE = "access"


class TokenError(Exception):
    """Base class for token verification failures."""
    pass


class TokenExpired(TokenError):
    """The token was well formed but its expiration has passed."""
    pass


class TokenInvalid(TokenError):
    """Bad signature, malformed structure or unexpected claims."""
    pass


class TokenService:
    """
    Stateless JWT issuer/verifier over a shared signing secret.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        expire_minutes: Optional[int] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.expire_minutes = expire_minutes or settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
        self.audience = audience or settings.JWT_AUDIENCE
        self.issuer = issuer or settings.JWT_ISSUER

    @property
    def expires_in(self) -> int:
        """Default token lifetime in seconds."""
        return self.expire_minutes * 60

    def issue(self, principal: Any, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed access token for a principal.

        Args:
            principal: Object exposing `id`, `email` and `role`
            expires_delta: Lifetime override

        Returns:
            str: Encoded JWT
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else timedelta(minutes=self.expire_minutes))

        role = getattr(principal.role, "value", principal.role)
        payload: Dict[str, Any] = {
            "sub": str(principal.id),
            "email": principal.email,
            "role": role,
            "type": ACCESS_TOKEN_TYPE,
            "iat": now,
            "exp": expire,
            "aud": self.audience,
            "iss": self.issuer,
        }

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> uuid.UUID:
        """
        Verify a token and return the principal id it was issued for.

        Raises:
            TokenExpired: If the token's expiration has passed
            TokenInvalid: If the signature, structure or claims are wrong
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired("Token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.debug("Token rejected", error=str(e))
            raise TokenInvalid("Invalid token") from e

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise TokenInvalid("Invalid token type")

        try:
            return uuid.UUID(payload["sub"])
        except (TypeError, ValueError) as e:
            raise TokenInvalid("Invalid token subject") from e


# Global token service instance
token_service = TokenService()
