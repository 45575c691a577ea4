"""
Administrator Model for User Management API
Credential records used to authenticate against the API.

Administrators are created by registration and never deleted; `is_active`
may be switched off externally to revoke access without touching tokens.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import bcrypt
from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import (
    Column, String, Boolean, DateTime, Uuid, Enum as SQLEnum,
    Index, CheckConstraint
)

from usermanager.models.database import Base
from usermanager.config.settings import get_settings

settings = get_settings()

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


class Role(str, Enum):
    """Administrator role enumeration."""
    ADMIN = "admin"
    USER = "user"


class Admin(Base):
    """
    Administrator credential: identity, bcrypt hash, role and active flag.
    """
    __tablename__ = "admins"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
        comment="Unique administrator identifier"
    )

    username = Column(
        String(30),
        nullable=False,
        comment="Display username"
    )

    email = Column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Administrator email address (unique, lowercase)"
    )

    password_hash = Column(
        String(60),  # bcrypt hash length
        nullable=False,
        comment="bcrypt password hash"
    )

    role = Column(
        SQLEnum(Role, name="admin_role", values_callable=lambda roles: [r.value for r in roles]),
        default=Role.ADMIN,
        nullable=False,
        comment="Authorization role"
    )

    is_active = Column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
        comment="Account active status"
    )

    last_login_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful login timestamp"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="Account creation timestamp"
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="Last update timestamp"
    )

    __table_args__ = (
        Index("ix_admins_email_active", "email", "is_active"),
        CheckConstraint("length(email) > 0", name="email_not_empty"),
        CheckConstraint("length(username) >= 3", name="username_length"),
        {"comment": "Administrator credentials"}
    )

    def set_password(self, password: str) -> None:
        """
        Hash and store a password with bcrypt.

        Args:
            password: Plain text password to hash
        """
        salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
        hashed = bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], salt)
        self.password_hash = hashed.decode("utf-8")

    def verify_password(self, password: str) -> bool:
        """
        Verify password against stored hash.

        Args:
            password: Plain text password to verify

        Returns:
            bool: True if password matches
        """
        if not self.password_hash:
            return False

        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            self.password_hash.encode("utf-8")
        )

    def mark_login(self) -> None:
        self.last_login_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<Admin(id={self.id}, email={self.email}, role={self.role}, active={self.is_active})>"


# Pydantic models for API
class AdminCreate(BaseModel):
    """Validated registration payload."""
    username: str
    email: str
    password: str
    role: Role = Role.ADMIN


class AdminResponse(BaseModel):
    """Administrator as exposed by the auth endpoints."""
    model_config = ConfigDict(from_attributes=True, alias_generator=AliasGenerator(serialization_alias=to_camel))

    id: uuid.UUID
    username: str
    email: str
    role: Role
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
