"""
Authentication Service for User Management API
Administrator registration, login and principal lookup.
"""

import uuid
from typing import Optional, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from usermanager.models.admin import Admin, AdminCreate
from usermanager.services.tokens import TokenService, token_service

logger = structlog.get_logger(__name__)


class AuthenticationError(Exception):
    """Authentication-related errors."""
    pass


class AdminConflictError(Exception):
    """An administrator with the given email already exists."""
    pass


class AuthService:
    """
    Administrator credential handling on top of the token service.
    """

    def __init__(self, tokens: Optional[TokenService] = None):
        self.tokens = tokens or token_service

    async def register_admin(self, admin_data: AdminCreate, db: AsyncSession) -> Tuple[Admin, str]:
        """
        Register a new administrator and issue its first token.

        Args:
            admin_data: Validated registration data (email already normalized)
            db: Database session

        Returns:
            Tuple[Admin, str]: Created administrator and access token

        Raises:
            AdminConflictError: If the email is already registered
        """
        if await self.get_admin_by_email(admin_data.email, db):
            raise AdminConflictError("Admin with this email already exists")

        admin = Admin(
            username=admin_data.username,
            email=admin_data.email,
            role=admin_data.role,
            is_active=True,
        )
        admin.set_password(admin_data.password)

        db.add(admin)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise AdminConflictError("Admin with this email already exists") from e
        await db.refresh(admin)

        logger.info(
            "Admin registered successfully",
            admin_id=str(admin.id),
            role=admin.role.value,
        )

        return admin, self.tokens.issue(admin)

    async def authenticate_admin(self, email: str, password: str, db: AsyncSession) -> Tuple[Admin, str]:
        """
        Check credentials and issue a token.

        Raises:
            AuthenticationError: If the credentials are wrong or the account is inactive
        """
        admin = await self.get_admin_by_email(email, db)

        if not admin or not admin.verify_password(password):
            raise AuthenticationError("Invalid email or password")

        if not admin.is_active:
            raise AuthenticationError("Account is deactivated")

        admin.mark_login()
        await db.commit()
        await db.refresh(admin)

        return admin, self.tokens.issue(admin)

    async def get_active_admin(self, admin_id: uuid.UUID, db: AsyncSession) -> Optional[Admin]:
        """Load an administrator that may act as a principal."""
        admin = await db.get(Admin, admin_id)
        if admin is None or not admin.is_active:
            return None
        return admin

    async def get_admin_by_email(self, email: str, db: AsyncSession) -> Optional[Admin]:
        result = await db.execute(
            select(Admin).where(Admin.email == email)
        )
        return result.scalar_one_or_none()


# Global auth service instance
auth_service = AuthService()
