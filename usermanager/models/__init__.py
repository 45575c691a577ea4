"""
Models package for User Management API
Exports all database models for easy importing.
"""

from usermanager.models.database import Base, get_async_session, init_database, close_database
from usermanager.models.admin import Admin, AdminCreate, AdminResponse, Role
from usermanager.models.user import (
    User, UserCreate, UserUpdate, UserSummary, UserResponse, DeletedUser,
    UserListQuery, AgeCategory, AgeOverview, AgeBucket, age_category, age_bucket,
)

__all__ = [
    # Database
    "Base",
    "get_async_session",
    "init_database",
    "close_database",

    # Credential models
    "Admin",
    "AdminCreate",
    "AdminResponse",
    "Role",

    # User models
    "User",
    "UserCreate",
    "UserUpdate",
    "UserSummary",
    "UserResponse",
    "DeletedUser",
    "UserListQuery",
    "AgeCategory",
    "AgeOverview",
    "AgeBucket",
    "age_category",
    "age_bucket",
]
