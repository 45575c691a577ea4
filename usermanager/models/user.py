"""
User Model for User Management API
The managed resource: a named person with a unique email and optional age.

Age categories are derived on read and never stored.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import AliasGenerator, BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel
from sqlalchemy import (
    Column, String, DateTime, Integer, Uuid,
    Index, CheckConstraint
)

from usermanager.models.database import Base

MINOR_AGE_LIMIT = 18
SENIOR_AGE_LIMIT = 65

# Lower bounds of the age histogram buckets; the last entry is exclusive
AGE_BUCKET_BOUNDARIES = (0, 18, 30, 50, 65, 150)
AGE_BUCKET_DEFAULT = "Other"


class AgeCategory(str, Enum):
    """Derived classification of a user's age."""
    MINOR = "Minor"
    ADULT = "Adult"
    SENIOR = "Senior"
    NOT_SPECIFIED = "Not specified"


def age_category(age: Optional[int]) -> AgeCategory:
    """Classify an age; a missing age is 'Not specified'."""
    if age is None:
        return AgeCategory.NOT_SPECIFIED
    if age < MINOR_AGE_LIMIT:
        return AgeCategory.MINOR
    if age < SENIOR_AGE_LIMIT:
        return AgeCategory.ADULT
    return AgeCategory.SENIOR


def age_bucket(age: int) -> Union[int, str]:
    """Return the lower boundary of the histogram bucket holding `age`."""
    for lower, upper in zip(AGE_BUCKET_BOUNDARIES, AGE_BUCKET_BOUNDARIES[1:]):
        if lower <= age < upper:
            return lower
    return AGE_BUCKET_DEFAULT


class User(Base):
    """
    Managed user resource.
    """
    __tablename__ = "users"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
        comment="Unique user identifier"
    )

    name = Column(
        String(50),
        nullable=False,
        comment="Full name (letters and spaces)"
    )

    email = Column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address (unique, lowercase)"
    )

    age = Column(
        Integer,
        nullable=True,
        index=True,
        comment="Age in years"
    )

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        comment="Creation timestamp"
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="Last update timestamp"
    )

    __table_args__ = (
        CheckConstraint("age IS NULL OR (age >= 0 AND age <= 150)", name="age_range"),
        CheckConstraint("length(name) >= 2", name="name_length"),
        Index("ix_users_age_created", "age", "created_at"),
        {"comment": "Managed user resources"}
    )

    @property
    def age_category(self) -> AgeCategory:
        return age_category(self.age)

    def touch(self) -> None:
        """Refresh `updated_at`; every successful mutation calls this."""
        self.updated_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, age={self.age})>"


# Pydantic models for API
_camel = ConfigDict(from_attributes=True, alias_generator=AliasGenerator(serialization_alias=to_camel))


class UserCreate(BaseModel):
    """Validated creation payload."""
    name: str
    email: str
    age: Optional[int] = None


class UserUpdate(BaseModel):
    """Validated partial update; only explicitly set fields are applied."""
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None


class UserSummary(BaseModel):
    """User as shown in listings (no derived fields)."""
    model_config = _camel

    id: uuid.UUID
    name: str
    email: str
    age: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class UserResponse(UserSummary):
    """Single-user view including the derived age category."""

    @computed_field(alias="ageCategory")
    @property
    def age_category(self) -> AgeCategory:
        return age_category(self.age)


class DeletedUser(BaseModel):
    """Minimal summary of a removed record."""
    model_config = _camel

    id: uuid.UUID
    name: str
    email: str


class UserListQuery(BaseModel):
    """Validated listing parameters with their defaults."""
    page: int = 1
    limit: int = 10
    age_min: Optional[int] = None
    age_max: Optional[int] = None
    search: Optional[str] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"


class AgeOverview(BaseModel):
    model_config = _camel

    total_users: int = 0
    avg_age: float = 0
    min_age: int = 0
    max_age: int = 0


class BucketMember(BaseModel):
    name: str
    age: int


class AgeBucket(BaseModel):
    bucket: Union[int, str]
    count: int = 0
    users: List[BucketMember] = []
