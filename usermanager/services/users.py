"""
User Service for User Management API
CRUD, filtered listing and statistics over the User resource.
"""

import math
import uuid
from typing import Any, Dict, List, Tuple

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from usermanager.models.user import (
    AGE_BUCKET_BOUNDARIES,
    AGE_BUCKET_DEFAULT,
    AgeBucket,
    AgeOverview,
    BucketMember,
    User,
    UserCreate,
    UserListQuery,
    UserUpdate,
    age_bucket,
)

logger = structlog.get_logger(__name__)

SORT_COLUMNS = {
    "name": User.name,
    "email": User.email,
    "age": User.age,
    "createdAt": User.created_at,
}


class UserNotFoundError(Exception):
    """No user exists with the requested id."""
    pass


class EmailConflictError(Exception):
    """Another user already owns the email address."""
    pass


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserService:
    """
    Business logic for managed users. Emails arrive already normalized.
    """

    async def create_user(self, user_data: UserCreate, db: AsyncSession) -> User:
        """
        Persist a new user.

        Raises:
            EmailConflictError: If the email is already used
        """
        if await self._get_user_by_email(user_data.email, db):
            raise EmailConflictError("User with this email already exists")

        user = User(name=user_data.name, email=user_data.email, age=user_data.age)
        db.add(user)
        await self._commit(db)
        await db.refresh(user)

        logger.info("User created", user_id=str(user.id))
        return user

    async def get_user(self, user_id: uuid.UUID, db: AsyncSession) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        return user

    async def update_user(self, user_id: uuid.UUID, changes: UserUpdate, db: AsyncSession) -> User:
        """
        Apply a partial update; fields not set on `changes` are left alone.

        Raises:
            UserNotFoundError: If the user does not exist
            EmailConflictError: If the new email belongs to another user
        """
        user = await self.get_user(user_id, db)
        updates = changes.model_dump(exclude_unset=True)

        new_email = updates.get("email")
        if new_email and new_email != user.email:
            if await self._get_user_by_email(new_email, db):
                raise EmailConflictError("User with this email already exists")

        for field_name, value in updates.items():
            setattr(user, field_name, value)
        user.touch()

        await self._commit(db)
        await db.refresh(user)

        logger.info("User updated", user_id=str(user.id), updates=sorted(updates))
        return user

    async def delete_user(self, user_id: uuid.UUID, db: AsyncSession) -> User:
        """Remove a user and return the removed record."""
        user = await self.get_user(user_id, db)
        await db.delete(user)
        await db.commit()

        logger.info("User deleted", user_id=str(user_id))
        return user

    async def list_users(self, query: UserListQuery, db: AsyncSession) -> Tuple[List[User], int]:
        """
        Fetch one page of users plus the total under the same filter.

        Returns:
            Tuple[List[User], int]: Page of users and total matching count
        """
        conditions = self._build_filter(query)

        sort_column = SORT_COLUMNS[query.sort_by]
        ordering = sort_column.asc() if query.sort_order == "asc" else sort_column.desc()

        stmt = (
            select(User)
            .where(*conditions)
            .order_by(ordering, User.id.asc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        count_stmt = select(func.count()).select_from(User).where(*conditions)

        users = (await db.execute(stmt)).scalars().all()
        total = (await db.execute(count_stmt)).scalar_one()

        return list(users), total

    async def get_stats(self, db: AsyncSession) -> Dict[str, Any]:
        """
        Aggregate ages across all users and bucket them into a histogram.

        `totalUsers` counts every record; the age aggregates only consider
        records that have an age. Without any ages the aggregates are zero.
        """
        overview_row = (await db.execute(
            select(
                func.count(User.id).label("total_users"),
                func.avg(User.age).label("avg_age"),
                func.min(User.age).label("min_age"),
                func.max(User.age).label("max_age"),
            )
        )).one()

        overview = AgeOverview(
            total_users=overview_row.total_users or 0,
            avg_age=round(float(overview_row.avg_age), 2) if overview_row.avg_age is not None else 0,
            min_age=overview_row.min_age or 0,
            max_age=overview_row.max_age or 0,
        )

        rows = (await db.execute(
            select(User.name, User.age)
            .where(User.age.is_not(None))
            .order_by(User.age.asc(), User.name.asc())
        )).all()

        buckets: Dict[Any, AgeBucket] = {}
        for name, age in rows:
            key = age_bucket(age)
            bucket = buckets.setdefault(key, AgeBucket(bucket=key))
            bucket.count += 1
            bucket.users.append(BucketMember(name=name, age=age))

        order = list(AGE_BUCKET_BOUNDARIES[:-1]) + [AGE_BUCKET_DEFAULT]
        distribution = [buckets[key] for key in order if key in buckets]

        return {"overview": overview, "age_distribution": distribution}

    @staticmethod
    def pagination(query: UserListQuery, total: int) -> Dict[str, Any]:
        total_pages = math.ceil(total / query.limit)
        return {
            "currentPage": query.page,
            "totalPages": total_pages,
            "totalUsers": total,
            "hasNextPage": query.page < total_pages,
            "hasPrevPage": query.page > 1,
            "limit": query.limit,
        }

    def _build_filter(self, query: UserListQuery) -> list:
        conditions = []

        if query.age_min is not None:
            conditions.append(User.age >= query.age_min)
        if query.age_max is not None:
            conditions.append(User.age <= query.age_max)

        if query.search:
            pattern = f"%{escape_like(query.search)}%"
            conditions.append(or_(
                User.name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            ))

        return [and_(*conditions)] if conditions else []

    async def _get_user_by_email(self, email: str, db: AsyncSession):
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def _commit(self, db: AsyncSession) -> None:
        """Commit, mapping a unique-index violation to a conflict."""
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if "email" in str(e.orig).lower():
                raise EmailConflictError("User with this email already exists") from e
            raise


# Global user service instance
user_service = UserService()
