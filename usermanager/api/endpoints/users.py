"""
User Management Endpoints for User Management API
CRUD, listing and statistics over managed users.

Every route is bearer-protected; all but get-by-id require the admin role.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from usermanager.api.responses import success_response
from usermanager.dependencies import (
    RequestValidator,
    get_current_principal,
    get_db,
    require_admin,
)
from usermanager.models.user import (
    DeletedUser,
    UserCreate,
    UserListQuery,
    UserResponse,
    UserSummary,
    UserUpdate,
)
from usermanager.security.permissions import Principal
from usermanager.services.users import EmailConflictError, UserNotFoundError, user_service
from usermanager.utils.logging import security_logger
from usermanager.validation.rulesets import CREATE_USER, PAGINATION, UPDATE_USER, USER_ID

logger = structlog.get_logger(__name__)
router = APIRouter()


def _internal_error(action: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Internal server error while {action}"
    )


@router.get("/stats")
async def get_user_stats(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Age overview and age-bucket histogram across all users.
    """
    try:
        stats = await user_service.get_stats(db)

        return success_response(
            "User statistics retrieved successfully",
            {
                "overview": stats["overview"],
                "ageDistribution": stats["age_distribution"],
            },
        )

    except Exception as e:
        logger.error("Failed to retrieve user statistics", admin_id=str(principal.id), error=str(e))
        raise _internal_error("retrieving user statistics")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    principal: Principal = Depends(require_admin),
    values: dict = Depends(RequestValidator(CREATE_USER)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a user; the email must not be in use.
    """
    try:
        user = await user_service.create_user(UserCreate(**values), db)

        security_logger.log_data_access(
            user_id=str(principal.id),
            resource_type="user",
            resource_id=str(user.id),
            action="create",
        )

        return success_response(
            "User created successfully",
            {"user": UserResponse.model_validate(user)},
            status_code=status.HTTP_201_CREATED,
        )

    except EmailConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error("Failed to create user", admin_id=str(principal.id), error=str(e))
        raise _internal_error("creating user")


@router.get("")
async def list_users(
    principal: Principal = Depends(require_admin),
    values: dict = Depends(RequestValidator(PAGINATION)),
    db: AsyncSession = Depends(get_db)
):
    """
    Page through users with optional age range, free-text search and sorting.
    """
    query = UserListQuery(
        page=values.get("page", 1),
        limit=values.get("limit", 10),
        age_min=values.get("ageMin"),
        age_max=values.get("ageMax"),
        search=values.get("search"),
        sort_by=values.get("sortBy", "createdAt"),
        sort_order=values.get("sortOrder", "desc"),
    )

    try:
        users, total = await user_service.list_users(query, db)

        return success_response(
            "Users retrieved successfully",
            {
                "users": [UserSummary.model_validate(user) for user in users],
                "pagination": user_service.pagination(query, total),
                "filters": {
                    "ageMin": query.age_min,
                    "ageMax": query.age_max,
                    "search": query.search,
                    "sortBy": query.sort_by,
                    "sortOrder": query.sort_order,
                },
            },
        )

    except Exception as e:
        logger.error("Failed to retrieve users", admin_id=str(principal.id), error=str(e))
        raise _internal_error("retrieving users")


@router.get("/{id}")
async def get_user_by_id(
    principal: Principal = Depends(get_current_principal),
    values: dict = Depends(RequestValidator(USER_ID)),
    db: AsyncSession = Depends(get_db)
):
    """
    Fetch one user including its age category.
    """
    try:
        user = await user_service.get_user(values["id"], db)

        return success_response(
            "User retrieved successfully",
            {"user": UserResponse.model_validate(user)},
        )

    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error("Failed to retrieve user", user_id=str(values["id"]), error=str(e))
        raise _internal_error("retrieving user")


@router.put("/{id}")
async def update_user(
    principal: Principal = Depends(require_admin),
    values: dict = Depends(RequestValidator(USER_ID + UPDATE_USER)),
    db: AsyncSession = Depends(get_db)
):
    """
    Partially update a user; omitted fields keep their values.
    """
    user_id = values.pop("id")

    try:
        user = await user_service.update_user(user_id, UserUpdate(**values), db)

        security_logger.log_data_access(
            user_id=str(principal.id),
            resource_type="user",
            resource_id=str(user.id),
            action="update",
            details={"fields": sorted(values)},
        )

        return success_response(
            "User updated successfully",
            {"user": UserResponse.model_validate(user)},
        )

    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except EmailConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error("Failed to update user", user_id=str(user_id), error=str(e))
        raise _internal_error("updating user")


@router.delete("/{id}")
async def delete_user(
    principal: Principal = Depends(require_admin),
    values: dict = Depends(RequestValidator(USER_ID)),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a user and return a short summary of it.
    """
    try:
        user = await user_service.delete_user(values["id"], db)

        security_logger.log_data_access(
            user_id=str(principal.id),
            resource_type="user",
            resource_id=str(user.id),
            action="delete",
        )

        return success_response(
            "User deleted successfully",
            {"deletedUser": DeletedUser.model_validate(user)},
        )

    except UserNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error("Failed to delete user", user_id=str(values["id"]), error=str(e))
        raise _internal_error("deleting user")
