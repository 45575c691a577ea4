"""
Role-based access policy.
"""

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from usermanager.models.admin import Role


@dataclass(frozen=True)
class Principal:
    """Identity of the authenticated administrator for one request."""
    id: UUID
    email: str
    role: Role


def allows(role: Role, required_roles: Iterable[Role]) -> bool:
    """True when `role` is one of `required_roles`."""
    return Role(role) in {Role(required) for required in required_roles}
