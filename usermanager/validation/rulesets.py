"""
Rule sets for every validated operation.

Messages are part of the API contract; clients match on them.
"""

from usermanager.models.admin import Role
from usermanager.validation.rules import (
    PATH,
    QUERY,
    FieldRules,
    Rule,
    RuleSet,
    blank_to_none,
    int_at_most,
    int_between,
    is_email,
    is_uuid,
    length_between,
    matches,
    normalize_email,
    not_empty,
    one_of,
    to_int,
    to_uuid,
    trim,
)

SORT_FIELDS = ("name", "email", "age", "createdAt")
SORT_ORDERS = ("asc", "desc")

MIN_AGE = 0
MAX_AGE = 150
MAX_PAGE = 1_000_000


def _email(optional: bool = False) -> FieldRules:
    return FieldRules(
        "email",
        (Rule(is_email, "Please provide a valid email address"),),
        optional=optional,
        sanitize=trim,
        convert=normalize_email,
    )


def _name(optional: bool = False) -> FieldRules:
    return FieldRules(
        "name",
        (
            Rule(length_between(2, 50), "Name must be between 2 and 50 characters"),
            Rule(matches(r"^[A-Za-z\s]+$"), "Name can only contain letters and spaces"),
        ),
        optional=optional,
        sanitize=trim,
    )


def _age() -> FieldRules:
    return FieldRules(
        "age",
        (Rule(int_between(MIN_AGE, MAX_AGE), "Age must be a number between 0 and 150"),),
        optional=True,
        convert=to_int,
    )


REGISTER = RuleSet(
    FieldRules(
        "username",
        (
            Rule(length_between(3, 30), "Username must be between 3 and 30 characters"),
            Rule(matches(r"^[A-Za-z0-9_]+$"), "Username can only contain letters, numbers, and underscores"),
        ),
        sanitize=trim,
    ),
    _email(),
    FieldRules(
        "password",
        (
            Rule(length_between(6), "Password must be at least 6 characters long"),
            Rule(
                matches(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)"),
                "Password must contain at least one lowercase letter, one uppercase letter, and one number",
            ),
        ),
    ),
    FieldRules(
        "role",
        (Rule(one_of([role.value for role in Role]), "Role must be either admin or user"),),
        optional=True,
        convert=Role,
    ),
)

LOGIN = RuleSet(
    _email(),
    FieldRules("password", (Rule(not_empty, "Password is required"),)),
)

CREATE_USER = RuleSet(_name(), _email(), _age())

UPDATE_USER = RuleSet(_name(optional=True), _email(optional=True), _age())

USER_ID = RuleSet(
    FieldRules(
        "id",
        (Rule(is_uuid, "Invalid user ID format"),),
        location=PATH,
        convert=to_uuid,
    ),
)

PAGINATION = RuleSet(
    FieldRules(
        "page",
        (
            Rule(int_between(1), "Page must be a positive integer"),
            Rule(int_at_most(MAX_PAGE), "Page must not exceed 1000000"),
        ),
        location=QUERY, optional=True, convert=to_int,
    ),
    FieldRules(
        "limit",
        (Rule(int_between(1, 100), "Limit must be between 1 and 100"),),
        location=QUERY, optional=True, convert=to_int,
    ),
    FieldRules(
        "ageMin",
        (Rule(int_between(MIN_AGE, MAX_AGE), "Minimum age must be between 0 and 150"),),
        location=QUERY, optional=True, convert=to_int,
    ),
    FieldRules(
        "ageMax",
        (Rule(int_between(MIN_AGE, MAX_AGE), "Maximum age must be between 0 and 150"),),
        location=QUERY, optional=True, convert=to_int,
    ),
    FieldRules(
        "sortBy",
        (Rule(one_of(SORT_FIELDS), "Sort field must be one of: name, email, age, createdAt"),),
        location=QUERY, optional=True,
    ),
    FieldRules(
        "sortOrder",
        (Rule(one_of(SORT_ORDERS), "Sort order must be either asc or desc"),),
        location=QUERY, optional=True,
    ),
    FieldRules("search", location=QUERY, optional=True, sanitize=blank_to_none),
)
