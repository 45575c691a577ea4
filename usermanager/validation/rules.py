"""
Declarative request validation.

A rule set is an ordered collection of fields, each carrying an ordered
list of (predicate, message) rules. Every rule of every field is evaluated;
violations are accumulated in order and reported together.
"""

import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from email_validator import EmailNotValidError, validate_email

BODY = "body"
QUERY = "query"
PATH = "path"

INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class Rule:
    """A single predicate over one field value plus the message it reports."""
    check: Callable[[Any], bool]
    message: str

    def passes(self, value: Any) -> bool:
        try:
            return bool(self.check(value))
        except (TypeError, ValueError):
            return False


@dataclass(frozen=True)
class FieldRules:
    """
    Rules for one request field.

    `sanitize` runs before the rules (e.g. trimming); `convert` runs only
    when every rule passed and produces the value handed to the handler.
    Optional fields are skipped when absent; an explicit null is validated.
    """
    name: str
    rules: Tuple[Rule, ...] = ()
    location: str = BODY
    optional: bool = False
    sanitize: Optional[Callable[[Any], Any]] = None
    convert: Optional[Callable[[Any], Any]] = None


@dataclass
class ValidationResult:
    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class RuleSet:
    """Ordered collection of field rules for one operation."""

    def __init__(self, *fields: FieldRules):
        self.fields: Tuple[FieldRules, ...] = tuple(fields)

    def __add__(self, other: "RuleSet") -> "RuleSet":
        return RuleSet(*self.fields, *other.fields)

    @property
    def locations(self) -> set:
        return {field_rules.location for field_rules in self.fields}

    def validate(self, sources: Mapping[str, Mapping[str, Any]]) -> ValidationResult:
        """
        Evaluate all rules against request data.

        Args:
            sources: Mapping of location ("body", "query", "path") to values

        Returns:
            ValidationResult: Cleaned values for present fields and every violation
        """
        result = ValidationResult()

        for field_rules in self.fields:
            data = sources.get(field_rules.location) or {}
            present = field_rules.name in data

            if not present and field_rules.optional:
                continue

            value = data.get(field_rules.name, "")
            if value is None and not field_rules.optional:
                value = ""
            if field_rules.sanitize is not None:
                value = field_rules.sanitize(value)

            failed = False
            for rule in field_rules.rules:
                if not rule.passes(value):
                    result.errors.append(FieldError(field_rules.name, rule.message))
                    failed = True

            if not failed:
                result.values[field_rules.name] = field_rules.convert(value) if field_rules.convert else value

        return result


# Sanitizers

def trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def blank_to_none(value: Any) -> Any:
    value = trim(value)
    return None if value == "" else value


# Predicates

def length_between(min_length: int, max_length: Optional[int] = None) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        if len(value) < min_length:
            return False
        return max_length is None or len(value) <= max_length
    return check


def matches(pattern: str) -> Callable[[Any], bool]:
    compiled = re.compile(pattern)

    def check(value: Any) -> bool:
        return isinstance(value, str) and compiled.search(value) is not None
    return check


def not_empty(value: Any) -> bool:
    """Non-empty strings only; numbers, lists and objects are rejected."""
    return isinstance(value, str) and value != ""


def is_email(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_int(value: Any) -> bool:
    """Integers and integer strings; booleans and floats are rejected."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and INTEGER_PATTERN.match(value.strip()) is not None


def int_between(min_value: Optional[int] = None, max_value: Optional[int] = None) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        if not is_int(value):
            return False
        number = int(value)
        if min_value is not None and number < min_value:
            return False
        return max_value is None or number <= max_value
    return check


def int_at_most(max_value: int) -> Callable[[Any], bool]:
    """Upper bound only; non-integers are left to the type rule."""
    def check(value: Any) -> bool:
        return not is_int(value) or int(value) <= max_value
    return check


def one_of(choices: Sequence[str]) -> Callable[[Any], bool]:
    allowed = frozenset(choices)

    def check(value: Any) -> bool:
        return isinstance(value, str) and value in allowed
    return check


def is_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


# Converters

def normalize_email(value: str) -> str:
    """Canonical lowercase form used for every comparison and for storage."""
    normalized = validate_email(value, check_deliverability=False).normalized
    return normalized.lower()


def to_int(value: Any) -> int:
    return int(value)


def to_uuid(value: str) -> uuid.UUID:
    return uuid.UUID(value)
