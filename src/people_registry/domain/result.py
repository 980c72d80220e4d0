"""Explicit success/failure results for business operations.

Design invariants
-----------------
1.  A ``Result`` is either ``Success`` (holding a non-``None`` value) or
    ``Failure`` (holding a :class:`FailureReason`), never both and never
    neither.
2.  Results are immutable and hold their payload privately; callers
    unwrap with ``fold`` (or one of the projections, which agree with it).
3.  ``Result`` carries *anticipated* business failures only.  Programming
    errors and infrastructure faults are exceptions; services convert the
    latter into :class:`Error` at their boundary.
4.  The failure taxonomy is closed: ``ALL_FAILURE_REASONS`` lists every
    leaf, and boundary adapters are tested against it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

from people_registry.core.enums import FailureKind

from .values import Email, Phone

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


# ---------------------------------------------------------------------------
# Failure taxonomy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FailureReason:
    """Base for every business-failure classification.

    Every leaf exposes ``message`` (a field or a property) that can be shown
    to the caller as-is, and a class-level ``kind`` used by adapters.
    """

    kind: ClassVar[FailureKind] = FailureKind.ERROR


@dataclass(frozen=True)
class Error(FailureReason):
    """Unexpected failure.  ``cause`` is kept for server-side logging only."""

    message: str
    cause: BaseException | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class NotFound(FailureReason):
    kind: ClassVar[FailureKind] = FailureKind.NOT_FOUND

    message: str


@dataclass(frozen=True)
class ValidationFailed(FailureReason):
    kind: ClassVar[FailureKind] = FailureKind.VALIDATION

    message: str
    field_errors: Mapping[str, str] = field(default_factory=dict)

    def __hash__(self) -> int:
        return hash((self.message, tuple(sorted(self.field_errors.items()))))


@dataclass(frozen=True)
class Unauthorized(FailureReason):
    kind: ClassVar[FailureKind] = FailureKind.UNAUTHORIZED

    message: str = "Unauthorized access"


@dataclass(frozen=True)
class Forbidden(FailureReason):
    kind: ClassVar[FailureKind] = FailureKind.FORBIDDEN

    message: str = "Access forbidden"


@dataclass(frozen=True)
class Conflict(FailureReason):
    kind: ClassVar[FailureKind] = FailureKind.CONFLICT

    message: str


@dataclass(frozen=True)
class ServiceUnavailable(FailureReason):
    kind: ClassVar[FailureKind] = FailureKind.UNAVAILABLE

    message: str = "Service temporarily unavailable"


# -- Person -------------------------------------------------------------------

@dataclass(frozen=True)
class PersonFailure(FailureReason):
    """Failures specific to person operations."""


@dataclass(frozen=True)
class EmailAlreadyExists(PersonFailure):
    kind: ClassVar[FailureKind] = FailureKind.CONFLICT

    email: Email

    @property
    def message(self) -> str:
        return f"Person with email {self.email.value} already exists"


@dataclass(frozen=True)
class PhoneAlreadyExists(PersonFailure):
    kind: ClassVar[FailureKind] = FailureKind.CONFLICT

    phone: Phone

    @property
    def message(self) -> str:
        return f"Person with phone {self.phone.value} already exists"


@dataclass(frozen=True)
class EmailMismatch(PersonFailure):
    kind: ClassVar[FailureKind] = FailureKind.VALIDATION

    expected: Email | None
    actual: Email

    @property
    def message(self) -> str:
        if self.expected is None:
            return f"Email {self.actual.value} does not match: person has no email on record"
        return f"Email {self.actual.value} does not match person's email"


@dataclass(frozen=True)
class PhoneMismatch(PersonFailure):
    kind: ClassVar[FailureKind] = FailureKind.VALIDATION

    expected: Phone | None
    actual: Phone

    @property
    def message(self) -> str:
        if self.expected is None:
            return f"Phone {self.actual.value} does not match: person has no phone on record"
        return f"Phone {self.actual.value} does not match person's phone"


# -- Organization -------------------------------------------------------------

@dataclass(frozen=True)
class OrganizationFailure(FailureReason):
    """Failures specific to organization and membership operations."""


@dataclass(frozen=True)
class NameAlreadyExists(OrganizationFailure):
    kind: ClassVar[FailureKind] = FailureKind.CONFLICT

    name: str

    @property
    def message(self) -> str:
        return f"Organization with name '{self.name}' already exists"


@dataclass(frozen=True)
class AlreadyMember(OrganizationFailure):
    kind: ClassVar[FailureKind] = FailureKind.CONFLICT

    person_id: int
    organization_id: int

    @property
    def message(self) -> str:
        return (
            f"Person {self.person_id} is already a member of "
            f"organization {self.organization_id}"
        )


ALL_FAILURE_REASONS: tuple[type[FailureReason], ...] = (
    Error,
    NotFound,
    ValidationFailed,
    Unauthorized,
    Forbidden,
    Conflict,
    ServiceUnavailable,
    EmailAlreadyExists,
    PhoneAlreadyExists,
    EmailMismatch,
    PhoneMismatch,
    NameAlreadyExists,
    AlreadyMember,
)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class Success(Generic[T]):
    """A successful outcome holding a non-``None`` value."""

    __slots__ = ("_value",)
    __match_args__ = ()

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success requires a value; use a Failure for absence")
        object.__setattr__(self, "_value", value)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Result objects are immutable")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Success) and self._value == other._value

    def __hash__(self) -> int:
        return hash(("success", self._value))

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def fold(self, on_success: Callable[[T], R], on_failure: Callable[[FailureReason], R]) -> R:
        return on_success(self._value)

    def map(self, transform: Callable[[T], U]) -> Result[U]:
        return Success(transform(self._value))

    def get_or_default(self, default: T) -> T:
        return self._value

    def get_or_none(self) -> T | None:
        return self._value

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def on_success(self, action: Callable[[T], Any]) -> Result[T]:
        action(self._value)
        return self

    def on_failure(self, action: Callable[[FailureReason], Any]) -> Result[T]:
        return self


class Failure(Generic[T]):
    """A failed business operation with its classified reason."""

    __slots__ = ("_reason",)
    __match_args__ = ()

    def __init__(self, reason: FailureReason) -> None:
        if not isinstance(reason, FailureReason):
            raise TypeError(f"Failure requires a FailureReason, got {type(reason).__name__}")
        object.__setattr__(self, "_reason", reason)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Result objects are immutable")

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Failure) and self._reason == other._reason

    def __hash__(self) -> int:
        return hash(("failure", self._reason))

    def __repr__(self) -> str:
        return f"Failure({self._reason!r})"

    def fold(self, on_success: Callable[[T], R], on_failure: Callable[[FailureReason], R]) -> R:
        return on_failure(self._reason)

    def map(self, transform: Callable[[T], U]) -> Result[U]:
        return Failure(self._reason)

    def get_or_default(self, default: T) -> T:
        return default

    def get_or_none(self) -> T | None:
        return None

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def on_success(self, action: Callable[[T], Any]) -> Result[T]:
        return self

    def on_failure(self, action: Callable[[FailureReason], Any]) -> Result[T]:
        action(self._reason)
        return self


Result = Success[T] | Failure[T]


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def success(value: T) -> Result[T]:
    return Success(value)


def failure(reason: FailureReason) -> Result[Any]:
    return Failure(reason)


def error(message: str, cause: BaseException | None = None) -> Result[Any]:
    return Failure(Error(message, cause))


def not_found(message: str) -> Result[Any]:
    return Failure(NotFound(message))


def validation_failure(
    message: str, field_errors: Mapping[str, str] | None = None
) -> Result[Any]:
    return Failure(ValidationFailed(message, dict(field_errors or {})))
