"""Enumerations used across the registry."""

from enum import Enum


class StorageBackend(str, Enum):
    MEMORY = "memory"
    POSTGRES = "postgres"


class DeliveryMode(str, Enum):
    SYNC = "sync"  # Awaited inside publish(), errors propagate
    ASYNC = "async"  # Scheduled as an independent task, errors isolated


class OrganizationType(str, Enum):
    BUSINESS = "BUSINESS"
    GOVERNMENT = "GOVERNMENT"
    EDUCATIONAL = "EDUCATIONAL"
    NON_PROFIT = "NON_PROFIT"
    OTHER = "OTHER"


class MembershipRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    GUEST = "GUEST"


class JobKind(str, Enum):
    DATA_IMPORT = "import"
    NOTIFICATION = "notification"


class FailureKind(str, Enum):
    """Classification of a failure reason, used by boundary adapters."""

    ERROR = "error"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
