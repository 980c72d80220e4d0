"""Self-validating value types.

Every value type is an immutable wrapper over a single string.  The only
way to obtain an instance is through validation (``Email.create(raw)`` or
``Email(raw)``, which are equivalent), so an instance whose value fails its
format predicate cannot exist.

Values compare and hash by their underlying string; values of different
types never compare equal, even when the strings match.

Patterns use ASCII ``\\w`` and are applied with ``fullmatch`` so that a
trailing newline is never accepted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Self

from pydantic_core import core_schema

from people_registry.core.errors import ValidationError


@dataclass(frozen=True, slots=True)
class _StringValue:
    """Base for single-string value types."""

    value: str

    pattern: ClassVar[re.Pattern[str]]
    error_message: ClassVar[str]

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.pattern.fullmatch(self.value):
            raise ValidationError(self.error_message)

    @classmethod
    def create(cls, raw: str) -> Self:
        """Validate *raw* and wrap it.  Raises ``ValidationError``."""
        return cls(raw)

    @classmethod
    def is_valid(cls, raw: str) -> bool:
        return isinstance(raw, str) and cls.pattern.fullmatch(raw) is not None

    def __str__(self) -> str:
        return self.value

    # -- pydantic integration: bare string on the wire ----------------------

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: Any
    ) -> core_schema.CoreSchema:
        from_str = core_schema.chain_schema([
            core_schema.str_schema(),
            core_schema.no_info_plain_validator_function(cls.create),
        ])
        return core_schema.json_or_python_schema(
            json_schema=from_str,
            python_schema=core_schema.union_schema([
                core_schema.is_instance_schema(cls),
                from_str,
            ]),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda v: v.value
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, schema: Any, handler: Any) -> dict[str, Any]:
        return {"type": "string", "pattern": cls.pattern.pattern}


@dataclass(frozen=True, slots=True)
class Email(_StringValue):
    pattern: ClassVar[re.Pattern[str]] = re.compile(
        r"^[\w.-]+@([\w-]+\.)+[\w-]{2,}$", re.ASCII
    )
    error_message: ClassVar[str] = (
        "Invalid email format. Expected local-part@domain.tld"
    )


@dataclass(frozen=True, slots=True)
class Phone(_StringValue):
    pattern: ClassVar[re.Pattern[str]] = re.compile(r"^\+?[0-9]{10,15}$")
    error_message: ClassVar[str] = (
        "Invalid phone format. Must be 10-15 digits with optional + prefix."
    )

    def country_calling_code(self) -> str:
        """Digits after a leading ``+``; empty for numbers without one."""
        if not self.value.startswith("+"):
            return ""
        digits = self.value[1:]
        end = 0
        while end < len(digits) and digits[end].isdigit():
            end += 1
        return digits[:end]


@dataclass(frozen=True, slots=True)
class PostalCode(_StringValue):
    pattern: ClassVar[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9 -]{3,10}$")
    error_message: ClassVar[str] = (
        "Invalid postal code format. Expected 3-10 letters, digits, spaces or hyphens."
    )


@dataclass(frozen=True, slots=True)
class CountryCode(_StringValue):
    pattern: ClassVar[re.Pattern[str]] = re.compile(r"^[A-Z]{2}$")
    error_message: ClassVar[str] = (
        "Invalid country code format. Must be ISO 3166-1 alpha-2 format (e.g., US, GB)"
    )


VALUE_TYPES: tuple[type[_StringValue], ...] = (Email, Phone, PostalCode, CountryCode)


@dataclass(frozen=True, slots=True)
class Address:
    """Physical address composed of free text and validated codes."""

    street1: str
    city: str
    postal_code: PostalCode
    country_code: CountryCode
    street2: str | None = None
    state: str | None = None

    def __post_init__(self) -> None:
        if not self.street1 or not self.street1.strip():
            raise ValidationError("Street address cannot be blank")
        if not self.city or not self.city.strip():
            raise ValidationError("City cannot be blank")

    def __str__(self) -> str:
        parts = [self.street1]
        if self.street2 and self.street2.strip():
            parts.append(self.street2)
        parts.append(self.city)
        if self.state and self.state.strip():
            parts.append(self.state)
        parts.append(self.postal_code.value)
        parts.append(self.country_code.value)
        return ", ".join(parts)
