"""SQLAlchemy ORM models for the registry database.

Uniqueness rules enforced by the schema:
    persons.email, persons.phone, organizations.name
    memberships (person_id, organization_id)

Relationships:
    PersonRecord 1--* MembershipRecord *--1 OrganizationRecord
    Deleting a person or organization cascades to its memberships.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from people_registry.core.ids import utc_now


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


class PersonRecord(Base):
    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(254), unique=True, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(16), unique=True, nullable=True)

    def __repr__(self) -> str:
        return f"<PersonRecord id={self.id} name={self.name!r}>"


class OrganizationRecord(Base):
    """Organization row; the optional address is flattened into columns."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="OTHER")
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    email: Mapped[str | None] = mapped_column(String(254), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(16), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    street1: Mapped[str | None] = mapped_column(String(200), nullable=True)
    street2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)

    def __repr__(self) -> str:
        return f"<OrganizationRecord id={self.id} name={self.name!r}>"


class MembershipRecord(Base):
    __tablename__ = "memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("persons.id", ondelete="CASCADE"), nullable=False,
    )
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="MEMBER")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now,
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("person_id", "organization_id", name="uq_memberships_person_org"),
        Index("ix_memberships_person_active", "person_id", "active"),
        Index("ix_memberships_organization", "organization_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MembershipRecord person={self.person_id} org={self.organization_id} "
            f"role={self.role} active={self.active}>"
        )
