"""Tests for the structured logging processors."""

from __future__ import annotations

from people_registry.core.enums import MembershipRole
from people_registry.domain.events import MemberAdded, PersonCreated
from people_registry.observability.logger import (
    _add_correlation_id,
    _expand_domain_event,
    correlation_scope,
    current_correlation_id,
)


class TestCorrelationScope:
    def test_binds_given_id_and_restores(self):
        assert current_correlation_id() is None

        with correlation_scope("abc-123") as cid:
            assert cid == "abc-123"
            assert _add_correlation_id(None, "info", {"event": "x"}) == {
                "event": "x", "correlation_id": "abc-123",
            }

        assert current_correlation_id() is None

    def test_generates_id_when_missing(self):
        with correlation_scope() as cid:
            assert cid
            assert current_correlation_id() == cid

    def test_no_field_outside_scope(self):
        assert _add_correlation_id(None, "info", {"event": "x"}) == {"event": "x"}


class TestExpandDomainEvent:
    def test_event_fields_replace_the_object(self):
        event = PersonCreated(person_id=1, name="Ann")

        out = _expand_domain_event(None, "info", {"event": "audit", "domain_event": event})

        assert out == {
            "event": "audit",
            "event_type": "person.created",
            "event_id": event.event_id,
            "family": "PersonEvent",
            "occurred_at": event.timestamp.isoformat(),
        }

    def test_explicit_fields_win(self):
        event = MemberAdded(organization_id=1, person_id=2, role=MembershipRole.MEMBER)

        out = _expand_domain_event(
            None, "info", {"event": "x", "domain_event": event, "family": "custom"}
        )

        assert out["family"] == "custom"
        assert out["event_type"] == "organization.member.added"

    def test_other_values_left_alone(self):
        out = _expand_domain_event(None, "info", {"event": "x", "domain_event": "raw"})
        assert out == {"event": "x", "domain_event": "raw"}
