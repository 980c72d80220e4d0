"""Domain services: person, organization and system operations."""

from people_registry.services.jobs import JobSimulator
from people_registry.services.organization_service import OrganizationDraft, OrganizationService
from people_registry.services.person_service import PersonDraft, PersonService
from people_registry.services.system_service import JobOutcome, SystemService

__all__ = [
    "JobOutcome",
    "JobSimulator",
    "OrganizationDraft",
    "OrganizationService",
    "PersonDraft",
    "PersonService",
    "SystemService",
]
