"""FastAPI application for the registry.

Usage::

    app = create_app(settings)
    uvicorn.run(app, host=..., port=...)

The container is built in the lifespan handler, which also announces
application start and stop and drains pending async deliveries on the way
out.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request, Response

from people_registry.core.config import Settings
from people_registry.core.enums import MembershipRole
from people_registry.domain.values import Email, Phone
from people_registry.main import Container, build_container
from people_registry.observability.logger import correlation_scope

from .errors import install_error_handlers, unwrap
from .schemas import (
    AuditRecordOut,
    ComponentHealthOut,
    HealthOut,
    MembershipOut,
    OrganizationIn,
    OrganizationOut,
    PersonIn,
    PersonOut,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _container(request: Request) -> Container:
    return request.app.state.container


ContainerDep = Annotated[Container, Depends(_container)]


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings; defaults are used when omitted.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container = await build_container(settings)
        app.state.container = container
        await container.start()
        try:
            yield
        finally:
            await container.stop()

    app = FastAPI(title="People Registry", version=settings.version, lifespan=lifespan)
    install_error_handlers(app)

    @app.middleware("http")
    async def correlation_id(request: Request, call_next):
        with correlation_scope(request.headers.get(CORRELATION_HEADER)) as cid:
            response = await call_next(request)
        response.headers[CORRELATION_HEADER] = cid
        return response

    # ------------------------------------------------------------------
    # Persons
    # ------------------------------------------------------------------

    @app.get("/persons", response_model=list[PersonOut])
    async def list_persons(c: ContainerDep) -> list[PersonOut]:
        persons = unwrap(await c.persons.list_persons())
        return [PersonOut.model_validate(p) for p in persons]

    @app.post("/persons", response_model=PersonOut, status_code=201)
    async def create_person(body: PersonIn, c: ContainerDep) -> PersonOut:
        person = unwrap(await c.persons.create_person(body.to_draft()))
        return PersonOut.model_validate(person)

    @app.get("/persons/by-email/{email}", response_model=PersonOut)
    async def get_person_by_email(email: str, c: ContainerDep) -> PersonOut:
        person = unwrap(await c.persons.find_by_email(Email.create(email)))
        return PersonOut.model_validate(person)

    @app.get("/persons/by-phone/{phone}", response_model=PersonOut)
    async def get_person_by_phone(phone: str, c: ContainerDep) -> PersonOut:
        person = unwrap(await c.persons.find_by_phone(Phone.create(phone)))
        return PersonOut.model_validate(person)

    @app.get("/persons/{person_id}", response_model=PersonOut)
    async def get_person(person_id: int, c: ContainerDep) -> PersonOut:
        return PersonOut.model_validate(unwrap(await c.persons.find_by_id(person_id)))

    @app.put("/persons/{person_id}", response_model=PersonOut)
    async def update_person(person_id: int, body: PersonIn, c: ContainerDep) -> PersonOut:
        person = unwrap(await c.persons.update_person(person_id, body.to_draft()))
        return PersonOut.model_validate(person)

    @app.delete("/persons/{person_id}", status_code=204)
    async def delete_person(person_id: int, c: ContainerDep) -> Response:
        unwrap(await c.persons.delete_person(person_id))
        return Response(status_code=204)

    @app.post("/persons/{person_id}/verify-email", response_model=PersonOut)
    async def verify_email(person_id: int, email: str, c: ContainerDep) -> PersonOut:
        person = unwrap(await c.persons.verify_email(person_id, Email.create(email)))
        return PersonOut.model_validate(person)

    @app.post("/persons/{person_id}/verify-phone", response_model=PersonOut)
    async def verify_phone(person_id: int, phone: str, c: ContainerDep) -> PersonOut:
        person = unwrap(await c.persons.verify_phone(person_id, Phone.create(phone)))
        return PersonOut.model_validate(person)

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    @app.get("/organizations", response_model=list[OrganizationOut])
    async def list_organizations(c: ContainerDep) -> list[OrganizationOut]:
        organizations = unwrap(await c.organizations.list_organizations())
        return [OrganizationOut.model_validate(o) for o in organizations]

    @app.post("/organizations", response_model=OrganizationOut, status_code=201)
    async def create_organization(
        body: OrganizationIn, creator_id: int, c: ContainerDep,
    ) -> OrganizationOut:
        organization = unwrap(
            await c.organizations.create_organization(body.to_draft(), creator_id)
        )
        return OrganizationOut.model_validate(organization)

    @app.get("/organizations/by-name/{name}", response_model=OrganizationOut)
    async def get_organization_by_name(name: str, c: ContainerDep) -> OrganizationOut:
        return OrganizationOut.model_validate(unwrap(await c.organizations.find_by_name(name)))

    @app.get("/organizations/{organization_id}", response_model=OrganizationOut)
    async def get_organization(organization_id: int, c: ContainerDep) -> OrganizationOut:
        organization = unwrap(await c.organizations.find_by_id(organization_id))
        return OrganizationOut.model_validate(organization)

    @app.get("/organizations/{organization_id}/members", response_model=list[MembershipOut])
    async def get_members(organization_id: int, c: ContainerDep) -> list[MembershipOut]:
        memberships = unwrap(await c.organizations.get_members(organization_id))
        return [MembershipOut.model_validate(m) for m in memberships]

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    @app.post(
        "/memberships/organizations/{organization_id}/members/{person_id}",
        response_model=MembershipOut,
        status_code=201,
    )
    async def add_member(
        organization_id: int,
        person_id: int,
        c: ContainerDep,
        role: MembershipRole = MembershipRole.MEMBER,
    ) -> MembershipOut:
        membership = unwrap(await c.organizations.add_member(organization_id, person_id, role))
        return MembershipOut.model_validate(membership)

    @app.get(
        "/memberships/persons/{person_id}/organizations",
        response_model=list[MembershipOut],
    )
    async def get_person_organizations(person_id: int, c: ContainerDep) -> list[MembershipOut]:
        memberships = unwrap(await c.organizations.get_person_organizations(person_id))
        return [MembershipOut.model_validate(m) for m in memberships]

    # ------------------------------------------------------------------
    # Operational
    # ------------------------------------------------------------------

    @app.get("/audit/events", response_model=list[AuditRecordOut])
    async def audit_events(
        c: ContainerDep, limit: Annotated[int, Query(ge=1, le=1000)] = 50,
    ) -> list[AuditRecordOut]:
        return [AuditRecordOut.model_validate(r) for r in c.listeners.audit.recent(limit)]

    @app.get("/health", response_model=HealthOut)
    async def health(c: ContainerDep, response: Response) -> HealthOut:
        results = await c.health.check_all()
        healthy = all(r.healthy for r in results)
        if not healthy:
            response.status_code = 503
        return HealthOut(
            status="ok" if healthy else "degraded",
            version=c.settings.version,
            components=[ComponentHealthOut.model_validate(r) for r in results],
        )

    return app
