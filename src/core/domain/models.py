"""Domain models (Pydantic v2).

Why Pydantic in the domain:
- Strict validation at the boundary with the remote store, where documents
  arrive as loosely-typed mappings.
- One declaration gives both the Python shape (snake_case attributes) and
  the wire shape (camelCase aliases used by the stored documents).

Note:
- These models describe *what* a record is, not *how* it is fetched.
- Entities are owned by the remote store; instances here are transient copies.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from core.domain.enums import (
    CandidateStatus,
    EmployeeType,
    InteractionType,
    LeadStatus,
    OpportunityStage,
    OvertimePolicy,
    UserRole,
)

SERVER_FIELDS: frozenset[str] = frozenset({"id", "createdAt", "updatedAt"})
"""Wire names the client never supplies on writes."""


class WireModel(BaseModel):
    """Base for every model that round-trips through the document store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Attachment(WireModel):
    """Metadata of one uploaded file, embedded by value in its owner."""

    id: str = Field(
        ...,
        min_length=1,
        description="Storage key; also the last segment of the blob path.",
    )
    name: str = Field(..., min_length=1, description="Original file name.")
    size: int = Field(..., ge=0, description="Size in bytes.")
    type: str = Field(default="application/octet-stream", description="Media type.")
    url: str = Field(..., min_length=1, description="Durable retrieval URL.")
    uploaded_by: str = Field(..., min_length=1)
    uploaded_at: datetime


class Entity(WireModel):
    """A persisted, identifier-bearing record."""

    id: str = Field(..., min_length=1, description="Assigned by the store at creation.")
    created_at: datetime | None = Field(default=None, description="Server timestamp.")
    updated_at: datetime | None = Field(default=None, description="Server timestamp.")


class Lead(Entity):
    company_name: str = Field(..., min_length=1)
    contact_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str | None = None
    status: LeadStatus = LeadStatus.NEW
    source: str = Field(..., min_length=1)
    notes: str | None = None
    assigned_to: str | None = None
    last_contacted_at: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class Opportunity(Entity):
    lead_id: str | None = None
    client_id: str | None = None
    title: str = Field(..., min_length=1)
    value: float = Field(default=0.0, ge=0)
    stage: OpportunityStage = OpportunityStage.DISCOVERY
    probability: int = Field(default=0, ge=0, le=100)
    expected_close_date: str = Field(default="")
    assigned_to: str | None = None
    products: list[str] = Field(default_factory=list)
    notes: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class Candidate(Entity):
    """A recruiting candidate.

    `opportunity_id` is a weak reference: deleting the opportunity does not
    touch the candidate. A candidate without it is *unattached*.
    """

    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str | None = None
    status: CandidateStatus = CandidateStatus.NEW
    current_role: str | None = None
    current_company: str | None = None
    expected_salary: float | None = Field(default=None, ge=0)
    notice_period: str | None = None
    resume_url: str | None = None
    skills: list[str] = Field(
        default_factory=list,
        description="Free-text tags copied from the vocabulary; not references.",
    )
    notes: str | None = None
    opportunity_id: str | None = None
    assigned_to: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def is_unattached(self) -> bool:
        return self.opportunity_id is None


class Interaction(Entity):
    type: InteractionType
    title: str = Field(..., min_length=1)
    description: str = ""
    date: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    lead_id: str | None = None
    opportunity_id: str | None = None
    candidate_id: str | None = None
    notes: str | None = None
    assigned_to: str | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class Skill(Entity):
    name: str = Field(..., min_length=1, max_length=128)
    category: str | None = None


class User(Entity):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    role: UserRole = UserRole.USER
    team_id: str | None = None
    employee_type: EmployeeType = EmployeeType.EMPLOYEE
    hours_per_week: float = Field(default=0, ge=0)
    overtime: OvertimePolicy = OvertimePolicy.NO

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


class Team(Entity):
    name: str = Field(..., min_length=1)
    manager_id: str = Field(..., min_length=1)


class QueryScope(BaseModel):
    """Cache key: a collection plus a filter compared by value.

    Filter entries whose value is None are dropped, so `{"opportunityId": None}`
    and `{}` name the same scope.
    """

    model_config = ConfigDict(frozen=True)

    collection: str = Field(..., min_length=1)
    filters: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, collection: str, filters: Mapping[str, Any] | None = None) -> "QueryScope":
        items = tuple(
            sorted((str(k), v) for k, v in (filters or {}).items() if v is not None)
        )
        return cls(collection=collection, filters=items)

    def filter_dict(self) -> dict[str, Any]:
        return dict(self.filters)
