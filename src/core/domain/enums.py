"""Enumerated values shared by the CRM domain.

These live in the domain layer so services, adapters and the CLI share a
single source of truth for the values stored in documents.
"""

from __future__ import annotations

from enum import Enum


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    UNQUALIFIED = "unqualified"


class OpportunityStage(str, Enum):
    DISCOVERY = "discovery"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class CandidateStatus(str, Enum):
    NEW = "new"
    SCREENING = "screening"
    INTERVIEWING = "interviewing"
    OFFERED = "offered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class InteractionType(str, Enum):
    EMAIL = "email"
    CALL = "call"
    MEETING = "meeting"
    NOTE = "note"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class EmployeeType(str, Enum):
    EMPLOYEE = "employee"
    CONTRACTOR = "contractor"
    COMPANY = "company"


class OvertimePolicy(str, Enum):
    NO = "no"
    ELIGIBLE = "eligible"
    ALL = "all"


class OwnerType(str, Enum):
    """Collections whose documents can own attachments."""

    LEADS = "leads"
    OPPORTUNITIES = "opportunities"
    CANDIDATES = "candidates"

    @classmethod
    def parse(cls, value: "OwnerType | str") -> "OwnerType":
        """Accept either an enum member or its collection name."""

        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())
