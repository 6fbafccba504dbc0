"""Candidate to opportunity association.

A candidate references at most one opportunity through `opportunityId`. Two
entry points bind a candidate to an opportunity:

- new-candidate: the submitted form is a full candidate payload created with
  `opportunityId` already set;
- existing-candidate: an *unattached* candidate is picked from the selection
  set and only its `opportunityId` field is written.

The selection set is computed client-side from the cached candidate list.
Two operators can still attach the same candidate concurrently; the last
write wins because the store exchanges no concurrency token.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pydantic import BaseModel

from core.domain.errors import InvalidArgument
from core.domain.models import Candidate
from core.domain.transforms import DELETE_FIELD
from core.services.entity_cache import EntityCache

logger = logging.getLogger(__name__)

OPPORTUNITY_FIELD = "opportunityId"


def select_unattached(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Candidates offered for association: exactly those without an opportunity."""

    return [c for c in candidates if c.is_unattached]


class AssociationResolver:
    def __init__(self, candidates: EntityCache[Candidate]) -> None:
        self._candidates = candidates

    async def available_candidates(self) -> list[Candidate]:
        return select_unattached(await self._candidates.fetch())

    async def candidates_for(self, opportunity_id: str) -> list[Candidate]:
        if not opportunity_id:
            raise InvalidArgument("opportunity_id is required")
        return await self._candidates.fetch({OPPORTUNITY_FIELD: opportunity_id})

    async def create_candidate(
        self,
        data: Mapping[str, Any] | BaseModel,
        opportunity_id: str | None = None,
    ) -> Candidate:
        """New-candidate branch; `opportunity_id=None` creates it unattached."""

        payload = (
            data.model_dump(by_alias=True, exclude_unset=True)
            if isinstance(data, BaseModel)
            else dict(data)
        )
        payload.pop("opportunity_id", None)
        payload[OPPORTUNITY_FIELD] = opportunity_id or None
        return await self._candidates.create(payload)

    async def attach_existing(self, candidate_id: str, opportunity_id: str) -> None:
        """Existing-candidate branch.

        Writes `opportunityId` only; the caller's copy of the other fields may
        be stale and is never resent.
        """

        if not candidate_id or not opportunity_id:
            raise InvalidArgument("candidate_id and opportunity_id are required")
        available = {c.id for c in await self.available_candidates()}
        if candidate_id not in available:
            raise InvalidArgument(
                f"Candidate {candidate_id} is not available for association"
            )
        await self._candidates.update(candidate_id, {OPPORTUNITY_FIELD: opportunity_id})
        logger.info("Attached candidate %s to opportunity %s", candidate_id, opportunity_id)

    async def detach(self, candidate_id: str) -> None:
        """Clear the association, making the candidate available again."""

        if not candidate_id:
            raise InvalidArgument("candidate_id is required")
        await self._candidates.update(candidate_id, {OPPORTUNITY_FIELD: DELETE_FIELD})
        logger.info("Detached candidate %s", candidate_id)
