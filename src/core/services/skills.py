"""Shared skill vocabulary.

Skills on candidates and opportunities are copied strings, not references:
deleting a vocabulary entry never touches records that already carry the name.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from core.domain.errors import InvalidArgument
from core.domain.models import Skill, User
from core.services.entity_cache import EntityCache

logger = logging.getLogger(__name__)


class SkillVocabulary:
    def __init__(self, skills: EntityCache[Skill]) -> None:
        self._skills = skills

    async def names(self) -> list[str]:
        return [skill.name for skill in await self._skills.fetch()]

    async def ensure_tag(self, name: str, requested_by: User | None) -> Skill | None:
        """Grow the vocabulary with `name` when the caller may do so.

        Non-admin callers are skipped silently: the tag stays usable as a
        free-text string on the entity but is not added to the vocabulary.
        Presence is checked case-sensitively against the cached vocabulary,
        so two admins adding the same new name concurrently both create a
        record; duplicates are left as they are.
        """

        tag = (name or "").strip()
        if not tag:
            raise InvalidArgument("Skill name is required")
        if requested_by is None or not requested_by.is_admin:
            logger.debug("Not adding %r to the vocabulary: caller is not an admin", tag)
            return None
        if tag in await self.names():
            return None
        skill = await self._skills.create({"name": tag})
        logger.info("Added skill %r (%s)", tag, skill.id)
        return skill

    async def add_tag(
        self, tags: Sequence[str], name: str, requested_by: User | None
    ) -> list[str]:
        """Tag-entry behaviour: append `name` once, growing the vocabulary if allowed."""

        tag = (name or "").strip()
        if not tag or tag in tags:
            return list(tags)
        await self.ensure_tag(tag, requested_by)
        return [*tags, tag]

    async def suggest(self, text: str, exclude: Iterable[str] = ()) -> list[str]:
        """Vocabulary names containing `text` (case-insensitive), minus chosen ones."""

        needle = text.strip().lower()
        chosen = set(exclude)
        return [
            n for n in await self.names() if n not in chosen and needle in n.lower()
        ]

    async def delete(self, skill_id: str) -> None:
        await self._skills.delete(skill_id)
