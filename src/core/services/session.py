"""Session wiring.

One `CrmSession` per application session: it owns the `CacheContext` shared by
every collection and builds the workflows on top of the same caches, so a
mutation made through any of them is visible to all consumers.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.domain.enums import OwnerType
from core.domain.models import (
    Candidate,
    Interaction,
    Lead,
    Opportunity,
    Skill,
    Team,
    User,
)
from core.interfaces.auth import AuthProvider
from core.interfaces.remote_store import BlobStore, DocumentStore, OrderBy
from core.services.association import AssociationResolver
from core.services.attachments import AttachmentLifecycle
from core.services.entity_cache import CacheContext, EntityCache
from core.services.skills import SkillVocabulary
from core.services.users import DEFAULT_CURRENT_USER_TTL_SECONDS, UserDirectory

_NEWEST_FIRST = OrderBy("createdAt", descending=True)


@dataclass
class CrmSession:
    context: CacheContext
    leads: EntityCache[Lead]
    opportunities: EntityCache[Opportunity]
    candidates: EntityCache[Candidate]
    interactions: EntityCache[Interaction]
    skills: EntityCache[Skill]
    users: EntityCache[User]
    teams: EntityCache[Team]
    attachments: AttachmentLifecycle
    association: AssociationResolver
    vocabulary: SkillVocabulary
    directory: UserDirectory

    def collection(self, name: str) -> EntityCache:
        caches = {
            cache.collection: cache
            for cache in (
                self.leads,
                self.opportunities,
                self.candidates,
                self.interactions,
                self.skills,
                self.users,
                self.teams,
            )
        }
        try:
            return caches[name]
        except KeyError:
            raise KeyError(f"Unknown collection {name!r}; expected one of {sorted(caches)}") from None


def open_session(
    *,
    documents: DocumentStore,
    blobs: BlobStore,
    auth: AuthProvider,
    context: CacheContext | None = None,
    current_user_ttl_seconds: float = DEFAULT_CURRENT_USER_TTL_SECONDS,
) -> CrmSession:
    context = context or CacheContext()

    def cache(collection: str, model, order_by: OrderBy | None = None) -> EntityCache:
        return EntityCache(collection, model, store=documents, context=context, order_by=order_by)

    leads = cache("leads", Lead, _NEWEST_FIRST)
    opportunities = cache("opportunities", Opportunity, _NEWEST_FIRST)
    candidates = cache("candidates", Candidate, _NEWEST_FIRST)
    interactions = cache("interactions", Interaction, OrderBy("date", descending=True))
    skills = cache("skills", Skill)
    users = cache("users", User)
    teams = cache("teams", Team)

    return CrmSession(
        context=context,
        leads=leads,
        opportunities=opportunities,
        candidates=candidates,
        interactions=interactions,
        skills=skills,
        users=users,
        teams=teams,
        attachments=AttachmentLifecycle(
            blobs,
            {
                OwnerType.LEADS: leads,
                OwnerType.OPPORTUNITIES: opportunities,
                OwnerType.CANDIDATES: candidates,
            },
        ),
        association=AssociationResolver(candidates),
        vocabulary=SkillVocabulary(skills),
        directory=UserDirectory(users, auth, context, ttl_seconds=current_user_ttl_seconds),
    )
