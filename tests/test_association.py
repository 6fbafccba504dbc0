from __future__ import annotations

import pytest

from core.domain.errors import InvalidArgument
from core.domain.models import Candidate
from core.services.association import select_unattached


def _candidate(name: str, **extra) -> dict:
    return {"name": name, "email": f"{name.lower()}@example.com", **extra}


def test_selection_set_is_exactly_the_unattached_candidates():
    people = [
        Candidate(id="1", name="A", email="a@x"),
        Candidate(id="2", name="B", email="b@x", opportunity_id="OPP1"),
        Candidate(id="3", name="C", email="c@x", opportunity_id=None),
    ]
    assert [c.id for c in select_unattached(people)] == ["1", "3"]


@pytest.mark.asyncio
async def test_new_candidate_branch_sets_the_opportunity(session):
    created = await session.association.create_candidate(_candidate("A"), "OPP1")

    assert created.opportunity_id == "OPP1"
    assert [c.id for c in await session.association.candidates_for("OPP1")] == [created.id]
    assert await session.association.available_candidates() == []


@pytest.mark.asyncio
async def test_new_candidate_without_opportunity_is_unattached(session, documents):
    created = await session.association.create_candidate(_candidate("A", opportunityId="OPP9"))

    stored = await documents.get("candidates", created.id)
    assert "opportunityId" not in stored
    assert [c.id for c in await session.association.available_candidates()] == [created.id]


@pytest.mark.asyncio
async def test_attach_existing_writes_only_the_association_field(session, documents, monkeypatch):
    created = await session.candidates.create(_candidate("A", skills=["Go"]))
    written: list[dict] = []
    original = documents.update

    async def spy(collection, doc_id, partial):
        written.append(dict(partial))
        return await original(collection, doc_id, partial)

    monkeypatch.setattr(documents, "update", spy)
    await session.association.attach_existing(created.id, "OPP1")

    assert len(written) == 1
    assert set(written[0]) == {"opportunityId", "updatedAt"}
    (candidate,) = await session.association.candidates_for("OPP1")
    assert candidate.skills == ["Go"]


@pytest.mark.asyncio
async def test_attached_candidate_is_not_offered_again(session):
    created = await session.candidates.create(_candidate("A"))
    await session.association.attach_existing(created.id, "OPP1")

    assert await session.association.available_candidates() == []
    with pytest.raises(InvalidArgument):
        await session.association.attach_existing(created.id, "OPP2")


@pytest.mark.asyncio
async def test_attach_requires_both_ids(session):
    with pytest.raises(InvalidArgument):
        await session.association.attach_existing("", "OPP1")
    with pytest.raises(InvalidArgument):
        await session.association.attach_existing("c1", "")


@pytest.mark.asyncio
async def test_detach_makes_the_candidate_available(session, documents):
    created = await session.association.create_candidate(_candidate("A"), "OPP1")

    await session.association.detach(created.id)

    stored = await documents.get("candidates", created.id)
    assert "opportunityId" not in stored
    assert [c.id for c in await session.association.available_candidates()] == [created.id]
    assert await session.association.candidates_for("OPP1") == []


@pytest.mark.asyncio
async def test_deleting_an_opportunity_does_not_touch_its_candidates(session):
    opportunity = await session.opportunities.create({"title": "Platform rebuild"})
    created = await session.association.create_candidate(_candidate("A"), opportunity.id)

    await session.opportunities.delete(opportunity.id)

    (candidate,) = await session.candidates.fetch()
    assert candidate.id == created.id
    assert candidate.opportunity_id == opportunity.id
