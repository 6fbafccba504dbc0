from __future__ import annotations

import asyncio

import pytest

from core.domain.errors import InvalidArgument


@pytest.mark.asyncio
async def test_admin_grows_the_vocabulary(session, admin):
    skill = await session.vocabulary.ensure_tag("  Rust ", admin)

    assert skill is not None and skill.name == "Rust"
    assert await session.vocabulary.names() == ["Rust"]


@pytest.mark.asyncio
async def test_existing_name_is_not_created_again(session, documents, admin):
    await session.vocabulary.ensure_tag("Rust", admin)
    assert await session.vocabulary.ensure_tag("Rust", admin) is None
    assert documents.count("set", "skills") == 1


@pytest.mark.asyncio
async def test_lookup_is_case_sensitive(session, admin):
    await session.vocabulary.ensure_tag("rust", admin)
    await session.vocabulary.ensure_tag("Rust", admin)
    assert sorted(await session.vocabulary.names()) == ["Rust", "rust"]


@pytest.mark.asyncio
async def test_non_admin_is_skipped_without_error(session, documents, member):
    assert await session.vocabulary.ensure_tag("Rust", member) is None
    assert await session.vocabulary.ensure_tag("Rust", None) is None
    assert documents.count("set", "skills") == 0


@pytest.mark.asyncio
async def test_blank_name_is_rejected(session, admin):
    with pytest.raises(InvalidArgument):
        await session.vocabulary.ensure_tag("   ", admin)


@pytest.mark.asyncio
async def test_concurrent_admins_may_create_duplicates(session, admin):
    other_admin = admin.model_copy(update={"id": "admin-2"})

    await asyncio.gather(
        session.vocabulary.ensure_tag("Rust", admin),
        session.vocabulary.ensure_tag("Rust", other_admin),
    )

    assert await session.vocabulary.names() == ["Rust", "Rust"]


@pytest.mark.asyncio
async def test_add_tag_keeps_free_text_tags_for_non_admins(session, member):
    tags = await session.vocabulary.add_tag(["Go"], "Elixir", member)

    assert tags == ["Go", "Elixir"]
    assert await session.vocabulary.names() == []


@pytest.mark.asyncio
async def test_add_tag_ignores_duplicates_and_blanks(session, admin):
    assert await session.vocabulary.add_tag(["Go"], "Go", admin) == ["Go"]
    assert await session.vocabulary.add_tag(["Go"], " ", admin) == ["Go"]


@pytest.mark.asyncio
async def test_suggest_filters_case_insensitively(session, admin):
    for name in ("Python", "TypeScript", "Go"):
        await session.vocabulary.ensure_tag(name, admin)

    assert sorted(await session.vocabulary.suggest("py")) == ["Python"]
    assert await session.vocabulary.suggest("t", exclude=["TypeScript", "Python"]) == []


@pytest.mark.asyncio
async def test_deleting_a_skill_keeps_copied_tags(session, admin):
    skill = await session.vocabulary.ensure_tag("Rust", admin)
    candidate = await session.candidates.create(
        {"name": "A", "email": "a@example.com", "skills": ["Rust"]}
    )

    await session.vocabulary.delete(skill.id)

    assert await session.vocabulary.names() == []
    assert (await session.candidates.get(candidate.id)).skills == ["Rust"]
