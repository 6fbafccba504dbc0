from __future__ import annotations

import json
from contextlib import asynccontextmanager

import pytest
from typer.testing import CliRunner

from adapters.memory_store import InMemoryBlobStore, InMemoryDocumentStore
from adapters.static_auth import StaticAuthProvider
from cli import main as cli_main
from core.config import save_user_settings
from core.services.session import open_session

runner = CliRunner()


@pytest.fixture
def memory_gateway(monkeypatch):
    documents = InMemoryDocumentStore()
    blobs = InMemoryBlobStore()

    @asynccontextmanager
    async def fake_session(settings):
        session = open_session(documents=documents, blobs=blobs, auth=StaticAuthProvider("admin-1"))
        if not await session.candidates.fetch():
            await session.candidates.create({"name": "Free", "email": "free@example.com"})
            await session.candidates.create(
                {"name": "Taken", "email": "taken@example.com", "opportunityId": "OPP1"}
            )
        yield session

    monkeypatch.setattr(cli_main, "open_gateway_session", fake_session)
    return documents


def test_available_lists_only_unattached_candidates(memory_gateway):
    result = runner.invoke(cli_main.app, ["candidates", "available"])
    assert result.exit_code == 0, result.output
    assert "Free" in result.output
    assert "Taken" not in result.output


def test_list_can_scope_to_one_opportunity(memory_gateway):
    result = runner.invoke(cli_main.app, ["candidates", "list", "--opportunity", "OPP1"])
    assert result.exit_code == 0, result.output
    assert "Taken" in result.output
    assert "Free" not in result.output


def test_export_writes_wire_names(memory_gateway, tmp_path):
    output = tmp_path / "candidates.json"
    result = runner.invoke(cli_main.app, ["export", "candidates", str(output)])
    assert result.exit_code == 0, result.output

    records = json.loads(output.read_text(encoding="utf-8"))
    assert {r["name"] for r in records} == {"Free", "Taken"}
    assert all("createdAt" in r for r in records)


def test_failures_render_their_kind(memory_gateway):
    result = runner.invoke(cli_main.app, ["candidates", "attach", "missing", "OPP1"])
    assert result.exit_code == 1
    assert "invalid_argument" in result.output


def test_saved_settings_merge_into_the_env_file(tmp_path):
    env_file = tmp_path / "crm" / ".env"
    save_user_settings({"user_id": "u1"}, env_file)
    save_user_settings({"remote_base_url": "https://gw.test", "user_id": None}, env_file)

    lines = env_file.read_text(encoding="utf-8").splitlines()
    assert "CRM_SYNC_USER_ID=u1" in lines
    assert "CRM_SYNC_REMOTE_BASE_URL=https://gw.test" in lines


def test_unknown_settings_are_not_written(tmp_path):
    env_file = tmp_path / ".env"
    with pytest.raises(ValueError):
        save_user_settings({"usr_id": "u1"}, env_file)
    assert not env_file.exists()
