"""Tests for generation_service.py -- running orchestrations and their side effects."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from deployment.preview import DeploymentWriteError, PreviewDeployment
from generation_service import GenerationService
from models.database import GenerationStore
from orchestrator.errors import NoSubmissionsError
from orchestrator.graph import create_orchestrator
from tests.conftest import TODO_APP_REPLY, make_registry

ANALYSIS_REPLY = json.dumps({"framework": "React", "requirements": ["add items"]})


def _orchestrator(replies: dict | None = None):
    registry = make_registry(
        replies if replies is not None else {"claude": [TODO_APP_REPLY]},
        judge_responses=[ANALYSIS_REPLY],
    )
    return create_orchestrator(registry)


class TestGenerationService:
    @pytest.mark.asyncio
    async def test_generate_deploys_and_records(self, tmp_path: Path) -> None:
        store = GenerationStore(str(tmp_path / "generations.db"))
        await store.init()
        deployment = PreviewDeployment(str(tmp_path / "staging"))
        service = GenerationService(_orchestrator(), deployment, store)

        outcome = await service.generate("A todo list", project_id="proj-1")

        assert outcome.result.winning_backend == "claude"
        assert outcome.preview_url == f"http://localhost/preview/{outcome.generation_id}"
        assert outcome.stored is True
        assert (tmp_path / "staging" / f"app-{outcome.generation_id}" / "App.tsx").exists()

        row = await store.get_generation(outcome.generation_id)
        assert row is not None
        assert row["project_id"] == "proj-1"
        assert row["best_model"] == "claude"
        assert row["framework"] == "React"
        assert row["requirements"] == ["add items"]
        assert row["preview_url"] == outcome.preview_url

    @pytest.mark.asyncio
    async def test_generation_ids_are_unique(self) -> None:
        service = GenerationService(
            _orchestrator({"claude": [TODO_APP_REPLY, TODO_APP_REPLY]}),
        )
        service.orchestrator.registry.judge.llm_client.responses.append(ANALYSIS_REPLY)

        first = await service.generate("A todo list")
        second = await service.generate("A todo list")

        assert first.generation_id != second.generation_id
        assert len(first.generation_id) == 8

    @pytest.mark.asyncio
    async def test_without_deployment_or_store(self) -> None:
        outcome = await GenerationService(_orchestrator()).generate("A todo list")

        assert outcome.preview_url is None
        assert outcome.stored is False

    @pytest.mark.asyncio
    async def test_deployment_failure_keeps_result(self) -> None:
        deployment = MagicMock()
        deployment.deploy = AsyncMock(side_effect=DeploymentWriteError("disk full"))
        store = MagicMock()
        store.save_generation = AsyncMock(return_value=True)
        service = GenerationService(_orchestrator(), deployment, store)

        outcome = await service.generate("A todo list")

        assert outcome.preview_url is None
        assert outcome.result.code == TODO_APP_REPLY
        assert store.save_generation.await_args.kwargs["preview_url"] is None

    @pytest.mark.asyncio
    async def test_no_submissions_propagates(self) -> None:
        deployment = MagicMock()
        deployment.deploy = AsyncMock()
        service = GenerationService(
            _orchestrator({"claude": [ConnectionError("reset")]}), deployment
        )

        with pytest.raises(NoSubmissionsError):
            await service.generate("A todo list")
        deployment.deploy.assert_not_awaited()

    def test_registry_comes_from_orchestrator(self) -> None:
        orchestrator = _orchestrator()
        assert GenerationService(orchestrator).registry is orchestrator.registry
