"""Tests for api/routes.py -- HTTP endpoint handlers.

Uses FastAPI TestClient (backed by httpx) with a mocked GenerationService.
No real LLM calls are made.
"""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import api.routes as routes_module
from api.routes import router, set_generation_service
from artifacts.assembler import build_bundle
from generation_service import GenerationOutcome
from orchestrator.backends import BackendRegistry
from orchestrator.errors import NoSubmissionsError
from orchestrator.graph import OrchestrationResult
from orchestrator.types import GenerationRequest
from tests.conftest import TODO_APP_REPLY, make_adapter

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_outcome(preview_url: str | None = "http://localhost/preview/a1b2c3d4") -> GenerationOutcome:
    result = OrchestrationResult(
        code=TODO_APP_REPLY,
        winning_backend="claude",
        score=8.5,
        judged=True,
        backend_ids=["openai", "claude"],
        bundle=build_bundle(TODO_APP_REPLY),
        request=GenerationRequest(
            prompt="A todo list", requirements=("add items",), framework="React"
        ),
    )
    return GenerationOutcome(
        generation_id="a1b2c3d4",
        result=result,
        preview_url=preview_url,
        stored=True,
        completed_at=1700000000.0,
    )


def _make_row(generation_id: str = "a1b2c3d4", project_id: str | None = "proj-1") -> dict:
    return {
        "id": generation_id,
        "project_id": project_id,
        "prompt": "A todo list",
        "code": TODO_APP_REPLY,
        "best_model": "claude",
        "score": 8.5,
        "judged": True,
        "preview_url": "http://localhost/preview/a1b2c3d4",
        "models": ["openai", "claude"],
        "framework": "React",
        "requirements": ["add items"],
        "created_at": 1700000000.0,
    }


@pytest.fixture()
def mock_service() -> MagicMock:
    """Create a mock GenerationService."""
    service = MagicMock()
    service.generate = AsyncMock(return_value=_make_outcome())
    service.registry = BackendRegistry(
        adapters=(make_adapter("openai"), make_adapter("claude")),
        judge=make_adapter("openai"),
    )
    service.store = MagicMock()
    service.store.list_generations = AsyncMock(return_value=[_make_row()])
    service.store.get_generation = AsyncMock(return_value=_make_row())
    return service


@pytest.fixture()
def client(mock_service: MagicMock) -> Generator[TestClient, None, None]:
    """Create a FastAPI TestClient with a mocked generation service."""
    app = FastAPI()
    app.include_router(router)
    set_generation_service(mock_service)  # type: ignore[arg-type]
    with TestClient(app) as c:
        yield c


# =========================================================================
# Health Check
# =========================================================================


class TestHealthCheck:
    """GET /health."""

    def test_health_returns_200(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["active_backends"] == 2
        assert data["judge_available"] is True
        assert data["version"] == "0.1.0"

    def test_health_without_backends(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.registry = BackendRegistry(adapters=())
        data = client.get("/health").json()
        assert data["status"] == "unhealthy"
        assert data["judge_available"] is False

    def test_health_before_startup(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(routes_module, "_generation_service", None)
        app = FastAPI()
        app.include_router(router)
        with TestClient(app) as c:
            data = c.get("/health").json()
        assert data["status"] == "unhealthy"
        assert data["active_backends"] == 0


# =========================================================================
# Generate
# =========================================================================


class TestGenerate:
    """POST /api/generate."""

    def test_generate_success(self, client: TestClient, mock_service: MagicMock) -> None:
        resp = client.post(
            "/api/generate",
            json={"prompt": "A todo list", "projectId": "proj-1"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["generationId"] == "a1b2c3d4"
        assert data["model"] == "claude"
        assert data["score"] == 8.5
        assert data["judged"] is True
        assert data["models"] == ["openai", "claude"]
        assert set(data["files"]) == {"App.tsx", "index.html", "package.json"}
        assert data["previewUrl"] == "http://localhost/preview/a1b2c3d4"
        assert data["code"] == TODO_APP_REPLY
        mock_service.generate.assert_awaited_once_with("A todo list", project_id="proj-1")

    def test_generate_without_preview(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.generate = AsyncMock(return_value=_make_outcome(preview_url=None))
        resp = client.post("/api/generate", json={"prompt": "A todo list"})
        assert resp.status_code == 200
        assert resp.json()["previewUrl"] is None

    def test_generate_empty_prompt(self, client: TestClient) -> None:
        resp = client.post("/api/generate", json={"prompt": ""})
        assert resp.status_code == 422

    def test_generate_missing_prompt(self, client: TestClient) -> None:
        resp = client.post("/api/generate", json={})
        assert resp.status_code == 422

    def test_generate_no_submissions(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.generate = AsyncMock(
            side_effect=NoSubmissionsError("No backend was able to generate code.")
        )
        resp = client.post("/api/generate", json={"prompt": "A todo list"})
        assert resp.status_code == 502
        detail = resp.json()["detail"]
        assert detail["error"] == "Generation failed"
        assert "No backend" in detail["details"]


# =========================================================================
# Generation history
# =========================================================================


class TestGenerations:
    """GET /api/generations and /api/generations/{id}."""

    def test_list_generations(self, client: TestClient, mock_service: MagicMock) -> None:
        resp = client.get("/api/generations", params={"projectId": "proj-1", "limit": 5})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 1
        assert data[0]["bestModel"] == "claude"
        assert data[0]["projectId"] == "proj-1"
        assert data[0]["requirements"] == ["add items"]
        mock_service.store.list_generations.assert_awaited_once_with(project_id="proj-1", limit=5)

    def test_list_generations_limit_bounds(self, client: TestClient) -> None:
        assert client.get("/api/generations", params={"limit": 0}).status_code == 422
        assert client.get("/api/generations", params={"limit": 500}).status_code == 422

    def test_list_generations_without_store(
        self, client: TestClient, mock_service: MagicMock
    ) -> None:
        mock_service.store = None
        resp = client.get("/api/generations")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_get_generation(self, client: TestClient) -> None:
        resp = client.get("/api/generations/a1b2c3d4")
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == "a1b2c3d4"
        assert data["previewUrl"] == "http://localhost/preview/a1b2c3d4"
        assert data["createdAt"] == 1700000000.0

    def test_get_generation_not_found(self, client: TestClient, mock_service: MagicMock) -> None:
        mock_service.store.get_generation = AsyncMock(return_value=None)
        resp = client.get("/api/generations/missing")
        assert resp.status_code == 404


# =========================================================================
# Backend status
# =========================================================================


class TestModelsStatus:
    """GET /api/models/status."""

    def test_models_status(self, client: TestClient) -> None:
        resp = client.get("/api/models/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["totalActive"] == 2
        by_id = {m["id"]: m for m in data["models"]}
        assert by_id["openai"]["status"] == "active"
        assert by_id["openai"]["isJudge"] is True
        assert by_id["grok"]["status"] == "disabled"
        assert by_id["claude"]["name"] == "Claude 3.5 Sonnet"
        assert len(data["models"]) == 7
