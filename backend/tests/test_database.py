"""Tests for models/database.py -- SQLite generation history."""

from pathlib import Path

import pytest

from models.database import GenerationStore


class TestGenerationStore:
    @pytest.mark.asyncio
    async def test_init_creates_parent_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "a" / "b" / "generations.db"
        await GenerationStore(str(db_path)).init()
        assert db_path.exists()

    @pytest.mark.asyncio
    async def test_save_and_get(self, tmp_path: Path) -> None:
        store = GenerationStore(str(tmp_path / "generations.db"))
        await store.init()

        saved = await store.save_generation(
            generation_id="a1b2c3d4",
            prompt="A todo list",
            code="function App() {}",
            best_model="claude",
            score=8.5,
            judged=True,
            project_id="proj-1",
            preview_url="http://localhost/preview/a1b2c3d4",
            models=["openai", "claude"],
            framework="React",
            requirements=["add items"],
            created_at=1700000000.0,
        )
        row = await store.get_generation("a1b2c3d4")

        assert saved is True
        assert row is not None
        assert row["best_model"] == "claude"
        assert row["judged"] is True
        assert row["models"] == ["openai", "claude"]
        assert row["requirements"] == ["add items"]
        assert row["created_at"] == 1700000000.0

    @pytest.mark.asyncio
    async def test_missing_generation(self, tmp_path: Path) -> None:
        store = GenerationStore(str(tmp_path / "generations.db"))
        await store.init()
        assert await store.get_generation("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_is_not_saved(self, tmp_path: Path) -> None:
        store = GenerationStore(str(tmp_path / "generations.db"))
        await store.init()

        kwargs = {"prompt": "p", "code": "c", "best_model": "openai", "score": 5.0}
        assert await store.save_generation(generation_id="dup", **kwargs) is True
        assert await store.save_generation(generation_id="dup", **kwargs) is False

    @pytest.mark.asyncio
    async def test_list_newest_first_with_project_filter(self, tmp_path: Path) -> None:
        store = GenerationStore(str(tmp_path / "generations.db"))
        await store.init()

        for i, project in enumerate(["p1", "p2", "p1"]):
            await store.save_generation(
                generation_id=f"gen{i}",
                prompt="p",
                code="c",
                best_model="openai",
                score=5.0,
                project_id=project,
                created_at=1700000000.0 + i,
            )

        assert [r["id"] for r in await store.list_generations()] == ["gen2", "gen1", "gen0"]
        assert [r["id"] for r in await store.list_generations(project_id="p1")] == ["gen2", "gen0"]
        assert [r["id"] for r in await store.list_generations(limit=1)] == ["gen2"]

    @pytest.mark.asyncio
    async def test_errors_are_swallowed_before_init(self, tmp_path: Path) -> None:
        store = GenerationStore(str(tmp_path / "never-initialized.db"))

        assert await store.get_generation("x") is None
        assert await store.list_generations() == []
        assert await store.save_generation(
            generation_id="x", prompt="p", code="c", best_model="openai", score=5.0
        ) is False
