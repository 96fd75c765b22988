"""SQLite-based generation history using aiosqlite.

This module provides the GenerationStore class for persisting the outcome of
each orchestration run. All operations are async and designed to fail
gracefully -- a database error should never break a generation run.

Tables:
    generations: One row per successful run (winner, score, preview URL, ...).

Usage:
    >>> from models.database import GenerationStore
    >>> store = GenerationStore("./data/generations.db")
    >>> await store.init()
    >>> await store.save_generation(
    ...     generation_id="gen_abc123",
    ...     prompt="Build a todo app",
    ...     code="...",
    ...     best_model="claude",
    ...     score=8.5,
    ... )
"""

import json
import time
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

logger = structlog.get_logger(__name__)

_JSON_LIST_COLUMNS = ("models", "requirements")


def _decode_row(row: aiosqlite.Row) -> dict[str, Any]:
    record = dict(row)
    for column in _JSON_LIST_COLUMNS:
        try:
            record[column] = json.loads(record[column]) if record.get(column) else []
        except json.JSONDecodeError:
            record[column] = []
    record["judged"] = bool(record.get("judged"))
    return record


class GenerationStore:
    """Async SQLite store for generation history.

    All public methods except ``init`` catch exceptions internally and log
    errors rather than propagating them.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        """Initialize the generation store.

        Args:
            db_path: SQLite file; missing parent directories are made by init().
        """
        self.db_path = db_path

    async def init(self) -> None:
        """Create database tables if they do not exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS generations (
                        id TEXT PRIMARY KEY,
                        project_id TEXT,
                        prompt TEXT NOT NULL,
                        code TEXT NOT NULL,
                        best_model TEXT NOT NULL,
                        score REAL NOT NULL,
                        judged INTEGER NOT NULL DEFAULT 0,
                        preview_url TEXT,
                        models TEXT,
                        framework TEXT,
                        requirements TEXT,
                        created_at REAL NOT NULL
                    )
                """)
                await db.execute("""
                    CREATE INDEX IF NOT EXISTS idx_generations_project_created
                    ON generations(project_id, created_at DESC)
                """)
                await db.commit()
            logger.info("generation_store_initialized", db_path=self.db_path)
        except Exception as e:
            logger.error(
                "generation_store_init_failed",
                db_path=self.db_path,
                error=str(e),
            )
            raise

    async def save_generation(
        self,
        generation_id: str,
        prompt: str,
        code: str,
        best_model: str,
        score: float,
        judged: bool = False,
        project_id: str | None = None,
        preview_url: str | None = None,
        models: list[str] | None = None,
        framework: str | None = None,
        requirements: list[str] | None = None,
        created_at: float | None = None,
    ) -> bool:
        """Insert a generation record.

        Returns:
            True if the record was written.
        """
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    INSERT INTO generations
                        (id, project_id, prompt, code, best_model, score, judged,
                         preview_url, models, framework, requirements, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        generation_id,
                        project_id,
                        prompt,
                        code,
                        best_model,
                        score,
                        int(judged),
                        preview_url,
                        json.dumps(models or []),
                        framework,
                        json.dumps(requirements or []),
                        created_at or time.time(),
                    ),
                )
                await db.commit()
            logger.debug(
                "generation_saved",
                generation_id=generation_id,
                best_model=best_model,
            )
            return True
        except Exception as e:
            logger.error(
                "generation_save_failed",
                generation_id=generation_id,
                error=str(e),
            )
            return False

    async def get_generation(self, generation_id: str) -> dict[str, Any] | None:
        """Retrieve a single generation by its ID.

        Returns:
            A dict with generation fields, or None if not found.
        """
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT * FROM generations WHERE id = ?",
                    (generation_id,),
                )
                row = await cursor.fetchone()
                return _decode_row(row) if row is not None else None
        except Exception as e:
            logger.error(
                "generation_get_failed",
                generation_id=generation_id,
                error=str(e),
            )
            return None

    async def list_generations(
        self,
        project_id: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """List recent generations, newest first.

        Args:
            project_id: Only return generations of this project, if given.
            limit: Maximum number of generations to return.

        Returns:
            List of generation dicts.
        """
        query = "SELECT * FROM generations"
        params: tuple[Any, ...] = ()
        if project_id is not None:
            query += " WHERE project_id = ?"
            params = (project_id,)
        query += " ORDER BY created_at DESC LIMIT ?"
        params += (limit,)

        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(query, params)
                rows = await cursor.fetchall()
                return [_decode_row(row) for row in rows]
        except Exception as e:
            logger.error(
                "generation_list_failed",
                project_id=project_id,
                error=str(e),
            )
            return []
