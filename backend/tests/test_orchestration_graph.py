"""Tests for orchestrator/graph.py -- end-to-end runs over scripted backends.

Covers:
- Full run: analysis, fan-out, judged evaluation, bundle assembly
- Degraded runs: no judge, one submission, failing backends
- Failure: every backend failing, no backend enabled
"""

import json

import pytest

from orchestrator.errors import NoSubmissionsError
from orchestrator.evaluator import NEUTRAL_SCORE
from orchestrator.graph import create_initial_state, create_orchestrator
from tests.conftest import TODO_APP_REPLY, make_registry

PROMPT = "A todo list with filters"

ANALYSIS_REPLY = json.dumps(
    {"framework": "React", "requirements": ["add items", "filter items"], "complexity": "low"}
)

PLAIN_DOCUMENT_REPLY = "```html\n<!DOCTYPE html>\n<html><body>Todo</body></html>\n```"


def _verdict(winner: str, score: float) -> str:
    return json.dumps(
        {"scores": [{"backend": winner, "score": score}], "winner": winner, "winnerScore": score}
    )


class TestInitialState:
    def test_initial_state(self) -> None:
        state = create_initial_state(PROMPT)

        assert state["prompt"] == PROMPT
        assert state["status"] == "analyzing"
        assert state["submissions"] == []
        assert state["bundle"] is None


class TestOrchestrationRun:
    """Runs against registries of scripted adapters."""

    @pytest.mark.asyncio
    async def test_full_run_with_judge(self) -> None:
        registry = make_registry(
            {"openai": [TODO_APP_REPLY], "claude": [PLAIN_DOCUMENT_REPLY]},
            judge_responses=[ANALYSIS_REPLY, _verdict("openai", 8.7)],
        )
        result = await create_orchestrator(registry).run(PROMPT)

        assert result.winning_backend == "openai"
        assert result.code == TODO_APP_REPLY
        assert result.score == 8.7
        assert result.judged is True
        assert result.backend_ids == ["openai", "claude"]
        assert result.request.framework == "React"
        assert result.request.requirements == ("add items", "filter items")
        assert result.winning_submission().backend_id == "openai"
        assert set(result.bundle.paths) == {"App.tsx", "index.html", "package.json"}

    @pytest.mark.asyncio
    async def test_generation_prompt_uses_analysis(self) -> None:
        registry = make_registry(
            {"claude": [TODO_APP_REPLY]},
            judge_responses=[ANALYSIS_REPLY],
        )
        await create_orchestrator(registry).run(PROMPT)

        prompt = registry.adapters[0].llm_client.call_history[0]["messages"][0]["content"]
        assert "add items, filter items" in prompt

    @pytest.mark.asyncio
    async def test_single_submission_skips_evaluation(self) -> None:
        registry = make_registry(
            {"openai": [ConnectionError("reset")], "claude": [PLAIN_DOCUMENT_REPLY]},
            judge_responses=[ANALYSIS_REPLY],
        )
        result = await create_orchestrator(registry).run(PROMPT)

        assert result.winning_backend == "claude"
        assert result.score == NEUTRAL_SCORE
        assert result.judged is False
        assert result.bundle.paths == ["index.html"]
        assert len(registry.judge.llm_client.call_history) == 1

    @pytest.mark.asyncio
    async def test_run_without_judge(self) -> None:
        registry = make_registry({"grok": [TODO_APP_REPLY], "claude": [TODO_APP_REPLY]})
        result = await create_orchestrator(registry).run(PROMPT)

        assert result.request.framework == "generic UI"
        assert result.winning_backend == "claude"
        assert result.judged is False

    @pytest.mark.asyncio
    async def test_prose_winner_still_gets_entry_document(self) -> None:
        registry = make_registry({"mistral": ["I would use React with a list & a filter."]})
        result = await create_orchestrator(registry).run(PROMPT)

        assert result.bundle.paths == ["index.html"]
        assert "&amp; a filter" in result.bundle.entry_document

    @pytest.mark.asyncio
    async def test_every_backend_failing_raises(self) -> None:
        registry = make_registry(
            {"openai": [ConnectionError("reset")], "claude": [""]},
            judge_responses=[ANALYSIS_REPLY],
        )
        with pytest.raises(NoSubmissionsError, match="No backend was able"):
            await create_orchestrator(registry).run(PROMPT)

    @pytest.mark.asyncio
    async def test_no_backends_raises(self) -> None:
        with pytest.raises(NoSubmissionsError, match="No generation backends"):
            await create_orchestrator(make_registry({})).run(PROMPT)

    @pytest.mark.asyncio
    async def test_generation_timeout_is_applied(self) -> None:
        registry = make_registry({"openai": [TODO_APP_REPLY], "claude": [TODO_APP_REPLY]})
        slow = registry.get("openai")
        slow.llm_client.delay_seconds = 5.0

        result = await create_orchestrator(registry, generation_timeout_seconds=0.2).run(PROMPT)
        assert result.backend_ids == ["claude"]
