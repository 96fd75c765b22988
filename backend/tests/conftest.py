"""Shared test fixtures for backend tests.

Provides scripted LLM clients, adapters, and registries so tests never
touch a real generation provider.
"""

import sys
from typing import Any

import pytest

# Ensure the backend package root is on sys.path so that absolute imports
# like ``from orchestrator.backends import ...`` resolve correctly when running
# pytest from the repository root.
_backend_root = str(
    __import__("pathlib").Path(__file__).resolve().parent.parent
)
if _backend_root not in sys.path:
    sys.path.insert(0, _backend_root)

from orchestrator.backends import (  # noqa: E402
    BACKEND_SPECS,
    BackendAdapter,
    BackendRegistry,
)
from orchestrator.llm import MockLLMClient  # noqa: E402
from orchestrator.types import GenerationRequest, Submission  # noqa: E402

TEST_API_KEY = "sk-test-0123456789"

SPECS_BY_ID = {spec.backend_id: spec for spec in BACKEND_SPECS}

TODO_APP_SOURCE = """\
import React, { useState } from 'react';

interface Todo {
  id: number;
  text: string;
  done: boolean;
}

export default function App() {
  const [todos, setTodos] = useState<Todo[]>([]);
  const [text, setText] = useState('');

  const add = (value: string): void => {
    setTodos([...todos, { id: Date.now(), text: value, done: false }]);
    setText('');
  };

  return (
    <div className="p-4">
      <input value={text} onChange={(e) => setText(e.target.value)} />
      <button onClick={() => add(text)}>Add</button>
      <ul>{todos.map((t) => <li key={t.id}>{t.text}</li>)}</ul>
    </div>
  );
}
"""

TODO_APP_REPLY = f"Here is the app:\n\n```tsx\n{TODO_APP_SOURCE}```\n"


# ---------------------------------------------------------------------------
# Adapters and registries
# ---------------------------------------------------------------------------


def make_adapter(
    backend_id: str,
    responses: list[str | Exception] | None = None,
    delay_seconds: float = 0.0,
    timeout_seconds: float = 5.0,
) -> BackendAdapter:
    """Create an adapter backed by its own scripted client."""
    return BackendAdapter(
        spec=SPECS_BY_ID[backend_id],
        model=f"test/{backend_id}",
        api_key=TEST_API_KEY,
        llm_client=MockLLMClient(responses=responses, delay_seconds=delay_seconds),
        timeout_seconds=timeout_seconds,
    )


def make_registry(
    replies: dict[str, list[str | Exception]],
    judge_responses: list[str | Exception] | None = None,
) -> BackendRegistry:
    """Registry with one adapter per entry of ``replies`` and an optional judge."""
    adapters = tuple(make_adapter(backend_id, responses) for backend_id, responses in replies.items())
    judge = make_adapter("openai", judge_responses) if judge_responses is not None else None
    return BackendRegistry(adapters=adapters, judge=judge)


def make_submission(backend_id: str, code: str = "function App() {}") -> Submission:
    return Submission(
        backend_id=backend_id,
        code=code,
        rationale=SPECS_BY_ID[backend_id].rationale,
        elapsed_ms=10,
    )


def fenced(language: str, body: str, lead_in: str = "") -> str:
    """Render one fenced block, optionally preceded by a lead-in line."""
    prefix = f"{lead_in}\n" if lead_in else ""
    return f"{prefix}```{language}\n{body}\n```\n"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def generation_request() -> GenerationRequest:
    return GenerationRequest(
        prompt="A todo list with filters",
        requirements=("add items", "filter items"),
        framework="React",
    )


@pytest.fixture()
def settings_overrides() -> dict[str, Any]:
    """Settings values that enable exactly two backends and the judge."""
    return {
        "openai_api_key": TEST_API_KEY,
        "anthropic_api_key": TEST_API_KEY,
        "xai_api_key": "",
        "groq_api_key": "your-groq-key-here",
        "deepseek_api_key": "",
        "gemini_api_key": "",
        "mistral_api_key": "",
        "judge_backend": "openai",
    }
