"""Requirement analysis: one best-effort judge call per run."""

from typing import Any

import structlog

from orchestrator.backends import BackendAdapter
from orchestrator.errors import AdapterError
from orchestrator.llm import extract_json_from_response
from orchestrator.prompts import ANALYSIS_PROMPT
from orchestrator.types import GenerationRequest

logger = structlog.get_logger(__name__)

DEFAULT_FRAMEWORK = "generic UI"
DEFAULT_REQUIREMENTS: tuple[str, ...] = ("basic functionality",)
MAX_REQUIREMENTS = 10


def _coerce_framework(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _coerce_requirements(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, list):
        return None
    phrases = tuple(
        item.strip() for item in value if isinstance(item, str) and item.strip()
    )
    return phrases[:MAX_REQUIREMENTS] or None


class RequirementAnalyzer:
    """Classify a prompt into a target framework and a requirement list.

    Analysis only enriches the generation prompt. Any failure (no judge,
    timeout, transport error, undecodable reply) falls back to fixed
    defaults and never aborts the run.
    """

    def __init__(self, judge: BackendAdapter | None) -> None:
        self.judge = judge

    async def analyze(self, prompt: str) -> GenerationRequest:
        """Build the GenerationRequest for a prompt.

        Args:
            prompt: The user's description of the application

        Returns:
            A GenerationRequest; framework and requirements are the defaults
            whenever the judge reply cannot be used.
        """
        default = GenerationRequest(
            prompt=prompt,
            requirements=DEFAULT_REQUIREMENTS,
            framework=DEFAULT_FRAMEWORK,
        )

        if self.judge is None:
            logger.info("analysis_skipped_no_judge")
            return default

        try:
            reply = await self.judge.invoke(
                [{"role": "user", "content": ANALYSIS_PROMPT.format(prompt=prompt)}]
            )
        except AdapterError as e:
            logger.warning(
                "analysis_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return default

        parsed = extract_json_from_response(reply)
        if parsed is None:
            logger.warning("analysis_decode_failed", reply_preview=reply[:200])
            return default

        framework = _coerce_framework(parsed.get("framework")) or DEFAULT_FRAMEWORK
        requirements = (
            _coerce_requirements(parsed.get("requirements")) or DEFAULT_REQUIREMENTS
        )

        logger.info(
            "analysis_complete",
            framework=framework,
            requirements=list(requirements),
            complexity=parsed.get("complexity"),
        )
        return GenerationRequest(
            prompt=prompt,
            requirements=requirements,
            framework=framework,
        )
