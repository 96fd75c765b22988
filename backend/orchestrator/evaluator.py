"""Evaluator: pick the winning submission with one judge call.

The judge scores submissions against a weighted rubric. Whenever its verdict
cannot be used the evaluator falls back to a deterministic choice, so a run
always makes progress once at least one submission exists.
"""

import math
from collections.abc import Sequence
from typing import Any

import structlog

from orchestrator.backends import BackendAdapter
from orchestrator.errors import AdapterError, EvaluationDecodeError, NoSubmissionsError
from orchestrator.llm import extract_json_from_response
from orchestrator.prompts import EVALUATOR_PROMPT
from orchestrator.types import EvaluationResult, Submission

logger = structlog.get_logger(__name__)

EXCERPT_MAX_CHARS = 1500
NEUTRAL_SCORE = 5.0
MIN_SCORE = 0.0
MAX_SCORE = 10.0


def clamp_score(value: Any) -> float | None:
    """Convert a judge-reported score to a float in [0, 10], or None."""
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(score):
        return None
    return round(min(MAX_SCORE, max(MIN_SCORE, score)), 2)


def _clip_with_ellipsis(content: str, max_chars: int) -> str:
    """Clip long strings and append a compact truncation marker."""
    if max_chars <= 0:
        return ""
    if len(content) <= max_chars:
        return content
    return f"{content[:max_chars]}..."


class Evaluator:
    """Score submissions and select a winner.

    Attributes:
        judge: Adapter used for scoring, or None to always use the fallback
        excerpt_chars: Maximum characters of each submission shown to the judge
    """

    def __init__(
        self,
        judge: BackendAdapter | None,
        excerpt_chars: int = EXCERPT_MAX_CHARS,
    ) -> None:
        self.judge = judge
        self.excerpt_chars = excerpt_chars

    @staticmethod
    def fallback_winner(submissions: Sequence[Submission]) -> Submission:
        """Deterministic winner used when the judge cannot decide.

        Submissions are ordered by backend id first so the choice does not
        depend on the order in which concurrent calls completed.
        """
        return min(submissions, key=lambda s: s.backend_id)

    async def select(
        self,
        prompt: str,
        submissions: Sequence[Submission],
    ) -> EvaluationResult:
        """Select the winning submission.

        Args:
            prompt: The user's original prompt
            submissions: Submissions collected by the fan-out

        Returns:
            EvaluationResult naming a backend from ``submissions``.

        Raises:
            NoSubmissionsError: If ``submissions`` is empty.
        """
        if not submissions:
            raise NoSubmissionsError("Nothing to evaluate")

        if len(submissions) == 1:
            only = submissions[0]
            logger.info("evaluation_skipped_single_submission", winner=only.backend_id)
            return EvaluationResult(winner_backend_id=only.backend_id, score=NEUTRAL_SCORE)

        if self.judge is None:
            return self._fallback(submissions, reason="no_judge")

        logger.info("evaluation_start", submission_count=len(submissions))

        try:
            reply = await self.judge.invoke(
                [{"role": "user", "content": self.build_prompt(prompt, submissions)}]
            )
        except AdapterError as e:
            logger.warning(
                "evaluation_call_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return self._fallback(submissions, reason="judge_call_failed")

        try:
            result = self.parse_verdict(reply, submissions)
        except EvaluationDecodeError as e:
            logger.warning(
                "evaluation_decode_failed",
                error=str(e),
                reply_preview=reply[:200],
            )
            return self._fallback(submissions, reason="decode_failed")

        logger.info(
            "evaluation_complete",
            winner=result.winner_backend_id,
            score=result.score,
        )
        return result

    def build_prompt(self, prompt: str, submissions: Sequence[Submission]) -> str:
        """Render the judge prompt with a bounded excerpt of each submission."""
        solutions = "\n".join(
            f"{i}. {s.backend_id}:\n```\n"
            f"{_clip_with_ellipsis(s.code, self.excerpt_chars)}\n```\n"
            for i, s in enumerate(submissions, start=1)
        )
        return EVALUATOR_PROMPT.format(
            count=len(submissions),
            prompt=prompt,
            solutions=solutions,
            example_id=submissions[0].backend_id,
        )

    @staticmethod
    def parse_verdict(
        reply: str,
        submissions: Sequence[Submission],
    ) -> EvaluationResult:
        """Turn the judge reply into an EvaluationResult.

        Raises:
            EvaluationDecodeError: If the reply has no JSON object, names no
                winner, or names a backend that did not submit.
        """
        parsed = extract_json_from_response(reply)
        if parsed is None:
            raise EvaluationDecodeError("judge reply contains no JSON object")

        by_id = {s.backend_id.lower(): s.backend_id for s in submissions}

        scores: dict[str, float] = {}
        raw_scores = parsed.get("scores")
        if isinstance(raw_scores, list):
            for entry in raw_scores:
                if not isinstance(entry, dict):
                    continue
                name = entry.get("backend") or entry.get("model")
                score = clamp_score(entry.get("score"))
                if isinstance(name, str) and name.lower() in by_id and score is not None:
                    scores[by_id[name.lower()]] = score

        winner_name = parsed.get("winner")
        if not isinstance(winner_name, str) or not winner_name.strip():
            raise EvaluationDecodeError("judge reply names no winner")

        winner_id = by_id.get(winner_name.strip().lower())
        if winner_id is None:
            raise EvaluationDecodeError(f"judge picked unknown backend {winner_name!r}")

        score = clamp_score(parsed.get("winnerScore"))
        if score is None:
            score = scores.get(winner_id, NEUTRAL_SCORE)

        return EvaluationResult(
            winner_backend_id=winner_id,
            score=score,
            judged=True,
            scores=scores,
        )

    def _fallback(
        self,
        submissions: Sequence[Submission],
        reason: str,
    ) -> EvaluationResult:
        winner = self.fallback_winner(submissions)
        logger.info("evaluation_fallback", winner=winner.backend_id, reason=reason)
        return EvaluationResult(winner_backend_id=winner.backend_id, score=NEUTRAL_SCORE)
