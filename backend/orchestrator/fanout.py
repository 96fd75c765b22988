"""Fan-out coordinator: one concurrent generation call per enabled backend.

Every call owns an independent deadline. A slow or failing backend is
excluded from the result without cancelling or delaying its siblings, and
the coordinator returns only after every call has settled.
"""

import asyncio
import time
from collections.abc import Sequence

import structlog

from orchestrator.backends import BackendAdapter
from orchestrator.errors import AdapterError, NoSubmissionsError
from orchestrator.prompts import get_generation_prompt
from orchestrator.types import GenerationRequest, Submission

logger = structlog.get_logger(__name__)

GENERATION_TIMEOUT_SECONDS = 30.0


class FanOutCoordinator:
    """Dispatch one request to many backends and collect the submissions."""

    def __init__(self, timeout_seconds: float = GENERATION_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds

    async def generate(
        self,
        request: GenerationRequest,
        adapters: Sequence[BackendAdapter],
    ) -> list[Submission]:
        """Run every adapter concurrently and collect successful replies.

        Submissions come back in adapter order, which makes downstream
        tie-breaks reproducible across runs.

        Args:
            request: The analyzed request
            adapters: Enabled adapters for this run

        Returns:
            One Submission per backend that replied within its deadline.

        Raises:
            NoSubmissionsError: If no adapter is enabled or every call failed.
        """
        # One call per backend id; duplicates would break submission uniqueness.
        unique: dict[str, BackendAdapter] = {}
        for adapter in adapters:
            unique.setdefault(adapter.backend_id, adapter)
        adapters = list(unique.values())

        if not adapters:
            raise NoSubmissionsError("No generation backends are enabled")

        logger.info(
            "fan_out_start",
            backends=[a.backend_id for a in adapters],
            timeout_seconds=self.timeout_seconds,
        )
        start = time.monotonic()

        results = await asyncio.gather(
            *(self._generate_one(request, adapter) for adapter in adapters)
        )
        submissions = [s for s in results if s is not None]

        logger.info(
            "fan_out_complete",
            submitted=[s.backend_id for s in submissions],
            failed=len(adapters) - len(submissions),
            elapsed_ms=int((time.monotonic() - start) * 1000),
        )

        if not submissions:
            raise NoSubmissionsError(
                "No backend was able to generate code. Please check your API keys."
            )
        return submissions

    async def _generate_one(
        self,
        request: GenerationRequest,
        adapter: BackendAdapter,
    ) -> Submission | None:
        """Run a single backend; failures are logged and mapped to None."""
        prompt = get_generation_prompt(request, adapter.backend_id)
        start = time.monotonic()

        try:
            code = await adapter.invoke(
                [{"role": "user", "content": prompt}],
                timeout=self.timeout_seconds,
            )
        except AdapterError as e:
            logger.warning(
                "backend_generation_failed",
                backend_id=adapter.backend_id,
                error_type=type(e).__name__,
                error=str(e),
                elapsed_ms=int((time.monotonic() - start) * 1000),
            )
            return None

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if not code.strip():
            logger.warning(
                "backend_generation_empty",
                backend_id=adapter.backend_id,
                elapsed_ms=elapsed_ms,
            )
            return None

        logger.info(
            "backend_generation_complete",
            backend_id=adapter.backend_id,
            elapsed_ms=elapsed_ms,
            code_chars=len(code),
        )
        return Submission(
            backend_id=adapter.backend_id,
            code=code,
            rationale=adapter.spec.rationale,
            elapsed_ms=elapsed_ms,
        )
