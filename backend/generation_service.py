"""Generation service: one HTTP request, one orchestration run.

The GenerationService coordinates between:
- OrchestrationGraph: analyze, fan out, evaluate, assemble
- PreviewDeployment: writes the winning bundle to the staging area
- GenerationStore: records the outcome for the history endpoints

Only the orchestration itself can fail a request. Deployment and storage
problems are logged and leave the corresponding fields empty.

Usage:
    >>> service = GenerationService(orchestrator, deployment, store)
    >>> outcome = await service.generate("A todo list with filters")
    >>> print(outcome.result.winning_backend, outcome.preview_url)
"""

import time
import uuid
from dataclasses import dataclass

import structlog

from deployment.preview import DeploymentWriteError, PreviewDeployment
from models.database import GenerationStore
from orchestrator.backends import BackendRegistry
from orchestrator.graph import OrchestrationGraph, OrchestrationResult

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of a served generation request.

    Attributes:
        generation_id: Identifier of the run (also the deployment id)
        result: The orchestration result
        preview_url: Preview URL, or None if deployment failed
        stored: Whether the run was recorded in the history
        completed_at: Unix timestamp of completion
    """

    generation_id: str
    result: OrchestrationResult
    preview_url: str | None
    stored: bool
    completed_at: float


class GenerationService:
    """Runs orchestrations and handles their side effects."""

    def __init__(
        self,
        orchestrator: OrchestrationGraph,
        deployment: PreviewDeployment | None = None,
        store: GenerationStore | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.deployment = deployment
        self.store = store

    @property
    def registry(self) -> BackendRegistry:
        return self.orchestrator.registry

    def _generate_id(self) -> str:
        return uuid.uuid4().hex[:8]

    async def generate(
        self,
        prompt: str,
        project_id: str | None = None,
    ) -> GenerationOutcome:
        """Run one generation request end to end.

        Args:
            prompt: The user's description of the application
            project_id: Optional project the run belongs to

        Returns:
            The GenerationOutcome.

        Raises:
            NoSubmissionsError: If no backend produced a submission.
        """
        generation_id = self._generate_id()
        log = logger.bind(generation_id=generation_id)
        log.info("generation_request_start", project_id=project_id)

        result = await self.orchestrator.run(prompt)

        preview_url = await self._deploy(result, generation_id)
        stored = await self._record(result, generation_id, prompt, project_id, preview_url)

        log.info(
            "generation_request_complete",
            winner=result.winning_backend,
            preview_url=preview_url,
            stored=stored,
        )
        return GenerationOutcome(
            generation_id=generation_id,
            result=result,
            preview_url=preview_url,
            stored=stored,
            completed_at=time.time(),
        )

    async def _deploy(self, result: OrchestrationResult, generation_id: str) -> str | None:
        if self.deployment is None:
            return None
        try:
            return await self.deployment.deploy(result.bundle, generation_id)
        except DeploymentWriteError as e:
            logger.error(
                "preview_deploy_failed",
                generation_id=generation_id,
                error=str(e),
            )
            return None

    async def _record(
        self,
        result: OrchestrationResult,
        generation_id: str,
        prompt: str,
        project_id: str | None,
        preview_url: str | None,
    ) -> bool:
        if self.store is None:
            return False
        return await self.store.save_generation(
            generation_id=generation_id,
            prompt=prompt,
            code=result.code,
            best_model=result.winning_backend,
            score=result.score,
            judged=result.judged,
            project_id=project_id,
            preview_url=preview_url,
            models=result.backend_ids,
            framework=result.request.framework,
            requirements=list(result.request.requirements),
        )
