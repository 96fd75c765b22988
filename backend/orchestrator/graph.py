"""Orchestration graph: analyze, fan out, evaluate, assemble.

Graph structure:
    START -> analyze -> generate -> evaluate -> assemble -> END
                           |
                           +-> END (no submissions)

One ``run`` call is one orchestration run. The backend registry is passed in
at construction and is the only state shared between runs.
"""

import time
from dataclasses import dataclass, field
from typing import Literal, TypedDict

import structlog
from langgraph.graph import END, START, StateGraph

from artifacts.assembler import Bundle, build_bundle
from orchestrator.analyzer import RequirementAnalyzer
from orchestrator.backends import BackendRegistry
from orchestrator.errors import NoSubmissionsError
from orchestrator.evaluator import EXCERPT_MAX_CHARS, Evaluator
from orchestrator.fanout import GENERATION_TIMEOUT_SECONDS, FanOutCoordinator
from orchestrator.types import EvaluationResult, GenerationRequest, Submission

logger = structlog.get_logger(__name__)


class OrchestrationState(TypedDict):
    """State flowing through the orchestration graph.

    Attributes:
        prompt: The user's original prompt
        request: Analyzed request, set by the analyze node
        submissions: Successful generations, in adapter order
        evaluation: Winner selection, set by the evaluate node
        bundle: Assembled bundle of the winning submission
        status: Current graph status
        error_message: Reason the run failed, if it did
    """

    prompt: str
    request: GenerationRequest | None
    submissions: list[Submission]
    evaluation: EvaluationResult | None
    bundle: Bundle | None
    status: Literal["analyzing", "generating", "evaluating", "assembling", "complete", "failed"]
    error_message: str | None


def create_initial_state(prompt: str) -> OrchestrationState:
    return OrchestrationState(
        prompt=prompt,
        request=None,
        submissions=[],
        evaluation=None,
        bundle=None,
        status="analyzing",
        error_message=None,
    )


@dataclass(frozen=True)
class OrchestrationResult:
    """Outcome of a successful run.

    Attributes:
        code: Raw text of the winning submission
        winning_backend: Backend id of the winner
        score: Informational score in [0, 10]
        judged: True if the score came from the judge
        backend_ids: Backends that produced a submission, in adapter order
        bundle: Runnable bundle built from the winning text
        request: The analyzed request sent to every backend
        submissions: Every submission of the run
        scores: Per-backend judge scores, when the judge reported them
    """

    code: str
    winning_backend: str
    score: float
    judged: bool
    backend_ids: list[str]
    bundle: Bundle
    request: GenerationRequest
    submissions: list[Submission] = field(default_factory=list)
    scores: dict[str, float] = field(default_factory=dict)

    def winning_submission(self) -> Submission:
        return next(s for s in self.submissions if s.backend_id == self.winning_backend)


class OrchestrationGraph:
    """Multi-backend generation run as a LangGraph StateGraph.

    Usage:
        >>> graph = OrchestrationGraph(registry)
        >>> result = await graph.run("A todo list with filters")
    """

    def __init__(
        self,
        registry: BackendRegistry,
        generation_timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
        excerpt_chars: int = EXCERPT_MAX_CHARS,
    ) -> None:
        """Initialize the graph.

        Args:
            registry: Enabled adapters and the judge
            generation_timeout_seconds: Deadline of each fan-out call
            excerpt_chars: Characters of each submission shown to the judge
        """
        self.registry = registry
        self.analyzer = RequirementAnalyzer(registry.judge)
        self.coordinator = FanOutCoordinator(timeout_seconds=generation_timeout_seconds)
        self.evaluator = Evaluator(registry.judge, excerpt_chars=excerpt_chars)
        self._compiled_graph = self._build_graph()

    def _build_graph(self):
        graph = StateGraph(OrchestrationState)

        graph.add_node("analyze", self._analyze)
        graph.add_node("generate", self._generate)
        graph.add_node("evaluate", self._evaluate)
        graph.add_node("assemble", self._assemble)

        graph.add_edge(START, "analyze")
        graph.add_edge("analyze", "generate")

        # Nothing to evaluate when every backend failed.
        graph.add_conditional_edges(
            "generate",
            self._route_after_generate,
            {"evaluate": "evaluate", "end": END},
        )

        graph.add_edge("evaluate", "assemble")
        graph.add_edge("assemble", END)

        return graph.compile()

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    async def _analyze(self, state: OrchestrationState) -> dict:
        request = await self.analyzer.analyze(state["prompt"])
        return {"request": request, "status": "generating"}

    async def _generate(self, state: OrchestrationState) -> dict:
        request = state["request"]
        assert request is not None

        try:
            submissions = await self.coordinator.generate(request, self.registry.adapters)
        except NoSubmissionsError as e:
            logger.error("generation_failed", error=str(e))
            return {"submissions": [], "status": "failed", "error_message": str(e)}

        return {"submissions": submissions, "status": "evaluating"}

    def _route_after_generate(self, state: OrchestrationState) -> str:
        return "end" if state["status"] == "failed" else "evaluate"

    async def _evaluate(self, state: OrchestrationState) -> dict:
        evaluation = await self.evaluator.select(state["prompt"], state["submissions"])
        return {"evaluation": evaluation, "status": "assembling"}

    async def _assemble(self, state: OrchestrationState) -> dict:
        evaluation = state["evaluation"]
        assert evaluation is not None

        winner = next(
            s for s in state["submissions"]
            if s.backend_id == evaluation.winner_backend_id
        )
        bundle = build_bundle(winner.code)
        return {"bundle": bundle, "status": "complete"}

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def run(self, prompt: str) -> OrchestrationResult:
        """Run one orchestration.

        Args:
            prompt: The user's description of the application

        Returns:
            The OrchestrationResult of the run.

        Raises:
            NoSubmissionsError: If no backend produced a submission.
        """
        logger.info(
            "orchestration_start",
            prompt_chars=len(prompt),
            backends=self.registry.backend_ids,
            judge=self.registry.judge.backend_id if self.registry.judge else None,
        )
        start = time.monotonic()

        final_state = await self._compiled_graph.ainvoke(create_initial_state(prompt))

        if final_state["status"] != "complete":
            raise NoSubmissionsError(final_state["error_message"] or "Generation failed")

        evaluation = final_state["evaluation"]
        submissions = final_state["submissions"]
        winner = next(s for s in submissions if s.backend_id == evaluation.winner_backend_id)

        logger.info(
            "orchestration_complete",
            winner=winner.backend_id,
            score=evaluation.score,
            judged=evaluation.judged,
            bundle_paths=final_state["bundle"].paths,
            elapsed_ms=int((time.monotonic() - start) * 1000),
        )
        return OrchestrationResult(
            code=winner.code,
            winning_backend=winner.backend_id,
            score=evaluation.score,
            judged=evaluation.judged,
            backend_ids=[s.backend_id for s in submissions],
            bundle=final_state["bundle"],
            request=final_state["request"],
            submissions=list(submissions),
            scores=dict(evaluation.scores),
        )


def create_orchestrator(
    registry: BackendRegistry,
    generation_timeout_seconds: float = GENERATION_TIMEOUT_SECONDS,
    excerpt_chars: int = EXCERPT_MAX_CHARS,
) -> OrchestrationGraph:
    """Factory function to create the orchestration graph.

    Args:
        registry: Enabled adapters and the judge
        generation_timeout_seconds: Deadline of each fan-out call
        excerpt_chars: Characters of each submission shown to the judge

    Returns:
        Configured OrchestrationGraph instance
    """
    return OrchestrationGraph(
        registry=registry,
        generation_timeout_seconds=generation_timeout_seconds,
        excerpt_chars=excerpt_chars,
    )
