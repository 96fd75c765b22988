"""Core value types that flow through an orchestration run."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GenerationRequest:
    """The analyzed user request handed to every generation backend.

    Attributes:
        prompt: The user's original description of the application
        requirements: Short requirement phrases extracted by the analyzer
        framework: Target framework named by the analyzer
    """

    prompt: str
    requirements: tuple[str, ...]
    framework: str


@dataclass(frozen=True)
class Submission:
    """One backend's generated text for a run.

    Attributes:
        backend_id: Identifier of the backend that produced the code
        code: Raw text returned by the backend
        rationale: Short description of the backend's strengths
        elapsed_ms: Wall-clock latency of the generation call
    """

    backend_id: str
    code: str
    rationale: str
    elapsed_ms: int


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of the scoring pass.

    Attributes:
        winner_backend_id: Backend whose submission was selected
        score: Informational score in [0, 10]
        judged: True when the score came from a successful judge call
        scores: Per-backend scores reported by the judge, if any
    """

    winner_backend_id: str
    score: float
    judged: bool = False
    scores: dict[str, float] = field(default_factory=dict)
