"""Multi-backend generation orchestrator.

This module exports the components of an orchestration run:
- Backend adapters and the immutable registry built from settings
- Requirement analysis, fan-out, and evaluation stages
- The LangGraph orchestration graph that wires the stages together
- The LiteLLM client with retries and its scripted test double
"""

from orchestrator.analyzer import RequirementAnalyzer
from orchestrator.backends import (
    BACKEND_SPECS,
    BackendAdapter,
    BackendRegistry,
    BackendSpec,
    BackendStatus,
    build_backend_registry,
)
from orchestrator.errors import (
    AdapterDisabledError,
    AdapterError,
    AdapterTimeoutError,
    AdapterTransportError,
    EvaluationDecodeError,
    NoSubmissionsError,
)
from orchestrator.evaluator import Evaluator
from orchestrator.fanout import FanOutCoordinator
from orchestrator.graph import (
    OrchestrationGraph,
    OrchestrationResult,
    OrchestrationState,
    create_orchestrator,
)
from orchestrator.llm import (
    CallUsage,
    LLMClient,
    LLMResponse,
    MockLLMClient,
    extract_json_from_response,
)
from orchestrator.types import EvaluationResult, GenerationRequest, Submission

__all__ = [
    # Backends
    "BACKEND_SPECS",
    "BackendAdapter",
    "BackendRegistry",
    "BackendSpec",
    "BackendStatus",
    "build_backend_registry",
    # Errors
    "AdapterDisabledError",
    "AdapterError",
    "AdapterTimeoutError",
    "AdapterTransportError",
    "EvaluationDecodeError",
    "NoSubmissionsError",
    # Stages
    "RequirementAnalyzer",
    "FanOutCoordinator",
    "Evaluator",
    # Graph
    "OrchestrationGraph",
    "OrchestrationResult",
    "OrchestrationState",
    "create_orchestrator",
    # LLM
    "CallUsage",
    "LLMClient",
    "LLMResponse",
    "MockLLMClient",
    "extract_json_from_response",
    # Types
    "EvaluationResult",
    "GenerationRequest",
    "Submission",
]
