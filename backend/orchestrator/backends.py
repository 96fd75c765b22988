"""Backend adapters and the immutable backend registry.

Every remote text-generation service is wrapped in a ``BackendAdapter`` that
exposes a single ``invoke(conversation) -> text`` capability. Adapters are
built once at startup from ``Settings`` and collected into a
``BackendRegistry``, which is passed to the orchestrator as a plain value.
"""

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog
from litellm.exceptions import Timeout

from config import Settings
from orchestrator.errors import (
    AdapterDisabledError,
    AdapterTimeoutError,
    AdapterTransportError,
)
from orchestrator.llm import LLMClient

logger = structlog.get_logger(__name__)

# Sentinel fragments found in the example values of .env templates.
_PLACEHOLDER_MARKERS = ("your", "changeme")


@dataclass(frozen=True)
class BackendSpec:
    """Static description of one supported provider.

    Attributes:
        backend_id: Stable identifier used in prompts, logs and results
        display_name: Human readable model name
        api_key_field: Settings attribute holding the credential
        model_field: Settings attribute holding the LiteLLM model id
        rationale: Short description of the backend's strengths
    """

    backend_id: str
    display_name: str
    api_key_field: str
    model_field: str
    rationale: str


BACKEND_SPECS: tuple[BackendSpec, ...] = (
    BackendSpec(
        "openai", "OpenAI GPT-4o", "openai_api_key", "openai_model",
        "Optimized for speed and reliability",
    ),
    BackendSpec(
        "claude", "Claude 3.5 Sonnet", "anthropic_api_key", "claude_model",
        "Excellent UI/UX design and code structure",
    ),
    BackendSpec(
        "grok", "Grok", "xai_api_key", "grok_model",
        "Creative problem-solving and reasoning",
    ),
    BackendSpec(
        "llama", "Llama-3.1-405B", "groq_api_key", "llama_model",
        "Superior coding logic and architecture",
    ),
    BackendSpec(
        "deepseek", "DeepSeek-Coder", "deepseek_api_key", "deepseek_model",
        "Specialized in clean, efficient code generation",
    ),
    BackendSpec(
        "gemini", "Gemini-1.5-Pro", "gemini_api_key", "gemini_model",
        "Strong at complex UI logic and interactions",
    ),
    BackendSpec(
        "mistral", "Mistral-Large-2", "mistral_api_key", "mistral_model",
        "Balanced performance across all tasks",
    ),
)


def has_credential(api_key: str | None) -> bool:
    """Return True if an API key looks like a real credential."""
    if not api_key or not api_key.strip():
        return False
    lowered = api_key.lower()
    return not any(marker in lowered for marker in _PLACEHOLDER_MARKERS)


class BackendAdapter:
    """Uniform capability wrapper around one remote generation service.

    Adapters hold read-only configuration only, so one instance can serve any
    number of concurrent calls.
    """

    def __init__(
        self,
        spec: BackendSpec,
        model: str,
        api_key: str,
        llm_client: LLMClient,
        temperature: float = 0.1,
        max_tokens: int | None = 4000,
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            spec: Static provider description
            model: LiteLLM model identifier
            api_key: Provider credential
            llm_client: Client used to reach the provider
            temperature: Sampling temperature for every call
            max_tokens: Maximum tokens per reply
            timeout_seconds: Default deadline for a single call

        Raises:
            AdapterDisabledError: If the credential is missing or a placeholder.
        """
        if not has_credential(api_key):
            raise AdapterDisabledError(spec.backend_id, "no credential configured")

        self.spec = spec
        self.model = model
        self._api_key = api_key
        self.llm_client = llm_client
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    @property
    def backend_id(self) -> str:
        return self.spec.backend_id

    @property
    def display_name(self) -> str:
        return self.spec.display_name

    def __repr__(self) -> str:
        return f"BackendAdapter(backend_id={self.backend_id!r}, model={self.model!r})"

    async def invoke(
        self,
        conversation: Sequence[Mapping[str, str]],
        timeout: float | None = None,
    ) -> str:
        """Send a conversation to the backend and return the reply text.

        Args:
            conversation: Ordered ``{"role", "content"}`` messages
            timeout: Deadline for this call (defaults to the adapter's)

        Returns:
            The reply content.

        Raises:
            AdapterTimeoutError: If the deadline expires.
            AdapterTransportError: On any provider or transport failure.
        """
        deadline = timeout if timeout is not None else self.timeout_seconds
        messages = [
            {"role": str(m["role"]), "content": str(m["content"])}
            for m in conversation
        ]

        try:
            response = await asyncio.wait_for(
                self.llm_client.call(
                    messages=messages,
                    model=self.model,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    api_key=self._api_key,
                    timeout=deadline,
                ),
                timeout=deadline,
            )
        except (TimeoutError, Timeout) as e:
            raise AdapterTimeoutError(self.backend_id, deadline) from e
        except Exception as e:
            raise AdapterTransportError(
                self.backend_id, f"{type(e).__name__}: {e}"
            ) from e

        return response.content


@dataclass(frozen=True)
class BackendStatus:
    """Availability of one provider, as reported by the status endpoint."""

    backend_id: str
    display_name: str
    active: bool
    is_judge: bool


@dataclass(frozen=True)
class BackendRegistry:
    """Immutable set of enabled generation adapters plus the judge.

    Attributes:
        adapters: Enabled generation adapters in provider-table order
        judge: Adapter used for analysis and evaluation, if configured
    """

    adapters: tuple[BackendAdapter, ...]
    judge: BackendAdapter | None = None

    def __post_init__(self) -> None:
        ids = [adapter.backend_id for adapter in self.adapters]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate backend ids in registry: {ids}")

    @property
    def backend_ids(self) -> list[str]:
        return [adapter.backend_id for adapter in self.adapters]

    def get(self, backend_id: str) -> BackendAdapter | None:
        return next(
            (a for a in self.adapters if a.backend_id == backend_id), None
        )

    def display_name(self, backend_id: str) -> str:
        spec = next((s for s in BACKEND_SPECS if s.backend_id == backend_id), None)
        return spec.display_name if spec else backend_id

    def status(self) -> list[BackendStatus]:
        """Report every known provider as active or disabled."""
        enabled = set(self.backend_ids)
        judge_id = self.judge.backend_id if self.judge else None
        return [
            BackendStatus(
                backend_id=spec.backend_id,
                display_name=spec.display_name,
                active=spec.backend_id in enabled,
                is_judge=spec.backend_id == judge_id,
            )
            for spec in BACKEND_SPECS
        ]


def build_backend_registry(
    config: Settings,
    llm_client: LLMClient | None = None,
) -> BackendRegistry:
    """Build the registry of enabled backends from settings.

    Providers without a credential are skipped. The judge reuses the
    credential of ``config.judge_backend`` with its own model and limits.

    Args:
        config: Application settings
        llm_client: Shared LLM client (creates a default one if None)

    Returns:
        The immutable BackendRegistry.
    """
    client = llm_client or LLMClient()
    adapters: list[BackendAdapter] = []
    judge: BackendAdapter | None = None

    for spec in BACKEND_SPECS:
        api_key = getattr(config, spec.api_key_field, "")
        try:
            adapter = BackendAdapter(
                spec=spec,
                model=getattr(config, spec.model_field),
                api_key=api_key,
                llm_client=client,
                temperature=config.generation_temperature,
                max_tokens=config.generation_max_tokens,
                timeout_seconds=config.generation_timeout_seconds,
            )
        except AdapterDisabledError:
            logger.debug("backend_disabled", backend_id=spec.backend_id)
            continue

        adapters.append(adapter)
        logger.info(
            "backend_enabled",
            backend_id=spec.backend_id,
            model=adapter.model,
        )

        if spec.backend_id == config.judge_backend:
            judge = BackendAdapter(
                spec=spec,
                model=config.judge_model,
                api_key=api_key,
                llm_client=client,
                temperature=config.judge_temperature,
                max_tokens=config.judge_max_tokens,
                timeout_seconds=config.judge_timeout_seconds,
            )

    if judge is None:
        logger.warning("judge_backend_unavailable", judge_backend=config.judge_backend)

    logger.info(
        "backend_registry_built",
        enabled=[a.backend_id for a in adapters],
        judge=judge.backend_id if judge else None,
    )
    return BackendRegistry(adapters=tuple(adapters), judge=judge)
