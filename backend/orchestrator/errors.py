"""Error taxonomy for the generation pipeline.

Only ``NoSubmissionsError`` is meant to reach an end user. Every other error
is recovered close to where it is raised and degrades the output instead of
aborting the run.
"""


class AdapterError(Exception):
    """Base class for per-call failures of a generation backend."""

    def __init__(self, backend_id: str, message: str) -> None:
        super().__init__(f"{backend_id}: {message}")
        self.backend_id = backend_id


class AdapterDisabledError(AdapterError):
    """Raised when a backend has no usable credential configured."""


class AdapterTimeoutError(AdapterError):
    """Raised when a backend call exceeds its deadline."""

    def __init__(self, backend_id: str, timeout_seconds: float) -> None:
        super().__init__(backend_id, f"timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class AdapterTransportError(AdapterError):
    """Raised on transport failures or error responses from a backend."""


class NoSubmissionsError(Exception):
    """Raised when a run ends without a single usable submission."""


class EvaluationDecodeError(ValueError):
    """Raised when the judge reply cannot be turned into a verdict."""

