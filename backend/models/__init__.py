"""Models module for Pydantic schemas and generation persistence.

This module exposes all request/response models used by the API.
"""

from models.schemas import (
    GenerateRequest,
    GenerateResponse,
    GenerationRecord,
    HealthResponse,
    ModelsStatusResponse,
    ModelStatus,
)

__all__ = [
    "GenerateRequest",
    "GenerateResponse",
    "GenerationRecord",
    "HealthResponse",
    "ModelStatus",
    "ModelsStatusResponse",
]
