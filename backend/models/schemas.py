"""Pydantic schemas for API request/response models.

This module defines all the data models used by the HTTP API.
All models use Pydantic v2 with strict type validation.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Request body for a generation run."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(
        min_length=1,
        max_length=10000,
        description="Natural-language description of the application",
        examples=["A todo list with filters for active and completed items"],
    )
    project_id: str | None = Field(
        default=None,
        alias="projectId",
        max_length=128,
        description="Optional project the generation belongs to",
    )


class GenerateResponse(BaseModel):
    """Outcome of a generation run."""

    model_config = ConfigDict(populate_by_name=True)

    generation_id: str = Field(
        alias="generationId",
        description="Identifier of the stored generation",
    )
    code: str = Field(
        description="Raw text of the winning submission",
    )
    model: str = Field(
        description="Backend id of the winning submission",
        examples=["claude"],
    )
    score: float = Field(
        ge=0.0,
        le=10.0,
        description="Informational score of the winner (0-10)",
    )
    judged: bool = Field(
        description="True if the score came from the judge rubric",
    )
    models: list[str] = Field(
        description="Backends that produced a submission",
        examples=[["openai", "claude", "grok"]],
    )
    files: list[str] = Field(
        default_factory=list,
        description="Paths of the assembled bundle",
        examples=[["App.tsx", "package.json", "index.html"]],
    )
    preview_url: str | None = Field(
        default=None,
        alias="previewUrl",
        description="Preview URL of the deployed bundle, if deployment succeeded",
    )
    timestamp: float = Field(
        description="Unix timestamp of completion",
    )


class GenerationRecord(BaseModel):
    """Stored generation, as returned by the history endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Generation identifier")
    project_id: str | None = Field(
        default=None,
        alias="projectId",
        description="Project the generation belongs to",
    )
    prompt: str = Field(description="The user's prompt")
    code: str = Field(description="Raw text of the winning submission")
    best_model: str = Field(
        alias="bestModel",
        description="Backend id of the winner",
    )
    score: float = Field(description="Informational score of the winner")
    judged: bool = Field(description="True if the score came from the judge")
    preview_url: str | None = Field(
        default=None,
        alias="previewUrl",
        description="Preview URL, if the bundle was deployed",
    )
    models: list[str] = Field(
        default_factory=list,
        description="Backends that produced a submission",
    )
    framework: str | None = Field(
        default=None,
        description="Framework named by requirement analysis",
    )
    requirements: list[str] = Field(
        default_factory=list,
        description="Requirement phrases named by requirement analysis",
    )
    created_at: float = Field(
        alias="createdAt",
        description="Unix timestamp of the run",
    )


class ModelStatus(BaseModel):
    """Availability of one generation backend."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Backend id", examples=["openai"])
    name: str = Field(description="Display name", examples=["OpenAI GPT-4o"])
    status: Literal["active", "disabled"] = Field(
        description="Whether the backend has a usable credential",
    )
    is_judge: bool = Field(
        default=False,
        alias="isJudge",
        description="True if the backend also serves as the judge",
    )


class ModelsStatusResponse(BaseModel):
    """Status of every known generation backend."""

    model_config = ConfigDict(populate_by_name=True)

    models: list[ModelStatus] = Field(description="One entry per known backend")
    total_active: int = Field(
        ge=0,
        alias="totalActive",
        description="Number of enabled backends",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"] = Field(
        description="Overall health status",
    )
    timestamp: float = Field(
        description="Current server timestamp",
    )
    version: str = Field(
        default="0.1.0",
        description="API version",
    )
    active_backends: int = Field(
        default=0,
        description="Number of enabled generation backends",
    )
    judge_available: bool = Field(
        default=False,
        description="Whether a judge backend is configured",
    )
