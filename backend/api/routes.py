"""HTTP API routes for the generation backend.

This module defines the generation endpoint, the generation history
endpoints, backend status and the health check.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Annotated, Any

import structlog
from fastapi import APIRouter, HTTPException, Path, Query, status

from models.schemas import (
    GenerateRequest,
    GenerateResponse,
    GenerationRecord,
    HealthResponse,
    ModelsStatusResponse,
    ModelStatus,
)
from orchestrator.errors import NoSubmissionsError

if TYPE_CHECKING:
    from generation_service import GenerationService

logger = structlog.get_logger(__name__)

router = APIRouter()

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _to_record(row: dict[str, Any]) -> GenerationRecord:
    """Convert a persisted generation row to the API schema."""
    return GenerationRecord(
        id=row["id"],
        project_id=row.get("project_id"),
        prompt=row.get("prompt") or "",
        code=row.get("code") or "",
        best_model=row.get("best_model") or "",
        score=float(row.get("score") or 0.0),
        judged=bool(row.get("judged")),
        preview_url=row.get("preview_url"),
        models=row.get("models") or [],
        framework=row.get("framework"),
        requirements=row.get("requirements") or [],
        created_at=float(row.get("created_at") or 0.0),
    )


# Generation service dependency (set during application startup)
_generation_service: GenerationService | None = None


def set_generation_service(service: GenerationService) -> None:
    """Set the generation service instance for the routes.

    This should be called during application startup to inject the
    generation service dependency.

    Args:
        service: The GenerationService instance to use for all routes.
    """
    global _generation_service
    _generation_service = service
    logger.info("generation_service_configured")


def get_generation_service() -> GenerationService:
    """Get the generation service instance.

    Returns:
        The configured GenerationService instance.

    Raises:
        RuntimeError: If the generation service has not been configured.
    """
    if _generation_service is None:
        logger.error("generation_service_not_configured")
        raise RuntimeError(
            "GenerationService not configured. Call set_generation_service() during startup."
        )
    return _generation_service


@router.post(
    "/api/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate an application",
    description="Fan the prompt out to every enabled backend and return the winner.",
)
async def generate(request: GenerateRequest) -> GenerateResponse:
    """Run one orchestration for the prompt.

    Args:
        request: Prompt and optional project id.

    Returns:
        GenerateResponse with the winning code, backend, score and preview URL.

    Raises:
        HTTPException: 502 if no backend produced a submission.
    """
    service = get_generation_service()

    try:
        outcome = await service.generate(request.prompt, project_id=request.project_id)
    except NoSubmissionsError as e:
        logger.error("generation_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Generation failed", "details": str(e)},
        ) from e

    result = outcome.result
    return GenerateResponse(
        generation_id=outcome.generation_id,
        code=result.code,
        model=result.winning_backend,
        score=result.score,
        judged=result.judged,
        models=result.backend_ids,
        files=result.bundle.paths,
        preview_url=outcome.preview_url,
        timestamp=outcome.completed_at,
    )


@router.get(
    "/api/generations",
    response_model=list[GenerationRecord],
    summary="List generations",
    description="List recent generations, newest first.",
)
async def list_generations(
    project_id: Annotated[
        str | None, Query(alias="projectId", description="Only this project's generations")
    ] = None,
    limit: Annotated[int, Query(description="Maximum generations to return", ge=1, le=200)] = 20,
) -> list[GenerationRecord]:
    """List stored generations."""
    service = get_generation_service()
    if service.store is None:
        return []

    rows = await service.store.list_generations(project_id=project_id, limit=limit)
    return [_to_record(row) for row in rows]


@router.get(
    "/api/generations/{generation_id}",
    response_model=GenerationRecord,
    summary="Get generation",
    description="Get a single stored generation.",
)
async def get_generation(
    generation_id: Annotated[str, Path(description="Generation identifier")],
) -> GenerationRecord:
    """Get one stored generation.

    Raises:
        HTTPException: If the generation is not found.
    """
    service = get_generation_service()
    row = await service.store.get_generation(generation_id) if service.store else None
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Generation {generation_id} not found",
        )
    return _to_record(row)


@router.get(
    "/api/models/status",
    response_model=ModelsStatusResponse,
    summary="Backend status",
    description="Report every known generation backend as active or disabled.",
)
async def models_status() -> ModelsStatusResponse:
    """Report backend availability from the registry."""
    service = get_generation_service()
    models = [
        ModelStatus(
            id=entry.backend_id,
            name=entry.display_name,
            status="active" if entry.active else "disabled",
            is_judge=entry.is_judge,
        )
        for entry in service.registry.status()
    ]
    return ModelsStatusResponse(
        models=models,
        total_active=sum(1 for m in models if m.status == "active"),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Health check endpoint with backend availability.",
)
async def health_check() -> HealthResponse:
    """Health check endpoint.

    The service is healthy when at least one generation backend is enabled.

    Returns:
        HealthResponse with status, enabled backend count and judge availability.
    """
    active_backends = 0
    judge_available = False

    try:
        registry = get_generation_service().registry
        active_backends = len(registry.adapters)
        judge_available = registry.judge is not None
    except RuntimeError:
        # GenerationService not configured yet (e.g., during startup)
        pass

    overall_status = "healthy" if active_backends > 0 else "unhealthy"

    return HealthResponse(
        status=overall_status,
        timestamp=time.time(),
        active_backends=active_backends,
        judge_available=judge_available,
    )
