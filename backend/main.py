"""HTTP entry point: wires settings, backends, deployment and history into FastAPI.

Usage:
    uv run uvicorn main:app --reload
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router, set_generation_service
from config import settings
from deployment import PreviewDeployment
from generation_service import GenerationService
from models.database import GenerationStore
from orchestrator import LLMClient, build_backend_registry, create_orchestrator

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared generation service before serving requests.

    Builds the immutable backend registry once, then the orchestrator,
    deployment sink and history store that every request shares.
    """
    logger.info(
        "application_starting",
        backend_port=settings.backend_port,
        log_level=settings.log_level,
        judge_backend=settings.judge_backend,
    )

    registry = build_backend_registry(settings, LLMClient())
    if not registry.adapters:
        logger.warning("no_backends_enabled")

    orchestrator = create_orchestrator(
        registry,
        generation_timeout_seconds=settings.generation_timeout_seconds,
        excerpt_chars=settings.evaluation_excerpt_chars,
    )

    deployment = PreviewDeployment(
        staging_dir=settings.staging_dir,
        staging_domain=settings.staging_domain,
        use_path_based=settings.use_path_based_previews,
        preview_base_url=settings.preview_base_url,
    )

    generation_store: GenerationStore | None = None
    try:
        generation_store = GenerationStore(settings.database_path)
        await generation_store.init()
    except Exception as e:
        # History is optional; generation still works without it.
        logger.warning("generation_store_unavailable", error=str(e))
        generation_store = None

    service = GenerationService(orchestrator, deployment, generation_store)
    set_generation_service(service)

    app.state.generation_service = service
    app.state.registry = registry

    logger.info("application_started", enabled_backends=registry.backend_ids)

    yield

    logger.info("application_shutdown_complete")


app = FastAPI(
    title="Multi-Backend Generation API",
    description="Fans a prompt out to several code-generation backends, "
    "picks a winner and deploys it as a runnable preview bundle.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router, tags=["generation"])


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint pointing at the API documentation."""
    return {
        "message": "Multi-Backend Generation API",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.backend_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
