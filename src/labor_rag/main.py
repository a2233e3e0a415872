import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from labor_rag.api.rag import router as rag_router
from labor_rag.config import get_settings
from labor_rag.ingest.models import DocumentType
from labor_rag.logging_config import configure_logging
from labor_rag.services.rag import RAGService, get_rag_service
from labor_rag.telemetry import emit_app_startup_event, emit_exception

settings = get_settings()
configure_logging(settings.log_dir)

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Labor Law Assistant API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(rag_router)


def _resolve_rag_service() -> RAGService:
    """Resolve the service while respecting FastAPI overrides."""

    override = app.dependency_overrides.get(get_rag_service)
    return override() if override is not None else get_rag_service()


@app.on_event("startup")
async def _preload_backend_laws() -> None:
    """Load the law files shipped with the backend; failures never block startup."""

    emit_app_startup_event()
    try:
        outcomes = await _resolve_rag_service().preload()
    except Exception as error:
        emit_exception(module=f"{__name__}.startup", error=error, suggestion="check BACKEND_LAWS_DIR")
        return
    LOGGER.info("Preloaded %s law files", sum(1 for outcome in outcomes if outcome.ok))


class HealthResponse(BaseModel):
    status: str
    law: int
    contract: int
    ts: str


@app.get("/health", response_model=HealthResponse)
def healthcheck(rag_service: RAGService = Depends(get_rag_service)) -> HealthResponse:
    """Liveness probe reporting the size of both corpora."""

    counts = rag_service.counts()
    return HealthResponse(
        status="OK",
        law=counts[DocumentType.LAW],
        contract=counts[DocumentType.CONTRACT],
        ts=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
