"""
Health Check Routes - System health and monitoring endpoints.

These endpoints are used for:
1. Load balancer health checks
2. Container liveness/readiness probes
3. Quick system status verification
"""
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from busy_assistant import __version__
from busy_assistant.core.logging_config import get_logger
from busy_assistant.database.connection import get_database
from busy_assistant.models.chat import HealthResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check endpoint",
    description="Returns 200 OK while the API process is up. Does not touch the database."
)
async def health_check() -> HealthResponse:
    logger.debug("Health check requested")

    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.utcnow()
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness check endpoint",
    description="""
    Returns whether the service is ready to accept requests.

    Verifies database connectivity; answers 503 when the database
    cannot be reached.
    """
)
def readiness_check():
    logger.debug("Readiness check requested")

    if get_database().check_connection():
        return HealthResponse(status="ready", version=__version__, database="ok")

    body = HealthResponse(status="not_ready", version=__version__, database="unreachable")
    return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
