"""FastAPI application exposing the analysis pipeline."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from stockconsensus import __version__
from stockconsensus.domain.exceptions import RateLimitExceededError, StockConsensusError
from stockconsensus.infrastructure.config import get_settings
from stockconsensus.infrastructure.containers import Container, get_container
from stockconsensus.infrastructure.logging import configure_logging

logger = structlog.get_logger(__name__)

UNKNOWN_CALLER = "unknown"


class AnalysisRequest(BaseModel):
    identifier: str = Field(..., description="Instrument code (4 digits or 1-5 letters)")


def caller_key(request: Request) -> str:
    """Admission-control key of the calling client."""
    return request.client.host if request.client else UNKNOWN_CALLER


def create_app(container: Container | None = None) -> FastAPI:
    """Build the application around ``container`` (the global one by default)."""
    container = container or get_container()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await container.pipeline().aclose()
        logger.info("HTTP clients closed")

    app = FastAPI(title="Stock Consensus API", version=__version__, lifespan=lifespan)

    @app.exception_handler(StockConsensusError)
    async def handle_engine_error(request: Request, exc: StockConsensusError) -> JSONResponse:
        headers = exc.admission.headers() if isinstance(exc, RateLimitExceededError) else None
        logger.warning(
            "Request failed",
            path=request.url.path,
            code=exc.code,
            status_code=exc.http_status,
            error=exc.message,
        )
        return JSONResponse(exc.to_error_payload(), status_code=exc.http_status, headers=headers)

    @app.get("/health")
    async def health() -> dict[str, object]:
        missing = container.pipeline().missing_configuration()
        return {
            "status": "ok" if not missing else "degraded",
            "version": __version__,
            "missing_configuration": missing,
        }

    @app.post("/api/v1/analysis")
    async def analyze(body: AnalysisRequest, request: Request) -> JSONResponse:
        result = await container.pipeline().run(body.identifier, caller_key(request))
        return JSONResponse(
            {"success": True, "data": result.model_dump(mode="json")},
            headers=result.admission.headers(),
        )

    return app


def main() -> None:
    """Serve the API with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)
    uvicorn.run(create_app(), host=settings.api_host, port=settings.api_port)
