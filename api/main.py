import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.routes.audio import router as audio_router
from core.errors import AudioApiError, StoreError
from infrastructure.metrics import get_metrics_response, record_request, record_store_error

logger = logging.getLogger(__name__)

app = FastAPI(title="Geotagged Audio API")

# CORS — allow browser clients during local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(audio_router)


def _operation(request: Request) -> str:
    """Name of the endpoint that handled ``request`` (for metrics labels)."""
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, "__name__", "unknown")


@app.exception_handler(AudioApiError)
async def _audio_api_error_handler(request: Request, exc: AudioApiError) -> JSONResponse:
    if isinstance(exc, StoreError):
        record_store_error(exc.status)
    if exc.status >= 500:
        # Client gets the generic message; the cause stays in the log
        logger.error(
            "%s %s failed: %r", request.method, request.url.path, exc, exc_info=exc.__cause__
        )
    else:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status, exc.message)
    record_request(operation=_operation(request), status=exc.status)
    return JSONResponse(status_code=exc.status, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(
        part for part in first.get("loc", ()) if isinstance(part, str) and part != "body"
    )
    message = "Invalid request."
    if location:
        message = f"Invalid {location}: {first.get('msg', 'invalid value')}"
    record_request(operation=_operation(request), status=400)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    record_request(operation=_operation(request), status=500)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/")
def server_time() -> str:
    """Return the current server time (ISO 8601, UTC)."""
    return datetime.now(UTC).isoformat()


@app.get("/health")
def health() -> dict[str, str]:
    """Return a simple liveness check."""
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns metrics in Prometheus text exposition format.
    Returns empty response if prometheus_client is not installed.
    """
    body, content_type = get_metrics_response()
    return Response(content=body, media_type=content_type)


if __name__ == "__main__":
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="Geotagged Audio API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (dev only)")
    parser.add_argument("--log-level", default="INFO", help="Root logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        "api.main:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
