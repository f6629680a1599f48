"""Health and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Liveness probe -- always returns OK if the process is running."""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request) -> JSONResponse:
    """Readiness probe -- checks that the container runtime is reachable.

    Returns HTTP 200 with ``{"status": "ready"}`` when the Docker daemon
    answers a ping, or HTTP 503 with ``{"status": "not_ready"}`` otherwise.
    """
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is not None and await runtime.ping():
        return JSONResponse(content={"status": "ready"}, status_code=200)
    return JSONResponse(content={"status": "not_ready"}, status_code=503)
