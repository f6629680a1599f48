"""Execute endpoint and language listing."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from remote_code.api.reporter import failure_response, report
from remote_code.errors import SourceTooLargeError, UnknownLanguageError
from remote_code.models.profile import ExecutionRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["execute"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class ExecutePayload(BaseModel):
    """Request body for ``POST /execute``."""

    type: str = Field(min_length=1, description="Language tag, e.g. 'python'.")
    code: str = Field(min_length=1, description="Source code to run in the sandbox.")


class LanguageInfo(BaseModel):
    name: str
    title: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/execute")
async def execute(body: ExecutePayload, request: Request) -> JSONResponse:
    """Run ``body.code`` in a fresh sandbox and return its combined output."""
    settings = request.app.state.settings
    executor = request.app.state.executor

    code_bytes = body.code.encode("utf-8")
    if len(code_bytes) > settings.max_code_size_bytes:
        logger.warning(
            "Rejected request: %s",
            SourceTooLargeError(len(code_bytes), settings.max_code_size_bytes),
        )
        return failure_response(413)

    try:
        outcome = await executor.execute(
            ExecutionRequest(language_tag=body.type, source_code=code_bytes)
        )
    except UnknownLanguageError as exc:
        logger.warning("Rejected request: %s", exc)
        return failure_response(400)

    return report(outcome)


@router.get("/languages", response_model=list[LanguageInfo])
async def list_languages(request: Request) -> list[LanguageInfo]:
    """List the language tags accepted by ``POST /execute``."""
    registry = request.app.state.executor.registry
    return [LanguageInfo(name=tag, title=profile.title) for tag, profile in registry.items()]
