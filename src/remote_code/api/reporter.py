"""Maps execution outcomes and rejections to HTTP responses.

Only a successful run returns program output.  Every failure returns the
same opaque message; the underlying cause has already been logged.
"""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse

from remote_code.models.outcome import Completed, ExecutionOutcome

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "something went wrong"


def failure_response(status_code: int = 500) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": status_code, "message": GENERIC_ERROR_MESSAGE},
    )


def report(outcome: ExecutionOutcome) -> JSONResponse:
    """Convert *outcome* into the transport envelope."""
    if isinstance(outcome, Completed):
        return JSONResponse(
            status_code=200,
            content={
                "status": 200,
                "response": outcome.captured_output.decode("utf-8", errors="replace"),
            },
        )
    logger.debug("Reporting failure outcome %s", outcome.kind.value)
    return failure_response(500)
