"""FastAPI application entry point.

Creates the app with a lifespan that initialises the shared Docker
runtime client, the language registry, the workspace manager, and the
sandbox controller.  Everything is stored in ``app.state`` and torn down
cleanly on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from remote_code import __version__
from remote_code.api.reporter import failure_response
from remote_code.api.router import api_router
from remote_code.config import Settings
from remote_code.executor import CodeExecutor
from remote_code.registry import LanguageRegistry
from remote_code.sandbox import (
    DockerRuntime,
    SandboxController,
    SandboxRuntime,
    SecurityPolicy,
    WorkspaceManager,
)

logger = logging.getLogger(__name__)


def build_executor(settings: Settings, runtime: SandboxRuntime) -> CodeExecutor:
    """Wire the request pipeline from *settings* around a shared *runtime*."""
    policy = SecurityPolicy(
        memory_limit_bytes=settings.memory_limit_bytes,
        timeout_seconds=settings.wait_timeout_seconds,
        pids_limit=settings.pids_limit,
        network_disabled=settings.network_disabled,
    )
    controller = SandboxController(
        runtime,
        policy=policy,
        mount_target=settings.mount_target,
        entry_env_var=settings.entry_env_var,
    )
    workspaces = WorkspaceManager(
        root=settings.workspace_root,
        prefix=settings.workspace_prefix,
    )
    return CodeExecutor(
        registry=LanguageRegistry(),
        workspaces=workspaces,
        controller=controller,
        max_concurrent=settings.max_concurrent_executions,
    )


def create_app(
    settings: Settings | None = None,
    runtime: SandboxRuntime | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Parameters
    ----------
    settings:
        Configuration; loaded from the environment when omitted.
    runtime:
        Container runtime to use.  When omitted a :class:`DockerRuntime`
        is created at startup and closed at shutdown.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan -- set up and tear down shared resources.

        On startup:
            1. Configure logging from :class:`Settings`.
            2. Create the shared container runtime client.
            3. Build the :class:`CodeExecutor` pipeline.
            4. Store all objects in ``app.state``.

        On shutdown:
            1. Close the runtime client if this app created it.
        """
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logger.info("Starting remote-code %s (log_level=%s)", __version__, settings.log_level)

        # ---- Runtime -----------------------------------------------------
        owned = runtime is None
        active_runtime = runtime or DockerRuntime(wait_workers=settings.wait_pool_size)

        # ---- Store in app.state ------------------------------------------
        app.state.settings = settings
        app.state.runtime = active_runtime
        app.state.executor = build_executor(settings, active_runtime)

        logger.info("Application startup complete")

        try:
            yield
        finally:
            # ---- Shutdown ------------------------------------------------
            logger.info("Shutting down remote-code")
            if owned:
                active_runtime.close()
            logger.info("Shutdown complete")

    app = FastAPI(
        title="remote-code",
        description="Sandboxed execution of untrusted source code.",
        version=__version__,
        lifespan=lifespan,
    )

    # ---- Middleware ------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    # ---- Error handlers --------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected malformed request body: %s", exc.errors())
        return failure_response(400)

    # ---- Routes ----------------------------------------------------------

    app.include_router(api_router)
    return app


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

app = create_app()


def serve() -> None:
    """Console entry point: serve :data:`app` with uvicorn."""
    settings = Settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
