"""Request pipeline: registry lookup, workspace, sandbox lifecycle.

:class:`CodeExecutor` owns one logical flow per request.  Flows share only
the read-only registry and the runtime client, so any number of them may
run concurrently on the same event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from remote_code.errors import ProvisioningError, UnknownLanguageError
from remote_code.models.outcome import ExecutionOutcome, ProvisioningFailed, RuntimeFailed
from remote_code.models.profile import ExecutionRequest
from remote_code.registry import LanguageRegistry
from remote_code.sandbox.controller import SandboxController
from remote_code.sandbox.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class CodeExecutor:
    """Runs one :class:`ExecutionRequest` end-to-end.

    Parameters
    ----------
    registry:
        Language tag -> execution profile table.
    workspaces:
        Creates and destroys the per-request workspace directory.
    controller:
        Drives the sandbox environment for a prepared workspace.
    max_concurrent:
        Upper bound on simultaneously provisioned environments.  ``0``
        means unbounded.
    """

    def __init__(
        self,
        registry: LanguageRegistry,
        workspaces: WorkspaceManager,
        controller: SandboxController,
        max_concurrent: int = 0,
    ) -> None:
        if max_concurrent < 0:
            raise ValueError("max_concurrent must be zero or a positive integer.")
        self._registry = registry
        self._workspaces = workspaces
        self._controller = controller
        self._slots = asyncio.Semaphore(max_concurrent) if max_concurrent else None

    @property
    def registry(self) -> LanguageRegistry:
        return self._registry

    async def execute(self, request: ExecutionRequest) -> ExecutionOutcome:
        """Execute *request* and return its single outcome.

        Raises
        ------
        UnknownLanguageError
            If the language tag is not registered.  Nothing has been
            created on disk or in the runtime at that point.
        """
        profile = self._registry.lookup(request.language_tag)
        if profile is None:
            raise UnknownLanguageError(request.language_tag)

        slot = self._slots if self._slots is not None else contextlib.nullcontext()
        async with slot:
            try:
                with self._workspaces.open(profile, request.source_code) as workspace:
                    outcome = await self._controller.run(workspace, profile)
            except ProvisioningError as exc:
                logger.error("Workspace %s failed: %s", exc.stage, exc.cause)
                return ProvisioningFailed(stage=exc.stage, cause=str(exc.cause))
            except Exception as exc:
                logger.exception("Unexpected error while executing %s code", request.language_tag)
                return RuntimeFailed(stage="internal", cause=repr(exc))

        logger.info(
            "Execution finished: language=%s outcome=%s",
            request.language_tag,
            outcome.kind.value,
        )
        return outcome
