"""Sandbox lifecycle controller: provision, start, race, collect, tear down."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from remote_code.errors import SandboxRuntimeError
from remote_code.models.enums import SandboxState
from remote_code.models.outcome import (
    OOM_EXIT_CODE,
    Completed,
    ExecutionOutcome,
    OutOfMemory,
    ProvisioningFailed,
    RuntimeFailed,
    TimedOut,
)
from remote_code.models.profile import ExecutionProfile
from remote_code.sandbox.runtime import BindMount, SandboxRuntime
from remote_code.sandbox.security import SecurityPolicy
from remote_code.sandbox.workspace import Workspace

logger = logging.getLogger(__name__)

# Label attached to every environment this service creates.  The OOM
# prune is restricted to environments carrying it.
MANAGED_LABELS: dict[str, str] = {"remote-code.managed": "true"}


@dataclass
class SandboxEnvironment:
    """One ephemeral execution context, bound 1:1 to a workspace."""

    workspace: Workspace
    memory_limit_bytes: int
    id: str | None = None
    state: SandboxState = field(default=SandboxState.PROVISIONING)

    @property
    def short_id(self) -> str:
        return self.id[:12] if self.id else "-"

    def transition(self, state: SandboxState) -> None:
        logger.debug("Container %s: %s -> %s", self.short_id, self.state, state)
        self.state = state


class SandboxController:
    """Drives one sandbox environment per call to :meth:`run`.

    Each run creates a fresh container bound to the request workspace,
    starts it, races its exit against the error signal and the deadline,
    collects the combined output on a normal exit, and **unconditionally**
    force-removes the container once it exists.  Every path returns
    exactly one :data:`~remote_code.models.outcome.ExecutionOutcome`.

    Parameters
    ----------
    runtime:
        Shared container runtime, safe for concurrent use.
    policy:
        Resource limits and the await deadline.
    mount_target:
        In-container path the workspace is bind-mounted to.
    entry_env_var:
        Environment variable that tells the image's entrypoint which file
        to run.
    """

    def __init__(
        self,
        runtime: SandboxRuntime,
        policy: SecurityPolicy | None = None,
        mount_target: str = "/app",
        entry_env_var: str = "FILE_NAME",
    ) -> None:
        self._runtime = runtime
        self._policy = policy or SecurityPolicy()
        self._mount_target = mount_target
        self._entry_env_var = entry_env_var
        # Ids of environments created by this controller and not yet torn
        # down.  The OOM prune must never touch them.
        self._in_flight: set[str] = set()

    @property
    def policy(self) -> SecurityPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, workspace: Workspace, profile: ExecutionProfile) -> ExecutionOutcome:
        env = SandboxEnvironment(
            workspace=workspace,
            memory_limit_bytes=self._policy.memory_limit_bytes,
        )

        # ---- 1. Provision ------------------------------------------------
        try:
            env_id = await self._runtime.create_environment(
                image=profile.image,
                environment={self._entry_env_var: profile.filename},
                mounts=[BindMount(source=str(workspace.path), target=self._mount_target)],
                host_config=self._policy.to_host_config(),
                labels=MANAGED_LABELS,
            )
        except SandboxRuntimeError as exc:
            env.transition(SandboxState.FAILED)
            logger.error("Container create failed (image=%s): %s", profile.image, exc.cause)
            return ProvisioningFailed(stage=exc.operation, cause=str(exc.cause))

        env.id = env_id
        self._in_flight.add(env_id)
        logger.info(
            "Container created: id=%s image=%s workspace=%s",
            env.short_id,
            profile.image,
            env.workspace.path,
        )

        try:
            return await self._drive(env, env_id)
        finally:
            # ---- 5. ALWAYS remove the container ---------------------------
            await self._teardown(env, env_id)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _drive(self, env: SandboxEnvironment, env_id: str) -> ExecutionOutcome:
        # ---- 2. Start ----------------------------------------------------
        env.transition(SandboxState.STARTING)
        try:
            await self._runtime.start(env_id)
        except SandboxRuntimeError as exc:
            return self._failed(env, exc)
        env.transition(SandboxState.RUNNING)

        # ---- 3. Race exit status, wait error and deadline ----------------
        status, error = self._runtime.await_not_running(env_id)
        deadline = asyncio.ensure_future(asyncio.sleep(self._policy.timeout_seconds))
        try:
            done, _pending = await asyncio.wait(
                {status, error, deadline}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for fut in (status, error, deadline):
                if not fut.done():
                    fut.cancel()

        if error in done:
            cause = error.result()
            if not isinstance(cause, SandboxRuntimeError):
                cause = SandboxRuntimeError("wait", cause)
            return self._failed(env, cause)

        if status not in done:
            env.transition(SandboxState.TIMED_OUT)
            logger.warning(
                "Container %s still running after %ss, removing",
                env.short_id,
                self._policy.timeout_seconds,
            )
            return TimedOut(timeout_seconds=self._policy.timeout_seconds)

        exit_code = status.result()
        if exit_code == OOM_EXIT_CODE:
            env.transition(SandboxState.OUT_OF_MEMORY)
            logger.warning("Container %s: out of memory (exit %d)", env.short_id, exit_code)
            try:
                await self._runtime.prune_stopped(
                    MANAGED_LABELS, exclude=frozenset(self._in_flight)
                )
            except SandboxRuntimeError as exc:
                logger.warning("Prune after OOM failed: %s", exc.cause)
            return OutOfMemory(exit_code=exit_code)

        # ---- 4. Collect combined stdout/stderr --------------------------
        try:
            output = await self._runtime.fetch_logs(env_id)
        except SandboxRuntimeError as exc:
            return self._failed(env, exc)

        env.transition(SandboxState.COMPLETED)
        logger.info(
            "Container %s exited: code=%d output=%d bytes",
            env.short_id,
            exit_code,
            len(output),
        )
        return Completed(captured_output=output, exit_code=exit_code)

    def _failed(self, env: SandboxEnvironment, exc: SandboxRuntimeError) -> RuntimeFailed:
        env.transition(SandboxState.FAILED)
        logger.error(
            "Container %s: %s failed: %s", env.short_id, exc.operation, exc.cause
        )
        return RuntimeFailed(stage=exc.operation, cause=str(exc.cause))

    async def _teardown(self, env: SandboxEnvironment, env_id: str) -> None:
        try:
            await self._runtime.remove(env_id, force=True)
        except SandboxRuntimeError as exc:
            # Log but do not raise; the outcome is already decided.
            logger.error("Failed to remove container %s: %s", env.short_id, exc.cause)
            return
        finally:
            self._in_flight.discard(env_id)
        env.transition(SandboxState.REMOVED)
        logger.info("Container removed: id=%s", env.short_id)
