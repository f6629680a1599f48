"""Shared fixtures: an in-memory container runtime and workspace helpers."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Collection
from pathlib import Path

import pytest

from remote_code.errors import SandboxRuntimeError
from remote_code.models.profile import ExecutionProfile
from remote_code.sandbox.runtime import BindMount, SandboxRuntime
from remote_code.sandbox.workspace import WorkspaceManager


def _settle(fut: asyncio.Future, value) -> None:
    if not fut.done():
        fut.set_result(value)


class FakeRuntime(SandboxRuntime):
    """Scriptable stand-in for the Docker runtime.

    Parameters
    ----------
    exit_code:
        Status delivered on the status future.
    logs:
        Bytes returned by :meth:`fetch_logs`.
    hang:
        Never deliver a wait signal (simulates a program that never exits).
    wait_error:
        Deliver this message on the error future instead of a status.
    fail_on:
        Names of operations (``create``, ``start``, ``logs``, ``remove``,
        ``prune``) that raise :class:`SandboxRuntimeError`.
    exit_delay:
        Seconds before the wait signal is delivered.
    exit_codes, exit_delays:
        Per-image overrides of *exit_code* and *exit_delay*.
    logs_delay:
        Seconds :meth:`fetch_logs` takes.  Reading the logs of a container
        that is gone by then fails, as it does against Docker.
    """

    def __init__(
        self,
        *,
        exit_code: int = 0,
        logs: bytes = b"",
        hang: bool = False,
        wait_error: str | None = None,
        fail_on: set[str] | None = None,
        exit_delay: float = 0.0,
        healthy: bool = True,
        exit_codes: dict[str, int] | None = None,
        exit_delays: dict[str, float] | None = None,
        logs_delay: float = 0.0,
    ) -> None:
        self.exit_code = exit_code
        self.logs = logs
        self.hang = hang
        self.wait_error = wait_error
        self.fail_on = fail_on or set()
        self.exit_delay = exit_delay
        self.healthy = healthy
        self.exit_codes = exit_codes or {}
        self.exit_delays = exit_delays or {}
        self.logs_delay = logs_delay

        self._ids = itertools.count(1)
        self.containers: dict[str, dict] = {}
        self.created: list[dict] = []
        self.started: list[str] = []
        self.removed: list[str] = []
        self.prune_calls: list[dict] = []
        self.max_live = 0
        self.closed = False

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise SandboxRuntimeError(operation, f"{operation} exploded")

    async def create_environment(
        self,
        image: str,
        environment: dict[str, str],
        mounts: list[BindMount],
        host_config: dict,
        labels: dict[str, str] | None = None,
    ) -> str:
        self._maybe_fail("create")
        env_id = f"{next(self._ids):064x}"
        record = {
            "id": env_id,
            "image": image,
            "environment": dict(environment),
            "mounts": list(mounts),
            "host_config": dict(host_config),
            "labels": dict(labels or {}),
            "running": False,
        }
        self.containers[env_id] = record
        self.created.append(record)
        self.max_live = max(self.max_live, len(self.containers))
        return env_id

    async def start(self, env_id: str) -> None:
        self._maybe_fail("start")
        self.containers[env_id]["running"] = True
        self.started.append(env_id)

    def await_not_running(self, env_id: str):
        loop = asyncio.get_running_loop()
        status = loop.create_future()
        error = loop.create_future()
        if self.hang:
            return status, error
        image = self.containers[env_id]["image"]

        def _deliver() -> None:
            if env_id in self.containers:
                self.containers[env_id]["running"] = False
            if self.wait_error is not None:
                _settle(error, SandboxRuntimeError("wait", self.wait_error))
            else:
                _settle(status, self.exit_codes.get(image, self.exit_code))

        loop.call_later(self.exit_delays.get(image, self.exit_delay), _deliver)
        return status, error

    async def fetch_logs(self, env_id: str) -> bytes:
        self._maybe_fail("logs")
        if self.logs_delay:
            await asyncio.sleep(self.logs_delay)
        if env_id not in self.containers:
            raise SandboxRuntimeError("logs", f"No such container: {env_id}")
        return self.logs

    async def remove(self, env_id: str, force: bool = True) -> None:
        self._maybe_fail("remove")
        self.containers.pop(env_id, None)
        self.removed.append(env_id)

    async def prune_stopped(
        self,
        labels: dict[str, str] | None = None,
        exclude: Collection[str] = (),
    ) -> None:
        self.prune_calls.append({"labels": labels, "exclude": frozenset(exclude)})
        self._maybe_fail("prune")
        stopped = [k for k, v in self.containers.items() if not v["running"]]
        for env_id in [k for k in stopped if k not in exclude]:
            del self.containers[env_id]

    async def ping(self) -> bool:
        return self.healthy

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def python_profile() -> ExecutionProfile:
    return ExecutionProfile(image="python-0.1", filename="main.py", title="Python")


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def workspaces(workspace_root: Path) -> WorkspaceManager:
    return WorkspaceManager(root=workspace_root, prefix="source")
