"""Container runtime adapter consumed by the sandbox lifecycle controller."""

from __future__ import annotations

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from collections.abc import Collection
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import docker
import docker.errors
import docker.types
import requests.exceptions

from remote_code.errors import SandboxRuntimeError

logger = logging.getLogger(__name__)

# Exceptions from the Docker SDK and its HTTP transport that signal a
# failed runtime call.
_RUNTIME_ERRORS: tuple[type[BaseException], ...] = (
    docker.errors.DockerException,
    requests.exceptions.RequestException,
    ConnectionError,
)


@dataclass(frozen=True)
class BindMount:
    """Read/write bind mount of a host directory into the container."""

    source: str
    target: str


class SandboxRuntime(ABC):
    """Interface to the container runtime.

    Every call is a round-trip to a local control plane and may fail with
    :class:`~remote_code.errors.SandboxRuntimeError`.  Implementations
    must be safe for concurrent use by many request flows.
    """

    @abstractmethod
    async def create_environment(
        self,
        image: str,
        environment: dict[str, str],
        mounts: list[BindMount],
        host_config: dict,
        labels: dict[str, str] | None = None,
    ) -> str:
        """Create (but do not start) an environment and return its id."""

    @abstractmethod
    async def start(self, env_id: str) -> None: ...

    @abstractmethod
    def await_not_running(
        self, env_id: str
    ) -> tuple[asyncio.Future[int], asyncio.Future[BaseException]]:
        """Begin waiting for *env_id* to stop running.

        Returns immediately with ``(status, error)``.  Later, exactly one
        of the two futures receives a result: ``status`` the exit code
        once the environment stops, or ``error`` the exception describing
        why the wait failed.  Must be called from a running event loop.
        """

    @abstractmethod
    async def fetch_logs(self, env_id: str) -> bytes:
        """Return the combined stdout+stderr of *env_id*."""

    @abstractmethod
    async def remove(self, env_id: str, force: bool = True) -> None: ...

    @abstractmethod
    async def prune_stopped(
        self,
        labels: dict[str, str] | None = None,
        exclude: Collection[str] = (),
    ) -> None:
        """Remove stopped environments carrying *labels*, except ids in *exclude*."""

    async def ping(self) -> bool:
        return True

    def close(self) -> None:
        return None


class DockerRuntime(SandboxRuntime):
    """:class:`SandboxRuntime` backed by the Docker Engine API.

    One instance (and one underlying client) is shared by all requests.
    Blocking Docker SDK calls are dispatched via ``asyncio.to_thread``
    so that the event loop is never blocked.

    Wait calls block until the container stops, which for a hung program
    means until it is force-removed.  They therefore run on a private
    thread pool; create/start/logs/remove never queue behind them.

    Parameters
    ----------
    docker_client:
        Client to use; defaults to ``docker.from_env()``.
    wait_workers:
        Size of the private pool that runs blocking wait calls.  Waits
        beyond this number queue, but removals still proceed, so queued
        waits drain as deadlines expire.
    """

    def __init__(
        self,
        docker_client: docker.DockerClient | None = None,
        wait_workers: int = 64,
    ) -> None:
        if wait_workers <= 0:
            raise ValueError("wait_workers must be a positive integer.")
        self._client = docker_client or docker.from_env()
        self._api = self._client.api
        self._wait_pool = ThreadPoolExecutor(
            max_workers=wait_workers, thread_name_prefix="docker-wait"
        )
        # Strong references to in-flight wait tasks.
        self._waiters: set[asyncio.Future] = set()

    async def _call(self, operation: str, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except _RUNTIME_ERRORS as exc:
            raise SandboxRuntimeError(operation, exc) from exc

    async def _wait(self, env_id: str) -> dict:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._wait_pool,
                functools.partial(self._api.wait, env_id, condition="not-running"),
            )
        except _RUNTIME_ERRORS as exc:
            raise SandboxRuntimeError("wait", exc) from exc

    # ------------------------------------------------------------------
    # SandboxRuntime interface
    # ------------------------------------------------------------------

    async def create_environment(
        self,
        image: str,
        environment: dict[str, str],
        mounts: list[BindMount],
        host_config: dict,
        labels: dict[str, str] | None = None,
    ) -> str:
        try:
            config = self._api.create_host_config(
                mounts=[
                    docker.types.Mount(
                        target=m.target, source=m.source, type="bind", read_only=False
                    )
                    for m in mounts
                ],
                **host_config,
            )
        except _RUNTIME_ERRORS as exc:
            raise SandboxRuntimeError("create", exc) from exc

        # detach=False attaches stdout/stderr so both are captured.
        response = await self._call(
            "create",
            self._api.create_container,
            image=image,
            environment=environment,
            host_config=config,
            labels=labels or {},
            detach=False,
            stdin_open=False,
            tty=False,
        )
        return response["Id"]

    async def start(self, env_id: str) -> None:
        await self._call("start", self._api.start, env_id)

    def await_not_running(
        self, env_id: str
    ) -> tuple[asyncio.Future[int], asyncio.Future[BaseException]]:
        loop = asyncio.get_running_loop()
        status: asyncio.Future[int] = loop.create_future()
        error: asyncio.Future[BaseException] = loop.create_future()

        task = loop.create_task(self._wait(env_id), name=f"wait-{env_id[:12]}")
        self._waiters.add(task)

        def _deliver(t: asyncio.Task) -> None:
            self._waiters.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                if not error.done():
                    error.set_result(exc)
                return
            result = t.result() or {}
            message = (result.get("Error") or {}).get("Message")
            if message:
                if not error.done():
                    error.set_result(SandboxRuntimeError("wait", message))
            elif not status.done():
                status.set_result(int(result.get("StatusCode", -1)))

        task.add_done_callback(_deliver)
        return status, error

    async def fetch_logs(self, env_id: str) -> bytes:
        return await self._call(
            "logs", self._api.logs, env_id, stdout=True, stderr=True, stream=False
        )

    async def remove(self, env_id: str, force: bool = True) -> None:
        try:
            await asyncio.to_thread(self._api.remove_container, env_id, force=force)
        except docker.errors.NotFound:
            # Already gone (e.g. pruned); removal goal is met.
            logger.debug("Container %s already removed", env_id[:12])
        except _RUNTIME_ERRORS as exc:
            raise SandboxRuntimeError("remove", exc) from exc

    async def prune_stopped(
        self,
        labels: dict[str, str] | None = None,
        exclude: Collection[str] = (),
    ) -> None:
        filters: dict[str, list[str]] = {"status": ["created", "exited", "dead"]}
        if labels:
            filters["label"] = [f"{key}={value}" for key, value in labels.items()]
        stopped = await self._call("prune", self._api.containers, all=True, filters=filters)

        skip = set(exclude)
        pruned = 0
        for container in stopped or []:
            env_id = container["Id"]
            if env_id in skip:
                continue
            try:
                await self.remove(env_id, force=False)
            except SandboxRuntimeError as exc:
                logger.warning("Prune skipped container %s: %s", env_id[:12], exc.cause)
                continue
            pruned += 1
        logger.info("Pruned %d stopped container(s), skipped %d in flight", pruned, len(skip))

    async def ping(self) -> bool:
        try:
            return bool(await self._call("ping", self._api.ping))
        except SandboxRuntimeError:
            return False

    def close(self) -> None:
        self._wait_pool.shutdown(wait=False, cancel_futures=True)
        self._client.close()
