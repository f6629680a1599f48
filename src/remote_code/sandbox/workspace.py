"""Request-scoped workspace directories bind-mounted into sandboxes."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from remote_code.errors import ProvisioningError
from remote_code.models.profile import ExecutionProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    """A uniquely named directory owned by exactly one request."""

    path: Path


class WorkspaceManager:
    """Creates, fills, and destroys per-request workspace directories.

    Directory names come from :func:`tempfile.mkdtemp`, which creates the
    directory atomically with ``O_EXCL`` semantics, so names never collide
    between concurrent requests or between processes sharing *root*.

    Parameters
    ----------
    root:
        Parent directory for all workspaces.  Must be visible to the
        container runtime, because workspaces are bind-mounted by path.
    prefix:
        Name prefix for workspace directories.
    """

    def __init__(self, root: str | Path = ".", prefix: str = "source") -> None:
        self._root = Path(root)
        self._prefix = prefix

    # ------------------------------------------------------------------
    # Individual steps
    # ------------------------------------------------------------------

    def create(self) -> Workspace:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            path = tempfile.mkdtemp(prefix=self._prefix, dir=self._root)
        except OSError as exc:
            raise ProvisioningError("workspace-create", exc) from exc
        logger.debug("Workspace created: %s", path)
        return Workspace(path=Path(path))

    def write_source(
        self, workspace: Workspace, profile: ExecutionProfile, code: bytes
    ) -> Path:
        """Write *code* verbatim to ``workspace/profile.filename``."""
        dest = workspace.path / profile.filename
        try:
            dest.write_bytes(code)
        except OSError as exc:
            raise ProvisioningError("workspace-write", exc) from exc
        return dest

    def resolve_absolute_path(self, workspace: Workspace) -> Path:
        try:
            return workspace.path.resolve(strict=True)
        except OSError as exc:
            raise ProvisioningError("workspace-resolve", exc) from exc

    def destroy(self, workspace: Workspace) -> None:
        """Recursively remove *workspace*.  Failures are logged, never raised."""
        try:
            shutil.rmtree(workspace.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Failed to remove workspace %s: %s", workspace.path, exc)
        else:
            logger.debug("Workspace removed: %s", workspace.path)

    # ------------------------------------------------------------------
    # Scoped acquisition
    # ------------------------------------------------------------------

    @contextmanager
    def open(self, profile: ExecutionProfile, code: bytes) -> Iterator[Workspace]:
        """Create a workspace holding *code* and destroy it on exit.

        The yielded workspace carries an absolute path.  ``destroy`` runs
        exactly once for every successful ``create``, whatever happens in
        the body or in the later provisioning steps.
        """
        workspace = self.create()
        try:
            self.write_source(workspace, profile, code)
            absolute = Workspace(path=self.resolve_absolute_path(workspace))
            yield absolute
        finally:
            self.destroy(workspace)
