"""Sandbox subsystem: workspaces and ephemeral Docker container execution."""

from remote_code.sandbox.controller import MANAGED_LABELS, SandboxController, SandboxEnvironment
from remote_code.sandbox.runtime import BindMount, DockerRuntime, SandboxRuntime
from remote_code.sandbox.security import SecurityPolicy
from remote_code.sandbox.workspace import Workspace, WorkspaceManager

__all__ = [
    "MANAGED_LABELS",
    "BindMount",
    "DockerRuntime",
    "SandboxController",
    "SandboxEnvironment",
    "SandboxRuntime",
    "SecurityPolicy",
    "Workspace",
    "WorkspaceManager",
]
