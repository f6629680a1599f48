"""Core domain models for the remote-code service."""

from remote_code.models.enums import OutcomeKind, SandboxState
from remote_code.models.outcome import (
    OOM_EXIT_CODE,
    Completed,
    ExecutionOutcome,
    OutOfMemory,
    ProvisioningFailed,
    RuntimeFailed,
    TimedOut,
)
from remote_code.models.profile import ExecutionProfile, ExecutionRequest

__all__ = [
    "OOM_EXIT_CODE",
    "Completed",
    "ExecutionOutcome",
    "ExecutionProfile",
    "ExecutionRequest",
    "OutOfMemory",
    "OutcomeKind",
    "ProvisioningFailed",
    "RuntimeFailed",
    "SandboxState",
    "TimedOut",
]
