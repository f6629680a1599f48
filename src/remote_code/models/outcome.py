"""ExecutionOutcome variants produced by the sandbox lifecycle.

Exactly one outcome is produced per request and it is the only input to
the result reporter.  Failure variants carry the stage and cause for
server-side logging; none of it is sent to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from remote_code.models.enums import OutcomeKind

# Exit status reported by the runtime for a process killed by SIGKILL
# (128 + 9), which is how the kernel OOM killer terminates a container.
OOM_EXIT_CODE = 137


@dataclass(frozen=True)
class Completed:
    """The program exited on its own; ``captured_output`` is stdout+stderr."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.COMPLETED

    captured_output: bytes
    exit_code: int = 0


@dataclass(frozen=True)
class TimedOut:
    kind: ClassVar[OutcomeKind] = OutcomeKind.TIMED_OUT

    timeout_seconds: float


@dataclass(frozen=True)
class OutOfMemory:
    kind: ClassVar[OutcomeKind] = OutcomeKind.OUT_OF_MEMORY

    exit_code: int = OOM_EXIT_CODE


@dataclass(frozen=True)
class ProvisioningFailed:
    kind: ClassVar[OutcomeKind] = OutcomeKind.PROVISIONING_FAILED

    stage: str
    cause: str


@dataclass(frozen=True)
class RuntimeFailed:
    kind: ClassVar[OutcomeKind] = OutcomeKind.RUNTIME_FAILED

    stage: str
    cause: str


ExecutionOutcome = Union[Completed, TimedOut, OutOfMemory, ProvisioningFailed, RuntimeFailed]
