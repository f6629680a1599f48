"""SandboxState and OutcomeKind enums."""

from enum import StrEnum


class SandboxState(StrEnum):
    """Lifecycle states of a sandbox environment.

    ``PROVISIONING -> STARTING -> RUNNING -> {COMPLETED, TIMED_OUT,
    OUT_OF_MEMORY, FAILED} -> REMOVED``.  ``REMOVED`` is terminal.
    """

    PROVISIONING = "PROVISIONING"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    TIMED_OUT = "TIMED_OUT"
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    FAILED = "FAILED"
    REMOVED = "REMOVED"


class OutcomeKind(StrEnum):
    """Discriminator for the :data:`ExecutionOutcome` variants."""

    COMPLETED = "COMPLETED"
    TIMED_OUT = "TIMED_OUT"
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    PROVISIONING_FAILED = "PROVISIONING_FAILED"
    RUNTIME_FAILED = "RUNTIME_FAILED"
