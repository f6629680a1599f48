"""Exception hierarchy for the execution service."""

from __future__ import annotations


class RemoteCodeError(Exception):
    """Base class for all errors raised by remote_code."""


class InvalidRequestError(RemoteCodeError):
    """The request was rejected before any side effect took place."""


class UnknownLanguageError(InvalidRequestError):
    def __init__(self, tag: str) -> None:
        super().__init__(f"Unknown language tag: {tag!r}")
        self.tag = tag


class SourceTooLargeError(InvalidRequestError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"Source code exceeds maximum allowed size ({size:,} bytes > {limit:,} bytes)."
        )
        self.size = size
        self.limit = limit


class ProvisioningError(RemoteCodeError):
    """A request workspace could not be created, written, or resolved."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause


class SandboxRuntimeError(RemoteCodeError):
    """A call to the container runtime failed.

    ``operation`` names the runtime call (``create``, ``start``, ``wait``,
    ``logs``, ``remove``, ``prune``) so that log lines identify the stage.
    """

    def __init__(self, operation: str, cause: BaseException | str) -> None:
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause
