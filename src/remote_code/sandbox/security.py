"""Security policy and resource limits for sandbox containers."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SecurityPolicy:
    """Immutable policy that governs container resource limits.

    Swap is pinned to the memory limit, so a program that outgrows
    ``memory_limit_bytes`` is OOM-killed (exit status 137) instead of
    paging to disk.
    """

    memory_limit_bytes: int = 1_000_000_000
    timeout_seconds: float = 10.0
    pids_limit: int = 64
    network_disabled: bool = True

    def __post_init__(self) -> None:
        """Validate invariants that must never be violated."""
        if self.memory_limit_bytes <= 0:
            raise ValueError("memory_limit_bytes must be a positive integer.")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive.")
        if self.pids_limit <= 0:
            raise ValueError("pids_limit must be a positive integer.")

    def to_host_config(self) -> dict:
        """Convert to keyword arguments for ``APIClient.create_host_config``."""
        config: dict = {
            "mem_limit": self.memory_limit_bytes,
            "memswap_limit": self.memory_limit_bytes,  # No swap
            "pids_limit": self.pids_limit,
        }
        if self.network_disabled:
            config["network_mode"] = "none"
        return config
