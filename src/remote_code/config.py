"""Pydantic settings for the execution service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = {"env_prefix": "REMOTE_CODE_"}

    memory_limit_bytes: int = 1_000_000_000  # 1 GB
    wait_timeout_seconds: float = 10.0
    pids_limit: int = 64
    network_disabled: bool = True
    workspace_root: str = "."
    workspace_prefix: str = "source"
    mount_target: str = "/app"
    entry_env_var: str = "FILE_NAME"
    max_code_size_bytes: int = 1_048_576  # 1 MB
    max_concurrent_executions: int = 0  # 0 = unbounded
    wait_pool_size: int = 64
    cors_allowed_origins: list[str] = ["*"]
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080
