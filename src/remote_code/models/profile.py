"""ExecutionProfile and ExecutionRequest models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExecutionProfile(BaseModel):
    """Static per-language execution configuration."""

    model_config = ConfigDict(frozen=True)

    image: str = Field(
        min_length=1,
        description="Container image reference used to run the source.",
    )
    filename: str = Field(
        min_length=1,
        description="Entry filename the source is written to inside the workspace.",
    )
    title: str = Field(
        default="",
        description="Human-readable language name.",
    )

    @field_validator("filename")
    @classmethod
    def _bare_filename(cls, value: str) -> str:
        if "/" in value or "\\" in value or value in {".", ".."}:
            raise ValueError(f"Entry filename must be a bare filename: {value!r}")
        return value


class ExecutionRequest(BaseModel):
    """A single, transient request to execute source code."""

    model_config = ConfigDict(frozen=True)

    language_tag: str = Field(description="Language tag resolved through the registry.")
    source_code: bytes = Field(description="Source code, written verbatim to the workspace.")
