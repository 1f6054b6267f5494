"""
Custom exception hierarchy for abtool.

All exceptions inherit from AbtoolError so the pipeline can report any failure
with a stage name and a chained cause. Each exception type carries the context
an operator needs to diagnose a failed build.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AbtoolError(Exception):
    """Base exception for all abtool errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: BaseException | None = None

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class ConfigurationError(AbtoolError):
    """Raised when the build configuration document is missing or malformed."""

    config_path: str = ""

    def __str__(self) -> str:
        return f"Invalid configuration '{self.config_path}': {super().__str__()}"


@dataclass
class StageError(AbtoolError):
    """Raised when an external tool exits with a non-zero status."""

    stage: str = ""
    tool: str = ""
    returncode: int | None = None

    def __str__(self) -> str:
        code = f" (exit {self.returncode})" if self.returncode is not None else ""
        return f"[{self.stage}] {self.tool} failed{code}: {super().__str__()}"


@dataclass
class ToolNotFoundError(StageError):
    """Raised when a required external tool is not available."""

    install_hint: str = ""

    def __str__(self) -> str:
        hint = f" Install hint: {self.install_hint}" if self.install_hint else ""
        return f"Tool '{self.tool}' not found for stage '{self.stage}'.{hint}"


@dataclass
class PreconditionError(AbtoolError):
    """Raised when a required path is missing or has the wrong type."""

    path: str = ""

    def __str__(self) -> str:
        return f"{super().__str__()} | path: {self.path}"


@dataclass
class IntegrityError(AbtoolError):
    """Raised when a verified move finds differing digests.

    The source file is never deleted when this is raised.
    """

    source: str = ""
    destination: str = ""
    source_digest: str = ""
    destination_digest: str = ""

    def __str__(self) -> str:
        return (
            f"Integrity check failed moving '{self.source}' to '{self.destination}': "
            f"{self.source_digest} != {self.destination_digest}"
        )


@dataclass
class PathResolutionError(AbtoolError):
    """Raised when a derived path cannot be computed."""

    path_name: str = ""

    def __str__(self) -> str:
        return f"Cannot resolve path '{self.path_name}': {super().__str__()}"


@dataclass
class PipelineError(AbtoolError):
    """Raised (or reported) when a pipeline stage fails."""

    stage: str = ""
    build_kind: str = ""

    def __str__(self) -> str:
        base = super().__str__()
        return f"Pipeline error at stage '{self.stage}' ({self.build_kind} build): {base}"
