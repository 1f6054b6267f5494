"""Core infrastructure components for abtool."""

from .config import BuildConfig, Settings, get_settings, load_build_config
from .exceptions import (
    AbtoolError,
    ConfigurationError,
    IntegrityError,
    PathResolutionError,
    PipelineError,
    PreconditionError,
    StageError,
    ToolNotFoundError,
)
from .logging import get_logger, setup_logging
from .types import BuildArtifact, PipelineResult, StageResult, StageStatus, build_timestamp

__all__ = [
    "BuildConfig",
    "Settings",
    "get_settings",
    "load_build_config",
    "AbtoolError",
    "ConfigurationError",
    "IntegrityError",
    "PathResolutionError",
    "PipelineError",
    "PreconditionError",
    "StageError",
    "ToolNotFoundError",
    "get_logger",
    "setup_logging",
    "BuildArtifact",
    "PipelineResult",
    "StageResult",
    "StageStatus",
    "build_timestamp",
]
