"""
Core type definitions for abtool.

Result types passed from the pipeline back to its caller. A build ends in
exactly one of two terminal states, succeeded with an artifact path or failed
at a named stage.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

# Path of the final signed APK or AAB
BuildArtifact = str
BuildKind = Literal["apk", "aab"]

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def build_timestamp(now: datetime | None = None) -> str:
    """Format the build-session timestamp embedded in artifact names."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


class StageStatus(str, Enum):
    """Status of a pipeline stage."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageResult(BaseModel):
    """Result of a pipeline stage execution."""

    stage_name: str = Field(description="Name of the pipeline stage")
    status: StageStatus = Field(default=StageStatus.RUNNING, description="Execution status")
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = Field(default=None)
    duration_seconds: float = Field(default=0.0)
    artifact: str | None = Field(default=None, description="Path produced by the stage")
    error_message: str | None = Field(default=None)

    def mark_completed(self, artifact: str | None = None) -> None:
        """Mark stage as successfully completed."""
        self.status = StageStatus.COMPLETED
        self.completed_at = datetime.now()
        self.artifact = artifact
        self.duration_seconds = (self.completed_at - self.started_at).total_seconds()

    def mark_failed(self, error: str) -> None:
        """Mark stage as failed."""
        self.status = StageStatus.FAILED
        self.completed_at = datetime.now()
        self.error_message = error
        self.duration_seconds = (self.completed_at - self.started_at).total_seconds()


class PipelineResult(BaseModel):
    """Terminal state of one build."""

    build_kind: BuildKind
    timestamp: str
    success: bool
    artifact: BuildArtifact | None = None
    failed_stage: str | None = None
    error: str | None = None
    stages: list[StageResult] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @classmethod
    def succeeded(
        cls,
        build_kind: BuildKind,
        timestamp: str,
        artifact: BuildArtifact,
        stages: list[StageResult],
        duration_seconds: float = 0.0,
    ) -> PipelineResult:
        """Create a successful result."""
        return cls(
            build_kind=build_kind,
            timestamp=timestamp,
            success=True,
            artifact=artifact,
            stages=stages,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def failed(
        cls,
        build_kind: BuildKind,
        timestamp: str,
        stage: str,
        error: str,
        stages: list[StageResult],
        duration_seconds: float = 0.0,
    ) -> PipelineResult:
        """Create a failed result."""
        return cls(
            build_kind=build_kind,
            timestamp=timestamp,
            success=False,
            failed_stage=stage,
            error=error,
            stages=stages,
            duration_seconds=duration_seconds,
        )

    def get_stage(self, name: str) -> StageResult | None:
        """Get a stage result by name."""
        for stage in self.stages:
            if stage.stage_name == name:
                return stage
        return None
