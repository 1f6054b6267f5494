"""
Pipeline orchestration for abtool.

A build is a fixed, ordered list of stages run one after another. The first
stage that raises ends the build: later stages never run, nothing is retried
or rolled back, and the caller receives a failed PipelineResult naming the
stage. Files written before the failure stay on disk for inspection.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from ..core.config import BuildConfig
from ..core.exceptions import PipelineError
from ..core.logging import get_logger
from ..core.types import BuildKind, PipelineResult, StageResult, StageStatus
from ..tools import ToolRunner
from . import stages as s
from .stages import BuildContext

logger = get_logger(__name__)

StageAction = Callable[[BuildContext], Awaitable[Path | None]]


@dataclass(frozen=True)
class Stage:
    """A named step of a build."""

    name: str
    action: StageAction
    when: Callable[[BuildContext], bool] | None = None
    # The value returned by the last such stage is the build artifact
    produces_artifact: bool = False

    def applies(self, ctx: BuildContext) -> bool:
        return self.when is None or self.when(ctx)


def _install(ctx: BuildContext) -> bool:
    return ctx.config.runtime.install


def _install_and_launch(ctx: BuildContext) -> bool:
    return ctx.config.runtime.install and ctx.config.runtime.launch


def _outdir_missing(ctx: BuildContext) -> bool:
    return not Path(ctx.config.apk.apk_outdir).exists()


def apk_stages() -> list[Stage]:
    """Stages of the APK flow."""
    return [
        Stage("clear-build-cache", s.clear_build_cache),
        Stage("apktool-build", s.apktool_build),
        Stage("zipalign", s.zipalign),
        Stage("apksigner", s.apksigner, produces_artifact=True),
        Stage("install-apk", s.install_apk, when=_install),
        Stage("launch-app", s.launch_app, when=_install_and_launch),
    ]


def aab_stages() -> list[Stage]:
    """Stages of the App Bundle flow."""
    return [
        Stage("decode-apk", s.decode_apk, when=_outdir_missing),
        Stage("compile-resources", s.compile_resources),
        Stage("link-resources", s.link_resources),
        Stage("unzip-apk", s.unzip_apk),
        Stage("copy-resources", s.copy_resources),
        Stage("zip-resources", s.zip_resources),
        Stage("build-bundle", s.build_bundle),
        Stage("sign-bundle", s.sign_bundle, produces_artifact=True),
        Stage("build-apks", s.build_apks, when=_install),
        Stage("install-apks", s.install_apks, when=_install),
        Stage("launch-app", s.launch_app, when=_install_and_launch),
    ]


STAGE_PLANS: dict[str, Callable[[], list[Stage]]] = {
    "apk": apk_stages,
    "aab": aab_stages,
}


class RepackagePipeline:
    """Runs one build's stages in order, stopping at the first failure."""

    def __init__(self, build_kind: BuildKind, stages: list[Stage], context: BuildContext) -> None:
        """Initialize the pipeline.

        Args:
            build_kind: "apk" or "aab"
            stages: Ordered stages to run
            context: Shared build context
        """
        self.build_kind = build_kind
        self.stages = stages
        self.context = context

    @classmethod
    def create(
        cls,
        build_kind: BuildKind,
        config: BuildConfig,
        timestamp: str,
        runner: ToolRunner | None = None,
    ) -> RepackagePipeline:
        """Build the standard pipeline for ``build_kind``."""
        try:
            plan = STAGE_PLANS[build_kind]
        except KeyError:
            raise ValueError(f"Unknown build kind: {build_kind!r}") from None
        return cls(build_kind, plan(), BuildContext.create(config, timestamp, runner))

    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    async def run(self) -> PipelineResult:
        """Run the build.

        Returns:
            Succeeded result with the artifact path, or a failed result naming
            the stage that raised
        """
        ctx = self.context
        started = time.perf_counter()
        results: list[StageResult] = []
        artifact: str | None = None

        logger.info("Starting build", build_kind=self.build_kind, build_timestamp=ctx.timestamp)

        for index, stage in enumerate(self.stages, start=1):
            if not stage.applies(ctx):
                logger.debug("Skipping stage", stage=stage.name)
                results.append(StageResult(stage_name=stage.name, status=StageStatus.SKIPPED))
                continue

            logger.info(f"Stage {index}/{len(self.stages)}: {stage.name}")
            result = StageResult(stage_name=stage.name)
            results.append(result)
            try:
                produced = await stage.action(ctx)
            except Exception as e:
                error = PipelineError(
                    message=f"{stage.name} failed",
                    stage=stage.name,
                    build_kind=self.build_kind,
                    cause=e,
                )
                result.mark_failed(str(e))
                logger.error("Build failed", stage=stage.name, error=str(e))
                return PipelineResult.failed(
                    build_kind=self.build_kind,
                    timestamp=ctx.timestamp,
                    stage=stage.name,
                    error=str(error),
                    stages=results,
                    duration_seconds=time.perf_counter() - started,
                )

            produced_path = str(produced) if produced is not None else None
            result.mark_completed(produced_path)
            if stage.produces_artifact:
                artifact = produced_path
            logger.debug("Stage completed", stage=stage.name, duration=result.duration_seconds)

        duration = time.perf_counter() - started
        if artifact is None:
            return PipelineResult.failed(
                build_kind=self.build_kind,
                timestamp=ctx.timestamp,
                stage=self.stages[-1].name if self.stages else "",
                error="No stage produced a build artifact",
                stages=results,
                duration_seconds=duration,
            )

        logger.info("Build completed", artifact=artifact, duration_seconds=round(duration, 1))
        return PipelineResult.succeeded(
            build_kind=self.build_kind,
            timestamp=ctx.timestamp,
            artifact=artifact,
            stages=results,
            duration_seconds=duration,
        )
