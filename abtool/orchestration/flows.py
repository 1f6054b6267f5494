"""
Prefect flows for abtool builds.

Each flow wraps a RepackagePipeline so builds show up as flow runs with
their parameters. Retries are disabled; a failed build is reported through
the returned PipelineResult, never retried.
"""

from __future__ import annotations

from pathlib import Path

from prefect import flow

from ..core.config import BuildConfig, load_build_config
from ..core.logging import bind_context, clear_context, get_logger
from ..core.types import BuildKind, PipelineResult, build_timestamp
from ..tools import ToolRunner
from .pipeline import RepackagePipeline

logger = get_logger(__name__)


async def _run(
    build_kind: BuildKind,
    config: BuildConfig,
    timestamp: str,
    runner: ToolRunner | None,
) -> PipelineResult:
    bind_context(build_kind=build_kind, build_timestamp=timestamp)
    try:
        pipeline = RepackagePipeline.create(build_kind, config, timestamp, runner)
        return await pipeline.run()
    finally:
        clear_context()


@flow(
    name="abtool-apk",
    description="Rebuild, align and sign an APK from a decoded project",
    retries=0,
    validate_parameters=False,
)
async def build_apk_flow(
    config: BuildConfig,
    timestamp: str,
    runner: ToolRunner | None = None,
) -> PipelineResult:
    """Execute the APK flow.

    Args:
        config: Build configuration
        timestamp: Build-session timestamp
        runner: Tool runner; defaults to real subprocesses

    Returns:
        PipelineResult with the signed APK path on success
    """
    return await _run("apk", config, timestamp, runner)


@flow(
    name="abtool-aab",
    description="Recompile resources and assemble a signed App Bundle",
    retries=0,
    validate_parameters=False,
)
async def build_aab_flow(
    config: BuildConfig,
    timestamp: str,
    runner: ToolRunner | None = None,
) -> PipelineResult:
    """Execute the App Bundle flow.

    Args:
        config: Build configuration
        timestamp: Build-session timestamp
        runner: Tool runner; defaults to real subprocesses

    Returns:
        PipelineResult with the signed AAB path on success
    """
    return await _run("aab", config, timestamp, runner)


FLOWS = {
    "apk": build_apk_flow,
    "aab": build_aab_flow,
}


async def run_pipeline(
    build_kind: BuildKind,
    config_path: str | Path,
    timestamp: str | None = None,
    runner: ToolRunner | None = None,
) -> PipelineResult:
    """Convenience function to load a config and run the matching flow.

    Raises:
        ConfigurationError: If the configuration document is invalid
        ValueError: If ``build_kind`` is unknown
    """
    if build_kind not in FLOWS:
        raise ValueError(f"Unknown build kind: {build_kind!r}")
    config = load_build_config(config_path)
    ts = timestamp or build_timestamp()
    logger.debug("Dispatching build", build_kind=build_kind, config=str(config_path), build_timestamp=ts)
    return await FLOWS[build_kind](config=config, timestamp=ts, runner=runner)
