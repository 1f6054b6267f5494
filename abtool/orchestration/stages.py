"""
Pipeline stages.

Each stage is an async function of the BuildContext. Tool stages build an
invocation, remove any stale output the tool would otherwise trip over, run
the tool, and check that the declared output now exists. Local stages work on
the output directory through the archive and transfer primitives, which run
in a worker thread so the event loop never blocks on disk work.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles.os

from ..archive import unzip, zip_dir
from ..core.config import BuildConfig, get_settings
from ..core.exceptions import PreconditionError
from ..core.logging import get_logger
from ..fs import copy_dir, cut_file
from ..paths import PathName, PathResolver
from ..tools import SubprocessToolRunner, ToolInvocation, ToolRunner, commands

logger = get_logger(__name__)

# Signature files of the original package; bundletool re-signs from scratch
SIGNATURE_MARKERS = (".RSA", ".MF", ".SF")


@dataclass
class BuildContext:
    """Everything a stage may read. The config itself is never mutated."""

    config: BuildConfig
    timestamp: str
    paths: PathResolver
    runner: ToolRunner = field(default_factory=SubprocessToolRunner)
    entry_separator: str = field(default_factory=lambda: get_settings().entry_separator)

    @classmethod
    def create(
        cls,
        config: BuildConfig,
        timestamp: str,
        runner: ToolRunner | None = None,
    ) -> BuildContext:
        return cls(
            config=config,
            timestamp=timestamp,
            paths=PathResolver(config, timestamp),
            runner=runner or SubprocessToolRunner(),
        )


async def _remove_stale(path: Path) -> None:
    if path.is_file():
        logger.debug("Removing stale file", path=str(path))
        await aiofiles.os.remove(path)


async def _run_tool(
    ctx: BuildContext,
    build: Callable[[BuildConfig, PathResolver], ToolInvocation],
) -> Path | None:
    invocation = build(ctx.config, ctx.paths)
    await ctx.runner.run(invocation)
    if invocation.output is not None and not invocation.output.exists():
        raise PreconditionError(
            message=f"{invocation.tool} exited successfully but produced no output",
            path=str(invocation.output),
        )
    return invocation.output


# APK flow


async def clear_build_cache(ctx: BuildContext) -> None:
    for name in (PathName.APK_BUILD, PathName.APK_DIST):
        path = ctx.paths[name]
        if path.exists():
            logger.debug("Removing build cache", path=str(path))
            await asyncio.to_thread(shutil.rmtree, path)


async def apktool_build(ctx: BuildContext) -> Path | None:
    return await _run_tool(ctx, commands.build_apk)


async def zipalign(ctx: BuildContext) -> Path | None:
    return await _run_tool(ctx, commands.zipalign)


async def apksigner(ctx: BuildContext) -> Path | None:
    return await _run_tool(ctx, commands.sign_apk)


async def install_apk(ctx: BuildContext) -> None:
    await _run_tool(ctx, commands.install_apk)


async def launch_app(ctx: BuildContext) -> None:
    await _run_tool(ctx, commands.launch_app)


# App Bundle flow


async def decode_apk(ctx: BuildContext) -> Path | None:
    return await _run_tool(ctx, commands.decode_apk)


async def compile_resources(ctx: BuildContext) -> Path | None:
    await _remove_stale(ctx.paths[PathName.RESOURCES_ZIP])
    return await _run_tool(ctx, commands.compile_resources)


async def link_resources(ctx: BuildContext) -> Path | None:
    await _remove_stale(ctx.paths[PathName.BASE_APK])
    return await _run_tool(ctx, commands.link_resources)


async def unzip_apk(ctx: BuildContext) -> Path:
    base_apk = ctx.paths[PathName.BASE_APK]
    base_dir = ctx.paths[PathName.BASE_DIR]
    if not base_apk.is_file():
        raise PreconditionError(message="Linked base apk is missing", path=str(base_apk))
    await asyncio.to_thread(unzip, base_apk, base_dir)
    return base_dir


def strip_signature_files(meta_dir: Path) -> list[Path]:
    """Delete the original signature files from a META-INF copy."""
    removed = []
    for entry in sorted(meta_dir.iterdir()):
        if entry.is_file() and any(marker in entry.name for marker in SIGNATURE_MARKERS):
            entry.unlink()
            removed.append(entry)
    if removed:
        logger.debug("Stripped signature files", files=[p.name for p in removed])
    return removed


def _copy_if_present(paths: PathResolver, source: PathName, target: PathName) -> Path | None:
    src = paths[source]
    if not src.exists():
        return None
    dst = paths[target]
    dst.mkdir(parents=True, exist_ok=True)
    copy_dir(src, dst)
    return dst


def _lay_out_module(paths: PathResolver) -> Path:
    manifest_dir = paths[PathName.MANIFEST]
    manifest_dir.mkdir(parents=True, exist_ok=True)
    cut_file(paths[PathName.UNZIPPED_MANIFEST], manifest_dir / "AndroidManifest.xml")

    _copy_if_present(paths, PathName.ASSETS, PathName.NEW_ASSETS)
    _copy_if_present(paths, PathName.LIB, PathName.NEW_LIB)

    paths[PathName.BASE_ROOT].mkdir(parents=True, exist_ok=True)
    _copy_if_present(paths, PathName.UNKNOWN, PathName.NEW_UNKNOWN)
    _copy_if_present(paths, PathName.KOTLIN, PathName.NEW_KOTLIN)
    new_meta = _copy_if_present(paths, PathName.META, PathName.NEW_META)
    if new_meta is not None:
        strip_signature_files(new_meta)

    dex_dir = paths[PathName.DEX]
    dex_dir.mkdir(parents=True, exist_ok=True)
    for entry in sorted(os.scandir(paths[PathName.ROOT]), key=lambda e: e.name):
        if not entry.is_dir() and ".dex" in entry.name:
            shutil.copyfile(entry.path, dex_dir / entry.name)

    return paths[PathName.BASE_DIR]


async def copy_resources(ctx: BuildContext) -> Path:
    """Lay out the decoded project the way bundletool expects a module."""
    return await asyncio.to_thread(_lay_out_module, ctx.paths)


async def zip_resources(ctx: BuildContext) -> Path:
    base_zip = ctx.paths[PathName.BASE_ZIP]
    await _remove_stale(base_zip)
    return await asyncio.to_thread(
        zip_dir, ctx.paths[PathName.BASE_DIR], base_zip, separator=ctx.entry_separator
    )


async def build_bundle(ctx: BuildContext) -> Path | None:
    await _remove_stale(ctx.paths[PathName.AAB])
    return await _run_tool(ctx, commands.build_bundle)


async def sign_bundle(ctx: BuildContext) -> Path | None:
    return await _run_tool(ctx, commands.sign_bundle)


async def build_apks(ctx: BuildContext) -> Path | None:
    await _remove_stale(ctx.paths[PathName.APKS])
    return await _run_tool(ctx, commands.build_apks)


async def install_apks(ctx: BuildContext) -> None:
    await _run_tool(ctx, commands.install_apks)
