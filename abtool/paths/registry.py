"""
Path resolution registry.

Every intermediate and output location the pipeline touches is derived from
the BuildConfig (and, for artifact names, the build-session timestamp). The
derivations form a DAG declared in ``_DERIVATIONS``; a ``PathResolver``
computes each entry on first use and caches it for the rest of the build.
Paths are never checked for existence here.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..core.config import BuildConfig
from ..core.exceptions import PathResolutionError
from ..core.logging import get_logger

logger = get_logger(__name__)


class PathName(str, Enum):
    """Names of the derived paths."""

    RES = "res"
    APKS = "apks"
    AAB = "aab"
    BASE_ZIP = "base_zip"
    BASE_DIR = "base_dir"
    ROOT = "root"
    MANIFEST = "manifest"
    DECODED_MANIFEST = "decoded_manifest"
    UNZIPPED_MANIFEST = "unzipped_manifest"
    ASSETS = "assets"
    NEW_ASSETS = "new_assets"
    LIB = "lib"
    NEW_LIB = "new_lib"
    BASE_ROOT = "base_root"
    UNKNOWN = "unknown"
    NEW_UNKNOWN = "new_unknown"
    KOTLIN = "kotlin"
    NEW_KOTLIN = "new_kotlin"
    META = "meta"
    NEW_META = "new_meta"
    DEX = "dex"
    BASE_APK = "base_apk"
    RESOURCES_ZIP = "resources_zip"
    APP = "app"
    APK_BUILD = "apk_build"
    APK_DIST = "apk_dist"
    APK_UNSIGNED = "apk_unsigned"
    APK_ZIPALIGNED = "apk_zipaligned"
    APK_SIGNED = "apk_signed"


@dataclass(frozen=True)
class _Inputs:
    """What a derivation function receives."""

    config: BuildConfig
    timestamp: str | None
    deps: tuple[Path, ...]


@dataclass(frozen=True)
class Derivation:
    """How one path is computed from its dependencies."""

    deps: tuple[PathName, ...]
    compute: Callable[[_Inputs], Path]
    timestamped: bool = False


def _outdir(i: _Inputs) -> Path:
    return Path(i.config.apk.apk_outdir)


def _under(*parts: str) -> Callable[[_Inputs], Path]:
    def compute(i: _Inputs) -> Path:
        return i.deps[0].joinpath(*parts)

    return compute


def _dist_apk(suffix: str) -> Callable[[_Inputs], Path]:
    def compute(i: _Inputs) -> Path:
        return i.deps[0] / f"{i.timestamp}_{i.config.apk.app_name}-{suffix}.apk"

    return compute


P = PathName

_DERIVATIONS: dict[PathName, Derivation] = {
    P.ROOT: Derivation((), _outdir),
    P.RES: Derivation((), lambda i: _outdir(i) / "res"),
    P.APKS: Derivation((), lambda i: _outdir(i) / "app.apks"),
    P.AAB: Derivation(
        (),
        lambda i: _outdir(i) / f"{i.timestamp}{i.config.apk.app_name}.aab",
        timestamped=True,
    ),
    P.BASE_ZIP: Derivation((), lambda i: _outdir(i) / "base.zip"),
    P.BASE_DIR: Derivation((), lambda i: _outdir(i) / "base"),
    P.MANIFEST: Derivation((P.BASE_DIR,), _under("manifest")),
    P.DECODED_MANIFEST: Derivation((P.ROOT,), _under("AndroidManifest.xml")),
    P.UNZIPPED_MANIFEST: Derivation((P.BASE_DIR,), _under("AndroidManifest.xml")),
    P.ASSETS: Derivation((P.ROOT,), _under("assets")),
    P.NEW_ASSETS: Derivation((P.BASE_DIR,), _under("assets")),
    P.LIB: Derivation((P.ROOT,), _under("lib")),
    P.NEW_LIB: Derivation((P.BASE_DIR,), _under("lib")),
    P.BASE_ROOT: Derivation((P.BASE_DIR,), _under("root")),
    P.UNKNOWN: Derivation((P.ROOT,), _under("unknown")),
    P.NEW_UNKNOWN: Derivation((P.BASE_ROOT,), _under("root", "unknown")),
    P.KOTLIN: Derivation((P.ROOT,), _under("kotlin")),
    P.NEW_KOTLIN: Derivation((P.BASE_ROOT,), _under("kotlin")),
    P.META: Derivation((P.ROOT,), _under("original", "META-INF")),
    P.NEW_META: Derivation((P.BASE_ROOT,), _under("root", "META-INF")),
    P.DEX: Derivation((P.BASE_DIR,), _under("dex")),
    P.BASE_APK: Derivation((P.ROOT,), _under("base.apk")),
    P.RESOURCES_ZIP: Derivation((P.ROOT,), _under("resources.zip")),
    P.APP: Derivation((), lambda i: Path(i.config.source.app_path)),
    P.APK_BUILD: Derivation((P.APP,), _under("build")),
    P.APK_DIST: Derivation((P.APP,), _under("dist")),
    P.APK_UNSIGNED: Derivation((P.APK_DIST,), _dist_apk("unsign"), timestamped=True),
    P.APK_ZIPALIGNED: Derivation((P.APK_DIST,), _dist_apk("zip"), timestamped=True),
    P.APK_SIGNED: Derivation((P.APK_DIST,), _dist_apk("sign"), timestamped=True),
}


def dependencies(name: PathName) -> set[PathName]:
    """Return the transitive dependencies of ``name``."""
    seen: set[PathName] = set()
    stack = list(_DERIVATIONS[name].deps)
    while stack:
        dep = stack.pop()
        if dep not in seen:
            seen.add(dep)
            stack.extend(_DERIVATIONS[dep].deps)
    return seen


def validate_derivations() -> None:
    """Check that every name is derivable and the graph has no cycle.

    Raises:
        RuntimeError: On a missing derivation, undeclared dependency or cycle
    """
    missing = set(PathName) - set(_DERIVATIONS)
    if missing:
        raise RuntimeError(f"No derivation for: {sorted(m.value for m in missing)}")

    visiting: set[PathName] = set()
    done: set[PathName] = set()

    def visit(name: PathName, trail: tuple[PathName, ...]) -> None:
        if name in done:
            return
        if name in visiting:
            cycle = " -> ".join(n.value for n in (*trail, name))
            raise RuntimeError(f"Cyclic path derivation: {cycle}")
        visiting.add(name)
        for dep in _DERIVATIONS[name].deps:
            if dep not in _DERIVATIONS:
                raise RuntimeError(f"'{name.value}' depends on undeclared '{dep}'")
            visit(dep, (*trail, name))
        visiting.discard(name)
        done.add(name)

    for name in _DERIVATIONS:
        visit(name, ())


validate_derivations()


class PathResolver:
    """Memoizing resolver for one build.

    Instantiate once per build and share it between stages. Not safe for
    concurrent builds.
    """

    def __init__(self, config: BuildConfig, timestamp: str | None = None) -> None:
        """Initialize the resolver.

        Args:
            config: Build configuration
            timestamp: Build-session timestamp used in artifact names
        """
        self.config = config
        self.timestamp = timestamp
        self._cache: dict[PathName, Path] = {}

    def resolve(self, name: PathName | str) -> Path:
        """Resolve ``name`` to a path, computing it at most once.

        Raises:
            PathResolutionError: If the name is unknown or needs a missing timestamp
        """
        try:
            key = PathName(name)
        except ValueError as e:
            raise PathResolutionError(
                message="Unknown path name", path_name=str(name), cause=e
            ) from e

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        derivation = _DERIVATIONS[key]
        if derivation.timestamped and not self.timestamp:
            raise PathResolutionError(
                message="Build timestamp required", path_name=key.value
            )

        deps = tuple(self.resolve(dep) for dep in derivation.deps)
        path = derivation.compute(_Inputs(self.config, self.timestamp, deps))
        self._cache[key] = path
        logger.debug("Resolved path", name=key.value, path=str(path))
        return path

    def __getitem__(self, name: PathName | str) -> Path:
        return self.resolve(name)

    def resolved(self) -> dict[str, Path]:
        """Snapshot of the entries computed so far."""
        return {name.value: path for name, path in self._cache.items()}
