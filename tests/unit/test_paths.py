"""Unit tests for the path resolution registry."""

from pathlib import Path

import pytest

from abtool.core.exceptions import PathResolutionError
from abtool.paths import PathName, PathResolver, dependencies, validate_derivations
from abtool.paths import registry


class TestPathResolver:
    """Tests for derived paths."""

    def test_output_dir_layout(self, make_config, temp_dir):
        """Test the layout under the configured output directory."""
        out = temp_dir / "out" / "demo"
        paths = PathResolver(make_config(), "2024-01-02_03-04-05")

        assert paths[PathName.ROOT] == out
        assert paths[PathName.RES] == out / "res"
        assert paths[PathName.APKS] == out / "app.apks"
        assert paths[PathName.AAB] == out / "2024-01-02_03-04-05demo.aab"
        assert paths[PathName.BASE_ZIP] == out / "base.zip"
        assert paths[PathName.BASE_DIR] == out / "base"
        assert paths[PathName.MANIFEST] == out / "base" / "manifest"
        assert paths[PathName.ASSETS] == out / "assets"
        assert paths[PathName.NEW_ASSETS] == out / "base" / "assets"
        assert paths[PathName.LIB] == out / "lib"
        assert paths[PathName.NEW_LIB] == out / "base" / "lib"
        assert paths[PathName.BASE_ROOT] == out / "base" / "root"
        assert paths[PathName.UNKNOWN] == out / "unknown"
        assert paths[PathName.NEW_UNKNOWN] == out / "base" / "root" / "root" / "unknown"
        assert paths[PathName.KOTLIN] == out / "kotlin"
        assert paths[PathName.NEW_KOTLIN] == out / "base" / "root" / "kotlin"
        assert paths[PathName.META] == out / "original" / "META-INF"
        assert paths[PathName.NEW_META] == out / "base" / "root" / "root" / "META-INF"
        assert paths[PathName.DEX] == out / "base" / "dex"
        assert paths[PathName.BASE_APK] == out / "base.apk"
        assert paths[PathName.RESOURCES_ZIP] == out / "resources.zip"
        assert paths[PathName.DECODED_MANIFEST] == out / "AndroidManifest.xml"

    def test_source_project_layout(self, make_config, temp_dir):
        """Test the dist artifacts under the source project."""
        app = temp_dir / "project"
        paths = PathResolver(make_config(app_path=app), "T")

        assert paths[PathName.APP] == app
        assert paths[PathName.APK_BUILD] == app / "build"
        assert paths[PathName.APK_DIST] == app / "dist"
        assert paths[PathName.APK_UNSIGNED] == app / "dist" / "T_demo-unsign.apk"
        assert paths[PathName.APK_ZIPALIGNED] == app / "dist" / "T_demo-zip.apk"
        assert paths[PathName.APK_SIGNED] == app / "dist" / "T_demo-sign.apk"

    def test_resolution_is_idempotent(self, make_config):
        """Test that resolving twice yields the identical cached object."""
        paths = PathResolver(make_config(), "T")
        first = paths.resolve(PathName.NEW_META)
        second = paths.resolve("new_meta")
        assert first == second
        assert first is second

    def test_dependencies_are_cached(self, make_config):
        """Test that resolving a path caches its dependencies too."""
        paths = PathResolver(make_config(), "T")
        paths.resolve(PathName.NEW_UNKNOWN)
        assert set(paths.resolved()) == {"new_unknown", "base_root", "base_dir"}

    def test_same_inputs_same_paths(self, make_config):
        """Test determinism across resolver instances."""
        config = make_config()
        a = PathResolver(config, "T")
        b = PathResolver(config, "T")
        for name in PathName:
            assert a[name] == b[name]

    def test_paths_are_not_checked(self, make_config, temp_dir):
        """Test that resolution never touches the filesystem."""
        paths = PathResolver(make_config(outdir=temp_dir / "nowhere"), "T")
        assert not paths[PathName.DEX].exists()

    def test_timestamp_required(self, make_config):
        """Test that artifact names need a build timestamp."""
        paths = PathResolver(make_config())
        assert paths[PathName.BASE_DIR].name == "base"
        with pytest.raises(PathResolutionError) as exc_info:
            paths.resolve(PathName.APK_SIGNED)
        assert exc_info.value.path_name == "apk_signed"

    def test_unknown_name(self, make_config):
        paths = PathResolver(make_config(), "T")
        with pytest.raises(PathResolutionError):
            paths.resolve("nope")


class TestDerivationGraph:
    """Tests for the derivation DAG."""

    def test_no_path_depends_on_itself(self):
        for name in PathName:
            assert name not in dependencies(name)

    def test_transitive_dependencies(self):
        assert dependencies(PathName.NEW_META) == {PathName.BASE_ROOT, PathName.BASE_DIR}
        assert dependencies(PathName.APK_SIGNED) == {PathName.APK_DIST, PathName.APP}
        assert dependencies(PathName.ROOT) == set()

    def test_cycle_is_rejected(self, monkeypatch):
        """Test that a cyclic derivation is reported as a programming error."""
        derivations = dict(registry._DERIVATIONS)
        derivations[PathName.BASE_DIR] = registry.Derivation(
            (PathName.MANIFEST,), lambda i: Path("x")
        )
        monkeypatch.setattr(registry, "_DERIVATIONS", derivations)

        with pytest.raises(RuntimeError, match="Cyclic"):
            validate_derivations()

    def test_registry_is_valid(self):
        validate_derivations()
