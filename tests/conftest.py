"""Test configuration for abtool."""

import shutil
import tempfile
import zipfile
from pathlib import Path

import pytest

from abtool.core.config import BuildConfig, parse_build_config
from abtool.core.exceptions import StageError
from abtool.tools import ToolInvocation, ToolRunner

MANIFEST_XML = b'<?xml version="1.0" encoding="utf-8"?><manifest package="com.example.demo"/>'


def write_zip(path: Path, entries: dict[str, bytes]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)


def write_files(root: Path, files: dict[str, bytes]) -> None:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


DECODED_LAYOUT = {
    "AndroidManifest.xml": MANIFEST_XML,
    "apktool.yml": b"version: 2.9.3\n",
    "classes.dex": b"dex\n035\x00one",
    "classes2.dex": b"dex\n035\x00two",
    "res/values/strings.xml": b"<resources><string name='app_name'>Demo</string></resources>",
    "assets/config.json": b'{"debug": false}',
    "lib/arm64-v8a/libnative.so": b"\x7fELF-native",
    "unknown/okhttp3/publicsuffixes.gz": b"suffixes",
    "kotlin/kotlin.kotlin_builtins": b"builtins",
    "original/META-INF/CERT.RSA": b"rsa",
    "original/META-INF/MANIFEST.MF": b"Manifest-Version: 1.0",
    "original/META-INF/CERT.SF": b"sf",
    "original/META-INF/services/com.example.Service": b"com.example.Impl",
}


class FakeToolRunner(ToolRunner):
    """Stands in for the Android tools by writing each declared output."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.invocations: list[ToolInvocation] = []

    @property
    def stages(self) -> list[str]:
        return [inv.stage for inv in self.invocations]

    async def run(self, invocation: ToolInvocation) -> None:
        self.invocations.append(invocation)
        if invocation.stage in self.fail_on:
            raise StageError(
                message=f"{invocation.stage} failed",
                stage=invocation.stage,
                tool=invocation.tool,
                returncode=1,
            )
        handler = getattr(self, "_" + invocation.stage.replace("-", "_"), None)
        if handler is not None:
            handler(invocation)

    def _decode_apk(self, inv: ToolInvocation) -> None:
        write_files(inv.output, DECODED_LAYOUT)

    def _compile_resources(self, inv: ToolInvocation) -> None:
        write_zip(inv.output, {"values_strings.arsc.flat": b"flat"})

    def _link_resources(self, inv: ToolInvocation) -> None:
        write_zip(inv.output, {
            "AndroidManifest.xml": MANIFEST_XML,
            "resources.pb": b"pb",
            "res/values/strings.xml": b"linked",
        })

    def _apktool_build(self, inv: ToolInvocation) -> None:
        write_zip(inv.output, {"AndroidManifest.xml": MANIFEST_XML, "classes.dex": b"dex"})

    def _zipalign(self, inv: ToolInvocation) -> None:
        shutil.copyfile(inv.args[-2], inv.output)

    def _apksigner(self, inv: ToolInvocation) -> None:
        shutil.copyfile(inv.args[-1], inv.output)

    def _build_bundle(self, inv: ToolInvocation) -> None:
        module_zip = inv.args[inv.args.index("--modules") + 1]
        with zipfile.ZipFile(module_zip) as src, zipfile.ZipFile(inv.output, "w") as dst:
            dst.writestr("BundleConfig.pb", b"config")
            for info in src.infolist():
                if not info.is_dir():
                    dst.writestr("base/" + info.filename, src.read(info))

    def _build_apks(self, inv: ToolInvocation) -> None:
        write_zip(inv.output, {"toc.pb": b"toc", "splits/base-master.apk": b"apk"})


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_runner():
    """Tool runner that simulates every tool's output."""
    return FakeToolRunner()


@pytest.fixture
def decoded_project(temp_dir):
    """A project directory laid out the way apktool decodes a package."""
    outdir = temp_dir / "out" / "demo"
    write_files(outdir, DECODED_LAYOUT)
    return outdir


def config_document(
    root: Path,
    outdir: Path,
    app_path: Path | None = None,
    install: bool = False,
    launch: bool = False,
    bundle_config: str = "",
) -> str:
    app = app_path or outdir
    return f"""
[sign]
keystore = "{(root / 'release.jks').as_posix()}"
keystore_pass = "store-secret"
keystore_key_alias = "release"
keystore_key_pass = "key-secret"

[apk]
apk_path = "{(root / 'input.apk').as_posix()}"
apk_outdir = "{outdir.as_posix()}"
min_sdk_version = 21
target_sdk_version = "33"
version_code = "100"
version_name = "1.0.0"
app_name = "demo"

[jar]
apktool_path = "{(root / 'apktool.jar').as_posix()}"
bundletool_path = "{(root / 'bundletool.jar').as_posix()}"
android_jar_path = "{(root / 'android.jar').as_posix()}"

[config]
install = {str(install).lower()}
launch = {str(launch).lower()}
main_activity = "com.example.demo/.MainActivity"
bundletool_config_path = "{bundle_config}"

[build_apk]
app_path = "{app.as_posix()}"
"""


@pytest.fixture
def make_config(temp_dir):
    """Factory building a BuildConfig rooted in the temporary directory."""

    def factory(outdir: Path | None = None, **kwargs) -> BuildConfig:
        target = outdir or (temp_dir / "out" / "demo")
        return parse_build_config(config_document(temp_dir, target, **kwargs))

    return factory


@pytest.fixture
def config_file(temp_dir, decoded_project):
    """A configuration document on disk pointing at the decoded project."""
    path = temp_dir / "build.toml"
    path.write_text(config_document(temp_dir, decoded_project), encoding="utf-8")
    return path
