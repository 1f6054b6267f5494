"""
Argument vectors for the external Android build tools.

Each builder returns a ToolInvocation carrying the stage name, the tool being
run, the exact argv, and the file the tool is expected to produce. Secrets are
unwrapped only here and listed on the invocation so they can be masked in logs.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from ..core.config import BuildConfig
from ..paths import PathName, PathResolver

MASK = "******"


class ToolInvocation(BaseModel):
    """One external program run."""

    stage: str = Field(description="Pipeline stage the run belongs to")
    tool: str = Field(description="Logical tool name")
    argv: list[str] = Field(description="Program followed by its arguments")
    output: Path | None = Field(default=None, description="File the tool declares it writes")
    secrets: list[str] = Field(default_factory=list, repr=False, exclude=True)

    @property
    def program(self) -> str:
        return self.argv[0]

    @property
    def args(self) -> list[str]:
        return self.argv[1:]

    def display(self) -> str:
        """Command line with every secret replaced by a mask."""
        rendered = " ".join(self.argv)
        for secret in self.secrets:
            if secret:
                rendered = rendered.replace(secret, MASK)
        return rendered


def _jar(config: BuildConfig, jar_path: str, *args: str) -> list[str]:
    return [config.tools.java, "-jar", jar_path, *args]


def _passwords(config: BuildConfig) -> tuple[str, str]:
    return (
        config.sign.keystore_pass.get_secret_value(),
        config.sign.keystore_key_pass.get_secret_value(),
    )


def compile_resources(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    res_zip = paths[PathName.RESOURCES_ZIP]
    return ToolInvocation(
        stage="compile-resources",
        tool="aapt2",
        argv=[config.tools.aapt2, "compile", "--dir", str(paths[PathName.RES]), "-o", str(res_zip)],
        output=res_zip,
    )


def link_resources(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    base_apk = paths[PathName.BASE_APK]
    apk = config.apk
    return ToolInvocation(
        stage="link-resources",
        tool="aapt2",
        argv=[
            config.tools.aapt2, "link", "--proto-format",
            "-o", str(base_apk),
            "-I", config.tools.android_jar_path,
            "--min-sdk-version", apk.min_sdk_version,
            "--target-sdk-version", apk.target_sdk_version,
            "--version-code", apk.version_code,
            "--version-name", apk.version_name,
            "--manifest", str(paths[PathName.DECODED_MANIFEST]),
            "-R", str(paths[PathName.RESOURCES_ZIP]),
            "--auto-add-overlay",
        ],
        output=base_apk,
    )


def decode_apk(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    outdir = paths[PathName.ROOT]
    return ToolInvocation(
        stage="decode-apk",
        tool="apktool",
        argv=_jar(config, config.tools.apktool_path, "d", config.apk.apk_path, "-s", "-o", str(outdir)),
        output=outdir,
    )


def build_apk(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    unsigned = paths[PathName.APK_UNSIGNED]
    return ToolInvocation(
        stage="apktool-build",
        tool="apktool",
        argv=_jar(config, config.tools.apktool_path, "b", str(paths[PathName.APP]), "-o", str(unsigned)),
        output=unsigned,
    )


def zipalign(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    aligned = paths[PathName.APK_ZIPALIGNED]
    return ToolInvocation(
        stage="zipalign",
        tool="zipalign",
        argv=[config.tools.zipalign, "-v", "-p", "4", str(paths[PathName.APK_UNSIGNED]), str(aligned)],
        output=aligned,
    )


def sign_apk(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    signed = paths[PathName.APK_SIGNED]
    ks_pass, key_pass = _passwords(config)
    return ToolInvocation(
        stage="apksigner",
        tool="apksigner",
        argv=[
            config.tools.apksigner, "sign",
            "--ks", config.sign.keystore,
            "--ks-pass", f"pass:{ks_pass}",
            "--out", str(signed),
            str(paths[PathName.APK_ZIPALIGNED]),
        ],
        output=signed,
        secrets=[ks_pass, key_pass],
    )


def build_bundle(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    aab = paths[PathName.AAB]
    args = ["build-bundle", "--modules", str(paths[PathName.BASE_ZIP]), "--output", str(aab)]
    if config.runtime.has_bundle_config:
        args.append(f"--config={config.runtime.bundletool_config_path}")
    return ToolInvocation(
        stage="build-bundle",
        tool="bundletool",
        argv=_jar(config, config.tools.bundletool_path, *args),
        output=aab,
    )


def sign_bundle(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    aab = paths[PathName.AAB]
    ks_pass, key_pass = _passwords(config)
    return ToolInvocation(
        stage="sign-bundle",
        tool="jarsigner",
        argv=[
            config.tools.jarsigner,
            "-digestalg", "SHA1",
            "-sigalg", "SHA1withRSA",
            "-keystore", config.sign.keystore,
            "-storepass", ks_pass,
            "-keypass", key_pass,
            str(aab),
            config.sign.keystore_key_alias,
        ],
        output=aab,
        secrets=[ks_pass, key_pass],
    )


def build_apks(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    apks = paths[PathName.APKS]
    ks_pass, key_pass = _passwords(config)
    return ToolInvocation(
        stage="build-apks",
        tool="bundletool",
        argv=_jar(
            config, config.tools.bundletool_path,
            "build-apks",
            "--bundle", str(paths[PathName.AAB]),
            "--output", str(apks),
            "--ks", config.sign.keystore,
            "--ks-pass", f"pass:{ks_pass}",
            "--ks-key-alias", config.sign.keystore_key_alias,
            "--key-pass", f"pass:{key_pass}",
        ),
        output=apks,
        secrets=[ks_pass, key_pass],
    )


def install_apks(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    return ToolInvocation(
        stage="install-apks",
        tool="bundletool",
        argv=_jar(config, config.tools.bundletool_path, "install-apks", "--apks", str(paths[PathName.APKS])),
    )


def install_apk(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    return ToolInvocation(
        stage="install-apk",
        tool="adb",
        argv=[config.tools.adb, "install", "-r", str(paths[PathName.APK_SIGNED])],
    )


def launch_app(config: BuildConfig, paths: PathResolver) -> ToolInvocation:
    return ToolInvocation(
        stage="launch-app",
        tool="adb",
        argv=[config.tools.adb, "shell", "am", "start", "-n", config.runtime.main_activity],
    )
