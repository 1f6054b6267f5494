"""
Configuration management for abtool.

Two layers live here:

* ``BuildConfig``: the immutable description of one build, loaded once from a
  TOML document (signing credentials, APK/bundle parameters, tool locations,
  runtime options and the source project).
* ``Settings``: process-level options read from the environment (log level,
  zip entry naming policy), with ``.env`` support.
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from .exceptions import ConfigurationError

# Load .env file if it exists (looks in cwd and parent directories)
load_dotenv()


class _Record(BaseModel):
    """Base for the read-only configuration records."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Sign(_Record):
    """Keystore credentials used by every signing tool."""

    keystore: str = Field(description="Keystore file location")
    keystore_pass: SecretStr = Field(description="Keystore password")
    keystore_key_alias: str = Field(description="Key alias inside the keystore")
    keystore_key_pass: SecretStr = Field(description="Key password")


class ApkSpec(_Record):
    """Source package and the version attributes stamped into the rebuild."""

    apk_path: str = Field(description="Source APK path")
    apk_outdir: str = Field(description="Output directory for decoded and intermediate files")
    min_sdk_version: str = Field(description="Minimum SDK version")
    target_sdk_version: str = Field(description="Target SDK version")
    version_code: str = Field(description="Version code")
    version_name: str = Field(description="Version name")
    app_name: str = Field(description="Application display name used in artifact names")

    @field_validator(
        "min_sdk_version", "target_sdk_version", "version_code", "version_name", mode="before"
    )
    @classmethod
    def _stringify_numbers(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ToolPaths(_Record):
    """Locations of the jars and executables the pipeline drives."""

    apktool_path: str = Field(description="apktool jar")
    bundletool_path: str = Field(description="bundletool jar")
    android_jar_path: str = Field(description="Platform android.jar")
    java: str = Field(default="java", description="Jar runtime")
    aapt2: str = Field(default="aapt2", description="Resource compiler and linker")
    zipalign: str = Field(default="zipalign", description="Alignment tool")
    apksigner: str = Field(default="apksigner", description="APK signer")
    jarsigner: str = Field(default="jarsigner", description="Bundle signer")
    adb: str = Field(default="adb", description="Device install and launch tool")


class RuntimeOptions(_Record):
    """What to do with the artifact once it is built."""

    install: bool = Field(default=False, description="Install after build")
    launch: bool = Field(default=False, description="Launch main activity after install")
    main_activity: str = Field(default="", description="Component name passed to am start")
    # An empty string means no bundle config.
    bundletool_config_path: str = Field(default="", description="Optional BundleConfig file")

    @property
    def has_bundle_config(self) -> bool:
        return self.bundletool_config_path != ""


class SourceProject(_Record):
    """Decoded project directory used as apktool's build input."""

    app_path: str = Field(description="Source project directory")


class BuildConfig(_Record):
    """Root configuration for one build; read-only after load."""

    sign: Sign
    apk: ApkSpec
    tools: ToolPaths = Field(alias="jar")
    runtime: RuntimeOptions = Field(alias="config")
    source: SourceProject = Field(alias="build_apk")

    def summary(self) -> dict[str, str]:
        """Flat, secret-free view used for display."""
        return {
            "keystore": self.sign.keystore,
            "key alias": self.sign.keystore_key_alias,
            "source apk": self.apk.apk_path,
            "output dir": self.apk.apk_outdir,
            "app name": self.apk.app_name,
            "sdk (min/target)": f"{self.apk.min_sdk_version}/{self.apk.target_sdk_version}",
            "version": f"{self.apk.version_name} ({self.apk.version_code})",
            "apktool": self.tools.apktool_path,
            "bundletool": self.tools.bundletool_path,
            "android.jar": self.tools.android_jar_path,
            "install": str(self.runtime.install),
            "launch": str(self.runtime.launch),
            "main activity": self.runtime.main_activity or "-",
            "bundle config": self.runtime.bundletool_config_path or "-",
            "source project": self.source.app_path,
        }


def parse_build_config(document: str, source: str = "<string>") -> BuildConfig:
    """Parse a TOML document into a BuildConfig.

    Args:
        document: TOML text
        source: Name reported in errors

    Returns:
        Validated BuildConfig

    Raises:
        ConfigurationError: If the document is not valid TOML or misses fields
    """
    try:
        data = tomllib.loads(document)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            message="Malformed TOML document",
            config_path=source,
            cause=e,
        ) from e

    try:
        return BuildConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            message=f"{e.error_count()} invalid or missing field(s)",
            context={"fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
            config_path=source,
            cause=e,
        ) from e


def load_build_config(path: str | Path) -> BuildConfig:
    """Load and validate the build configuration document at ``path``.

    Raises:
        ConfigurationError: If the file cannot be read or is malformed
    """
    config_path = Path(path)
    try:
        document = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            message="Cannot read configuration document",
            config_path=str(config_path),
            cause=e,
        ) from e
    return parse_build_config(document, source=str(config_path))


class Settings(BaseModel):
    """Process-level settings for abtool."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    zip_entry_separator: Literal["posix", "native"] = Field(
        default="posix", description="Separator policy for zip entry names"
    )

    @property
    def entry_separator(self) -> str:
        return "/" if self.zip_entry_separator == "posix" else os.sep

    @classmethod
    def from_env(cls) -> Settings:
        """Create settings from environment variables.

        Raises:
            ConfigurationError: If a variable holds an unsupported value
        """
        try:
            return cls(
                log_level=os.environ.get("ABTOOL_LOG_LEVEL", "INFO").upper(),  # type: ignore
                zip_entry_separator=os.environ.get("ABTOOL_ZIP_SEPARATOR", "posix").lower(),  # type: ignore
            )
        except ValidationError as e:
            raise ConfigurationError(
                message=f"{e.error_count()} invalid environment setting(s)",
                context={"fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
                config_path="environment",
                cause=e,
            ) from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
