"""
External tool adapter.

Runs a ToolInvocation to completion with the caller's stdin, stdout and
stderr inherited, so tool output reaches the operator's terminal unparsed.
A non-zero exit status is the only failure signal. There is no timeout.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from ..core.exceptions import StageError, ToolNotFoundError
from ..core.logging import get_logger
from .commands import ToolInvocation

logger = get_logger(__name__)

INSTALL_HINTS = {
    "aapt2": "Install the Android SDK build-tools and add them to PATH",
    "zipalign": "Install the Android SDK build-tools and add them to PATH",
    "apksigner": "Install the Android SDK build-tools and add them to PATH",
    "adb": "Install the Android SDK platform-tools and add them to PATH",
    "jarsigner": "Install a JDK and add its bin directory to PATH",
    "apktool": "Install a Java runtime and add java to PATH",
    "bundletool": "Install a Java runtime and add java to PATH",
}


class ToolRunner(ABC):
    """Abstract runner for external tools."""

    @abstractmethod
    async def run(self, invocation: ToolInvocation) -> None:
        """Run ``invocation`` and wait for it to exit.

        Raises:
            StageError: If the tool exits with a non-zero status
        """
        ...


class SubprocessToolRunner(ToolRunner):
    """Runs tools as child processes sharing this process's standard streams."""

    async def run(self, invocation: ToolInvocation) -> None:
        logger.info("exec command", stage=invocation.stage, command=invocation.display())

        try:
            process = await asyncio.create_subprocess_exec(*invocation.argv)
        except FileNotFoundError as e:
            raise ToolNotFoundError(
                message=f"Executable not found: {invocation.program}",
                stage=invocation.stage,
                tool=invocation.tool,
                install_hint=INSTALL_HINTS.get(invocation.tool, ""),
                cause=e,
            ) from e

        returncode = await process.wait()
        if returncode != 0:
            raise StageError(
                message=f"{invocation.stage} failed",
                stage=invocation.stage,
                tool=invocation.tool,
                returncode=returncode,
            )

        logger.debug("Command completed", stage=invocation.stage, returncode=returncode)
