"""External tool invocation for abtool."""

from . import commands
from .commands import ToolInvocation
from .runner import SubprocessToolRunner, ToolRunner

__all__ = ["commands", "ToolInvocation", "SubprocessToolRunner", "ToolRunner"]
