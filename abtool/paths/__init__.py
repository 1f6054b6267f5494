"""Derived path registry for abtool builds."""

from .registry import PathName, PathResolver, dependencies, validate_derivations

__all__ = ["PathName", "PathResolver", "dependencies", "validate_derivations"]
