"""Zip archive primitives for abtool."""

from .zip import enclosed_name, entry_name, unzip, zip_dir

__all__ = ["enclosed_name", "entry_name", "unzip", "zip_dir"]
