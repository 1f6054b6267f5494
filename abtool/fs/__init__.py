"""Filesystem transfer primitives for abtool."""

from .transfer import copy_dir, cut_file, md5_file

__all__ = ["copy_dir", "cut_file", "md5_file"]
