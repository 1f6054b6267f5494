"""Orchestration module for abtool."""

from .flows import build_aab_flow, build_apk_flow, run_pipeline
from .pipeline import RepackagePipeline, Stage, aab_stages, apk_stages
from .stages import BuildContext

__all__ = [
    "build_aab_flow",
    "build_apk_flow",
    "run_pipeline",
    "RepackagePipeline",
    "Stage",
    "aab_stages",
    "apk_stages",
    "BuildContext",
]
