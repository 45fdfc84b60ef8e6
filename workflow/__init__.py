"""Workflow package — generation pipeline, cover rendering, and callbacks."""

from workflow.state import PipelineState
from workflow.pipeline import GenerationPipeline, new_ar_target_id
from workflow.cover import CoverGenerator
from workflow.callbacks import PipelineCallback, LoggingCallback, RichProgressCallback

__all__ = [
    "PipelineState",
    "GenerationPipeline",
    "new_ar_target_id",
    "CoverGenerator",
    "PipelineCallback",
    "LoggingCallback",
    "RichProgressCallback",
]
