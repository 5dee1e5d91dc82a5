"""Generation pipeline: stage orchestration, selection state and display handles."""

from openvideogen.pipeline.handles import DisplayHandle, DisplayHandleRegistry
from openvideogen.pipeline.orchestrator import GalleryItem, PipelineOrchestrator, PipelineRun
from openvideogen.pipeline.selection import (
    PipelineSelection,
    Stage,
    StageMetrics,
    StageMetricsBook,
    StageModels,
)

__all__ = [
    "DisplayHandle",
    "DisplayHandleRegistry",
    "GalleryItem",
    "PipelineOrchestrator",
    "PipelineRun",
    "PipelineSelection",
    "Stage",
    "StageMetrics",
    "StageMetricsBook",
    "StageModels",
]
