"""
Motion Analytics Pipeline Module
Orchestrates all analytics components for per-frame processing.
"""

from motion_analytics.pipeline.orchestrator import (
    FrameResult,
    MotionAnalyticsPipeline,
    PipelineConfig,
    PipelineDiagnostics,
    ProcessingMode,
)

__all__ = [
    "MotionAnalyticsPipeline",
    "PipelineConfig",
    "PipelineDiagnostics",
    "ProcessingMode",
    "FrameResult",
]
