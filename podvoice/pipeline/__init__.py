"""Podvoice pipeline package.

This package contains orchestration and helper modules for resumable job
advancement, batched audio synthesis, and timeline bookkeeping.
"""

from .audio_batch import AudioBatchOrchestrator
from .orchestrator import PodcastPipeline
from .timeline import SegmentTimeline

__all__ = ["PodcastPipeline", "AudioBatchOrchestrator", "SegmentTimeline"]
