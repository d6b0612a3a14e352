"""Top-level package for Podvoice.

This package turns uploaded source documents into a multi-speaker narrated
program through a resumable, checkpointed pipeline. The main orchestration
entry point is `PodcastPipeline`, whose `advance` method performs one bounded
slice of work per call.
"""

from .pipeline import PodcastPipeline

__all__ = ["PodcastPipeline", "__version__"]

__version__ = "0.1.0"
