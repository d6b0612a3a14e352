"""Text preparation components applied before speech synthesis.

This package provides speakable-text cleanup and dialogue batch planning.
"""

from .chunk_planner import ChunkPlanner
from .cleaners import SpeechTextCleaner, count_words

__all__ = ["ChunkPlanner", "SpeechTextCleaner", "count_words"]
