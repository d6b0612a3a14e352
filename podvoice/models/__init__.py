"""Shared typed data models for Podvoice.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    AdvanceResult,
    Chapter,
    GenerationRequest,
    Job,
    SourceDocument,
    SynthesisBatch,
    Turn,
)

__all__ = [
    "AdvanceResult",
    "Chapter",
    "GenerationRequest",
    "Job",
    "SourceDocument",
    "SynthesisBatch",
    "Turn",
]
