"""Domain exceptions for pipeline and CLI diagnostics.

Every failure surfaced by the generation pipeline is a `PipelineStageError`
carrying the stage it happened in, a human-readable detail, and an optional
actionable hint. Subclasses name the failure family so callers can decide
between local recovery (page placeholders, synthesis fallback) and failing the
whole invocation.
"""

from __future__ import annotations


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    default_stage = "pipeline"

    def __init__(
        self,
        detail: str | None = None,
        *,
        stage: str | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        resolved_detail = detail if detail is not None else "Pipeline stage failed."
        super().__init__(resolved_detail)
        self.stage = stage if stage is not None else self.default_stage
        self.detail = resolved_detail
        self.hint = hint


class InputError(PipelineStageError):
    """Missing or invalid user input; raised before any job state is mutated."""

    default_stage = "input"


class TranscriptionError(PipelineStageError):
    """One page could not be transcribed."""

    default_stage = "transcribe"


class ExtractionError(PipelineStageError):
    """Knowledge extraction failed for the assembled documents."""

    default_stage = "extract"


class DraftError(PipelineStageError):
    """Script drafting failed or produced an unusable script."""

    default_stage = "script"


class SynthesisError(PipelineStageError):
    """A speech synthesis request failed, timed out, or was rejected."""

    default_stage = "audio"


class PersistenceError(PipelineStageError):
    """A job, document, or blob store write failed."""

    default_stage = "persist"
