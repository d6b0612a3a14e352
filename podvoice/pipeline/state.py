"""Stage inference and progress arithmetic for resumable jobs.

The current stage is never stored: it is derived from the persisted job and
the set of transcribed pages, so any invocation can resume where the previous
one stopped.
"""

from __future__ import annotations

from typing import Sequence

from ..models.datatypes import Job, SourceDocument

TRANSCRIBE_PROGRESS_START = 10
TRANSCRIBE_PROGRESS_SPAN = 25
EXTRACT_PROGRESS = 35
DRAFT_PROGRESS = 50
SCRIPT_READY_PROGRESS = 65
AUDIO_PROGRESS_SPAN = 27
AUDIO_PROGRESS_CAP = 92


def infer_stage(job: Job, pages_remaining: int) -> str:
    """Return `done`, `transcribe`, `script`, `audio`, or `finalize`."""

    if job.status == "ready":
        return "done"
    if not any(turn.text.strip() for turn in job.turns):
        return "transcribe" if pages_remaining > 0 else "script"
    if any(not turn.has_audio for turn in job.turns):
        return "audio"
    return "finalize"


def pending_pages(
    documents: Sequence[SourceDocument],
    transcribed: set[tuple[str, int]],
) -> list[tuple[SourceDocument, int]]:
    """Return untranscribed pages in document order, then page order."""

    return [
        (document, page)
        for document in documents
        for page in range(1, document.page_count + 1)
        if (document.document_id, page) not in transcribed
    ]


def transcription_progress(done: int, total: int) -> int:
    if total <= 0:
        return TRANSCRIBE_PROGRESS_START + TRANSCRIBE_PROGRESS_SPAN
    return TRANSCRIBE_PROGRESS_START + round(done / total * TRANSCRIBE_PROGRESS_SPAN)


def audio_progress(completed: int, total: int) -> int:
    if total <= 0:
        return AUDIO_PROGRESS_CAP
    return min(
        AUDIO_PROGRESS_CAP,
        SCRIPT_READY_PROGRESS + round(completed / total * AUDIO_PROGRESS_SPAN),
    )
