"""Core stage execution helpers for the Podvoice pipeline.

Responsibilities:
- Transcribe one bounded batch of pages and assemble document transcripts.
- Run knowledge extraction and script drafting in one slice.
- Synthesize one bounded batch of pending turns with immediate persistence.
- Finalize timing and mark the job ready.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Sequence

from ..errors import DraftError, PipelineStageError, SynthesisError, TranscriptionError
from ..models.datatypes import DocumentContent, Job, SourceDocument, SynthesisResult, Turn
from ..text.chunk_planner import ChunkPlanner
from ..text.cleaners import count_words
from .audio_batch import AudioBatchOrchestrator
from .state import (
    DRAFT_PROGRESS,
    EXTRACT_PROGRESS,
    SCRIPT_READY_PROGRESS,
    audio_progress,
    pending_pages,
    transcription_progress,
)

TRANSCRIPTION_FAILED_MARKER = "[[TRANSCRIPTION FAILED]]"
SCRIPT_WORDS_PER_MINUTE = 150


def failed_page_placeholder(document: SourceDocument, page: int, exc: Exception) -> str:
    """Return the stored stand-in text for a page that could not be transcribed."""

    detail = exc.detail if isinstance(exc, PipelineStageError) else str(exc)
    return (
        f"{TRANSCRIPTION_FAILED_MARKER}\n"
        f"Document: {document.name}\n"
        f"Page: {page}\n"
        f"Error: {detail}"
    )


def segment_blob_path(job_id: str, index: int, speaker: str, extension: str) -> str:
    return f"{job_id}/segments/{index:03d}-{speaker}.{extension}"


class PipelineExecutionMixin:
    """Provide stage-level pipeline helper methods."""

    def _transcribe_slice(self, job_id: str, documents: Sequence[SourceDocument]) -> bool:
        """Transcribe up to one batch of pages.

        The full transcript is uploaded by the slice that stores the last page;
        extraction always waits for a later slice.

        Returns:
            Whether every page is now transcribed.
        """

        transcribed = self.document_store.transcribed_pages(job_id)
        remaining = pending_pages(documents, transcribed)
        total = sum(document.page_count for document in documents)
        done = total - len(remaining)
        batch = remaining[: self.config.transcription_batch_pages]

        transcriber = self._get_transcriber() if batch else None
        for document, page in batch:
            try:
                text = transcriber.transcribe(document, page)
            except TranscriptionError as exc:
                self._log_warning(
                    "transcribe",
                    "page_failed",
                    document=document.document_id,
                    page=page,
                    error_type=type(exc).__name__,
                )
                text = failed_page_placeholder(document, page, exc)
            else:
                self._log_event(
                    "transcribe", "page_transcribed", document=document.document_id, page=page
                )
            self.document_store.put_page_transcription(job_id, document.document_id, page, text)
            done += 1
            self.job_store.update(
                job_id,
                progress=transcription_progress(done, total),
                message=f"Transcribing pages ({done}/{total})",
            )

        if len(remaining) > len(batch):
            return False

        self._upload_transcript(job_id, self._assemble_documents(job_id, documents))
        return True

    def _assemble_documents(
        self, job_id: str, documents: Sequence[SourceDocument]
    ) -> list[DocumentContent]:
        """Join stored page transcriptions into per-document content."""

        contents: list[DocumentContent] = []
        for document in documents:
            blocks = []
            for page in range(1, document.page_count + 1):
                text = self.document_store.get_page_transcription(
                    job_id, document.document_id, page
                )
                blocks.append(f"--- Page {page} ---\n{(text or '').strip()}")
            contents.append(
                DocumentContent(
                    document_id=document.document_id,
                    title=document.name,
                    content="\n\n".join(blocks),
                    page_count=document.page_count,
                )
            )
        return contents

    def _upload_transcript(self, job_id: str, contents: Sequence[DocumentContent]) -> None:
        """Upload the full transcript; failures are logged and do not stop the job."""

        transcript = "\n\n".join(
            f"=== DOCUMENT: {content.title} ===\n{content.content}" for content in contents
        )
        try:
            url = self.blob_store.put(
                f"{job_id}/transcript.txt", transcript.encode("utf-8"), "text/plain"
            )
        except PipelineStageError as exc:
            self._log_warning("transcribe", "transcript_upload_failed", error_type=type(exc).__name__)
            return
        self.job_store.update(job_id, transcript_url=url)

    def _script_slice(self, job_id: str) -> Job:
        """Extract knowledge, draft the script, and persist it without audio."""

        job = self.job_store.get(job_id)
        request = job.generation
        contents = self._assemble_documents(job_id, self.document_store.list_documents(job_id))

        self.job_store.update(job_id, progress=EXTRACT_PROGRESS, message="Extracting key concepts")
        extraction = self._get_extractor().extract(contents)
        language = request.language if request.language != "auto" else extraction.language
        language = language or "en"
        self._log_event(
            "script",
            "knowledge_extracted",
            concepts=len(extraction.knowledge.get("concepts", [])),
            language=language,
        )

        self.job_store.update(job_id, progress=DRAFT_PROGRESS, message="Drafting script")
        drafted = self._get_drafter().draft(
            contents, extraction.knowledge, replace(request, language=language), self._voices()
        )

        turns = self.timeline.recompute(drafted.turns)
        words = sum(count_words(turn.text) for turn in turns)
        minutes = words / SCRIPT_WORDS_PER_MINUTE
        return self.job_store.update(
            job_id,
            title=drafted.title,
            description=drafted.description,
            knowledge=dict(extraction.knowledge),
            language=language,
            chapters=tuple(self.timeline.recompute_chapters(drafted.chapters, turns)),
            turns=tuple(turns),
            predicted_questions=drafted.predicted_questions,
            progress=SCRIPT_READY_PROGRESS,
            message=(
                f"Script ready: {len(turns)} segments (~{minutes:.1f} min est, {words} words)"
            ),
        )

    def _audio_slice(self, job_id: str) -> bool:
        """Synthesize one batch of pending turns.

        Returns:
            Whether every turn now has audio.
        """

        job = self.job_store.get(job_id)
        pending = [turn for turn in job.turns if not turn.has_audio]
        self._raise_for_exhausted_turns(pending)

        positions = {turn.turn_id: index for index, turn in enumerate(job.turns)}
        total = len(job.turns)

        def publish_clip(turn: Turn, result: SynthesisResult) -> str:
            return self.blob_store.put(
                segment_blob_path(job_id, positions[turn.turn_id], turn.speaker, result.extension),
                result.audio,
                result.content_type,
            )

        def on_progress(completed: int, batch_total: int, message: str) -> None:
            self._log_event(
                "audio", "turn_progress", completed=completed, total=batch_total, detail=message
            )

        orchestrator = AudioBatchOrchestrator(
            synthesizer=self._get_synthesizer(),
            voices=self._voices(),
            language=job.language,
            publish_clip=publish_clip,
            on_turn_update=self._turn_persister(job_id, total),
            planner=ChunkPlanner(
                char_budget=self.config.dialogue_char_budget,
                max_turns=self.config.dialogue_max_turns,
                max_speakers=self.config.dialogue_max_speakers,
                turn_char_ceiling=self.config.turn_char_ceiling,
                label_overhead_chars=self.config.label_overhead_chars,
            ),
            cleaner=self.cleaner,
            rate_limiter=self.rate_limiter,
            run_logger=self._run_logger,
        )
        updated = orchestrator.run(self._select_audio_batch(pending), on_progress)
        self._raise_for_exhausted_turns(updated)

        job = self.job_store.get(job_id)
        remaining = [turn for turn in job.turns if not turn.has_audio]
        if remaining and not any(self.cleaner.clean(turn.text) for turn in remaining):
            raise DraftError(
                f"Turn `{remaining[0].turn_id}` has no speakable text.",
                hint="The script is defective; recreate the job to redraft it.",
            )
        return not remaining

    def _select_audio_batch(self, pending: Sequence[Turn]) -> list[Turn]:
        """Return pending turns in order up to `audio_batch_turns` speakable ones.

        Unspeakable turns ride along without using up the batch size.
        """

        batch: list[Turn] = []
        speakable = 0
        for turn in pending:
            if speakable >= self.config.audio_batch_turns:
                break
            batch.append(turn)
            if self.cleaner.clean(turn.text):
                speakable += 1
        return batch

    def _raise_for_exhausted_turns(self, turns: Sequence[Turn]) -> None:
        limit = self.config.max_turn_attempts
        for turn in turns:
            if not turn.has_audio and turn.attempts >= limit:
                raise SynthesisError(
                    f"Turn `{turn.turn_id}` failed synthesis {turn.attempts} times.",
                    hint="Check the speech provider, then run `advance` again to retry.",
                )

    def _turn_persister(self, job_id: str, total: int) -> Callable[[Turn], None]:
        """Return a callback that writes one updated turn with a fresh timeline."""

        def persist(turn: Turn) -> None:
            job = self.job_store.get(job_id)
            turns = self.timeline.recompute(
                [turn if item.turn_id == turn.turn_id else item for item in job.turns]
            )
            completed = sum(1 for item in turns if item.has_audio)
            self.job_store.update(
                job_id,
                turns=tuple(turns),
                progress=audio_progress(completed, total),
                message=f"Generating audio ({completed}/{total} segments)",
            )

        return persist

    def _finalize(self, job_id: str) -> Job:
        """Recompute timing, set the rounded duration, and mark the job ready."""

        job = self.job_store.get(job_id)
        turns = self.timeline.recompute(job.turns)
        chapters = self.timeline.recompute_chapters(job.chapters, turns)
        duration = round(self.timeline.total_duration(turns))
        return self.job_store.update(
            job_id,
            turns=tuple(turns),
            chapters=tuple(chapters),
            duration=float(duration),
            status="ready",
            progress=100,
            message=f"Podcast ready ({duration} s)",
        )
