"""Pipeline orchestration for Podvoice.

Responsibilities:
- Create jobs from source documents and a generation request.
- Advance a job by one bounded slice of work per invocation.
- Persist failures on the job and surface them as stage-aware errors.

Key types:
- `PodcastPipeline`: orchestration facade exposing `create_job` and `advance`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from ..config import PodvoiceConfig, ProviderRuntimeConfig
from ..errors import InputError, PersistenceError, PipelineStageError
from ..io.storage import (
    BlobStore,
    DocumentStore,
    FilesystemBlobStore,
    FilesystemDocumentStore,
    FilesystemJobStore,
    JobStore,
)
from ..llm.drafter import ScriptDrafter
from ..llm.extractor import KnowledgeExtractor
from ..llm.pacing import RateLimiter
from ..llm.transcriber import PageTranscriber
from ..models.datatypes import AdvanceResult, GenerationRequest, Job
from ..provider_factory import ProviderFactory
from ..telemetry.logger import RunLogger
from ..text.cleaners import SpeechTextCleaner
from ..tts.synthesizer import Synthesizer
from ..tts.voices import VoiceProfile, voice_cast
from .execution import PipelineExecutionMixin
from .runtime import PipelineRuntimeMixin
from .state import infer_stage, pending_pages
from .telemetry import PipelineTelemetryMixin
from .timeline import SegmentTimeline


class PodcastPipeline(PipelineRuntimeMixin, PipelineTelemetryMixin, PipelineExecutionMixin):
    """Coordinate resumable generation slices for podcast jobs."""

    def __init__(
        self,
        config: PodvoiceConfig | None = None,
        *,
        job_store: JobStore | None = None,
        document_store: DocumentStore | None = None,
        blob_store: BlobStore | None = None,
        transcriber: PageTranscriber | None = None,
        extractor: KnowledgeExtractor | None = None,
        drafter: ScriptDrafter | None = None,
        synthesizer: Synthesizer | None = None,
        rate_limiter: RateLimiter | None = None,
        run_logger: RunLogger | None = None,
        stage_progress_callback: Callable[[str, int, int], None] | None = None,
    ) -> None:
        """Initialize stores and optional pre-built stage providers.

        Providers not passed in are created on first use from the resolved
        runtime configuration, so a job can be transcribed without speech
        credentials being present yet.
        """

        self.config = config or PodvoiceConfig()
        self._validate_config(self.config)
        root = self.config.workspace_dir
        self.job_store = job_store or FilesystemJobStore(root)
        self.document_store = document_store or FilesystemDocumentStore(root)
        self.blob_store = blob_store or FilesystemBlobStore(root)
        self.timeline = SegmentTimeline()
        self.cleaner = SpeechTextCleaner()
        self.rate_limiter = rate_limiter or RateLimiter(
            min_interval_seconds=self.config.provider_call_delay_seconds
        )
        self._transcriber = transcriber
        self._extractor = extractor
        self._drafter = drafter
        self._synthesizer = synthesizer
        self._runtime: ProviderRuntimeConfig | None = None
        self._run_logger = run_logger
        self._stage_progress_callback = stage_progress_callback

    def create_job(
        self,
        job_id: str,
        sources: Sequence[Path],
        request: GenerationRequest | None = None,
        owner_id: str = "local",
    ) -> Job:
        """Create a pending job, register its documents, and store the request."""

        if not sources:
            raise InputError(
                "At least one source document is required.",
                hint="Pass one or more `--doc` paths.",
            )
        missing = [str(source) for source in sources if not source.exists()]
        if missing:
            raise InputError(f"Source document not found: {', '.join(missing)}")

        self.job_store.create(job_id, owner_id)
        for source in sources:
            document = self.document_store.register_document(job_id, source.name, source)
            self._log_event(
                "input", "document_registered", document=document.document_id, pages=document.page_count
            )
        if request is None:
            return self.job_store.get(job_id)
        return self.job_store.update(job_id, generation=request, language=request.language)

    def advance(self, job_id: str, inputs: GenerationRequest | None = None) -> AdvanceResult:
        """Perform one bounded slice of work for a job and report where it stands.

        Args:
            job_id: Job to advance.
            inputs: Generation request, persisted when the job has none yet.

        Raises:
            InputError: Unknown job, no documents, or no generation request; the
                job is left untouched.
            PipelineStageError: Any other stage failure, after the job has been
                moved to `error` with the failure detail as its message.
        """

        job = self.job_store.get(job_id)
        if job.status == "ready":
            return self._result(job, stage="done")

        documents = self.document_store.list_documents(job_id)
        remaining = pending_pages(documents, self.document_store.transcribed_pages(job_id))
        stage = infer_stage(job, len(remaining))
        if stage in {"transcribe", "script"}:
            if not documents:
                raise InputError(
                    f"Job `{job_id}` has no source documents.",
                    hint="Create the job with at least one `--doc`.",
                )
            if job.generation is None and inputs is None:
                raise InputError(
                    f"Job `{job_id}` has no generation request.",
                    hint="Pass generation options (duration, style, language) to `advance`.",
                )

        job = self._begin(job, inputs)
        try:
            if stage == "transcribe":
                self._run_stage("transcribe", job_id, lambda: self._transcribe_slice(job_id, documents))
                return self._result(self.job_store.get(job_id), stage="transcribe")
            if stage == "script":
                job = self._run_stage("script", job_id, lambda: self._script_slice(job_id))
                return self._result(job, stage="script")
            if stage == "audio":
                finished = self._run_stage("audio", job_id, lambda: self._audio_slice(job_id))
                if not finished:
                    return self._result(self.job_store.get(job_id), stage="audio")
                stage = "finalize"
            job = self._run_stage("finalize", job_id, lambda: self._finalize(job_id))
            return self._result(job, stage="finalize")
        except PipelineStageError as exc:
            self._fail(job_id, exc)
            raise
        except Exception as exc:
            error = PipelineStageError(
                stage=stage,
                detail=f"Unexpected failure: {exc}",
                hint="Run `advance` again; completed work is kept.",
            )
            self._fail(job_id, error)
            raise error from exc

    def status(self, job_id: str) -> AdvanceResult:
        """Return the current state of a job without doing any work."""

        job = self.job_store.get(job_id)
        documents = self.document_store.list_documents(job_id)
        remaining = pending_pages(documents, self.document_store.transcribed_pages(job_id))
        return self._result(job, stage=infer_stage(job, len(remaining)))

    def _begin(self, job: Job, inputs: GenerationRequest | None) -> Job:
        """Move the job to `generating`, storing first-time inputs and resetting retries."""

        updates: dict[str, object] = {}
        if job.generation is None and inputs is not None:
            updates["generation"] = inputs
            updates["language"] = inputs.language
        if job.status == "error":
            updates["turns"] = tuple(
                replace(turn, attempts=0) if turn.attempts else turn for turn in job.turns
            )
        if job.status != "generating":
            updates["status"] = "generating"
            updates["message"] = "Resuming generation" if job.status == "error" else "Starting generation"
        if not updates:
            return job
        return self.job_store.update(job.job_id, **updates)

    def _fail(self, job_id: str, exc: PipelineStageError) -> None:
        try:
            self.job_store.update(job_id, status="error", message=f"Error: {exc.detail}")
        except PersistenceError as persist_exc:
            self._log_warning("persist", "error_status_not_saved", error_type=type(persist_exc).__name__)

    @staticmethod
    def _result(job: Job, stage: str) -> AdvanceResult:
        return AdvanceResult(
            success=True,
            done=job.status == "ready",
            status=job.status,
            progress=job.progress,
            stage=stage,
            message=job.message,
            completed_turns=job.completed_turns,
            total_turns=len(job.turns),
        )

    def _runtime_config(self) -> ProviderRuntimeConfig:
        if self._runtime is None:
            self._runtime = self._resolve_runtime_config(self.config)
        return self._runtime

    def _get_transcriber(self) -> PageTranscriber:
        if self._transcriber is None:
            self._transcriber = ProviderFactory.create_transcriber(self._runtime_config(), self.config)
        return self._transcriber

    def _get_extractor(self) -> KnowledgeExtractor:
        if self._extractor is None:
            self._extractor = ProviderFactory.create_extractor(self._runtime_config(), self.config)
        return self._extractor

    def _get_drafter(self) -> ScriptDrafter:
        if self._drafter is None:
            self._drafter = ProviderFactory.create_drafter(self._runtime_config(), self.config)
        return self._drafter

    def _get_synthesizer(self) -> Synthesizer:
        if self._synthesizer is None:
            self._synthesizer = ProviderFactory.create_synthesizer(self._runtime_config(), self.config)
        return self._synthesizer

    def _voices(self) -> dict[str, VoiceProfile]:
        provider_id = getattr(self._get_synthesizer(), "provider_id", None)
        if provider_id is None:
            provider_id = self._runtime_config().tts_provider
        return voice_cast(provider_id, self.config.voices)
