"""Core datatypes shared across Podvoice modules.

Responsibilities:
- Represent immutable records exchanged between pipeline stages.
- Keep job state explicit so stage inference can rely on data shape alone.

Key types:
- `Job`, `Chapter`, `Turn`, `GenerationRequest`, `SourceDocument`,
  `SynthesisBatch`, `DialogueLine`, `PcmAudio`, `SynthesisResult`,
  `SplitClip`, `ExtractionResult`, `PredictedQuestion`, `DraftedScript`, and
  `AdvanceResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

SPEAKER_ROLES = ("host", "expert", "simplifier")
JOB_STATUSES = ("pending", "generating", "ready", "error")
BATCH_MODES = ("single", "dialogue")


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """User-supplied generation settings persisted on the first invocation.

    Attributes:
        target_duration_minutes: Requested program length in minutes.
        style: Conversation style label (`educational`, `conversational`, ...).
        language: Target language code or `auto` to use the detected language.
        user_prompt: Optional free-form steering instructions for the drafter.
    """

    target_duration_minutes: int = 15
    style: str = "educational"
    language: str = "auto"
    user_prompt: str | None = None


@dataclass(frozen=True, slots=True)
class Turn:
    """One dialogue utterance.

    Attributes:
        turn_id: Stable identifier, unique within the job.
        chapter_id: Identifier of the owning chapter.
        speaker: Speaker role from `SPEAKER_ROLES`.
        text: Drafted utterance text.
        audio: Playable audio reference; empty until synthesized.
        duration: Seconds of audio, 0 until synthesized.
        timestamp: Seconds from program start, derived by the timeline.
        is_breakpoint: Hint for interactive pause points.
        attempts: Failed single-speaker synthesis attempts so far.
    """

    turn_id: str
    chapter_id: str
    speaker: str
    text: str
    audio: str = ""
    duration: float = 0.0
    timestamp: float = 0.0
    is_breakpoint: bool = False
    attempts: int = 0

    @property
    def has_audio(self) -> bool:
        """Return whether this turn already carries synthesized audio."""

        return bool(self.audio)


@dataclass(frozen=True, slots=True)
class Chapter:
    """Navigational grouping of turns with a derived time span."""

    chapter_id: str
    title: str
    summary: str = ""
    start_time: float = 0.0
    end_time: float = 0.0


@dataclass(frozen=True, slots=True)
class Job:
    """One podcast generation request and everything generated for it.

    Attributes:
        job_id: Job identifier.
        owner_id: Identifier of the requesting user.
        status: Lifecycle status from `JOB_STATUSES`.
        progress: Integer progress in the 0-100 range.
        message: Human-readable status message.
        language: Declared or detected language code.
        title: Program title chosen by the drafter.
        description: Program description chosen by the drafter.
        knowledge: Opaque knowledge structure produced by extraction.
        chapters: Ordered chapters.
        turns: Ordered dialogue turns.
        duration: Total program duration in seconds.
        generation: Persisted generation request, if provided.
        predicted_questions: Listener questions with answers drafted alongside the script.
        transcript_url: Blob reference of the assembled transcript.
        created_at: ISO-8601 creation timestamp.
        updated_at: ISO-8601 timestamp of the last write.
    """

    job_id: str
    owner_id: str
    status: str = "pending"
    progress: int = 0
    message: str = ""
    language: str = "auto"
    title: str = ""
    description: str = ""
    knowledge: Mapping[str, Any] = field(default_factory=dict)
    chapters: tuple[Chapter, ...] = field(default_factory=tuple)
    turns: tuple[Turn, ...] = field(default_factory=tuple)
    duration: float = 0.0
    predicted_questions: tuple[PredictedQuestion, ...] = field(default_factory=tuple)
    generation: GenerationRequest | None = None
    transcript_url: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def completed_turns(self) -> int:
        """Return the number of turns that already have audio."""

        return sum(1 for turn in self.turns if turn.has_audio)


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """One uploaded source document.

    Attributes:
        document_id: Document identifier, unique within the job.
        name: Display name, usually the original file name.
        page_count: Number of pages to transcribe.
        source_path: Path of the stored source file.
        page_images: Ordered page image paths; empty for text-layer documents.
    """

    document_id: str
    name: str
    page_count: int
    source_path: Path
    page_images: tuple[Path, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class DocumentContent:
    """Assembled per-document transcript handed to extraction and drafting."""

    document_id: str
    title: str
    content: str
    page_count: int


@dataclass(frozen=True, slots=True)
class SynthesisBatch:
    """Contiguous run of turns submitted together for synthesis.

    Attributes:
        turns: Turns in script order.
        mode: `single` or `dialogue`.
    """

    turns: tuple[Turn, ...]
    mode: str

    @property
    def is_dialogue(self) -> bool:
        """Return whether the batch targets multi-speaker synthesis."""

        return self.mode == "dialogue"

    @property
    def roles(self) -> tuple[str, ...]:
        """Return distinct speaker roles in first-appearance order."""

        return tuple(dict.fromkeys(turn.speaker for turn in self.turns))


@dataclass(frozen=True, slots=True)
class DialogueLine:
    """One line of a multi-speaker synthesis request."""

    text: str
    role: str
    voice: str


@dataclass(frozen=True, slots=True)
class PcmFormat:
    """Linear PCM sample layout."""

    sample_rate: int = 24000
    channels: int = 1
    sample_width: int = 2

    @property
    def frame_bytes(self) -> int:
        """Return bytes per sample frame across all channels."""

        return self.channels * self.sample_width


@dataclass(frozen=True, slots=True)
class PcmAudio:
    """Raw PCM buffer plus its sample layout."""

    data: bytes
    format: PcmFormat = field(default_factory=PcmFormat)

    @property
    def sample_count(self) -> int:
        """Return the number of whole sample frames in the buffer."""

        return len(self.data) // self.format.frame_bytes

    @property
    def duration_seconds(self) -> float:
        """Return the exact playback duration of the buffer."""

        return self.sample_count / float(self.format.sample_rate)


@dataclass(frozen=True, slots=True)
class SynthesisResult:
    """Single-speaker synthesis output.

    Attributes:
        audio: Playable container bytes.
        content_type: MIME type of `audio`.
        extension: File extension matching `content_type`.
        duration_seconds: Measured or estimated duration.
        duration_estimated: Whether the duration comes from a words-per-minute estimate.
    """

    audio: bytes
    content_type: str
    extension: str
    duration_seconds: float
    duration_estimated: bool = False


@dataclass(frozen=True, slots=True)
class SplitClip:
    """One per-turn clip cut from a combined dialogue buffer."""

    turn_id: str
    audio: bytes
    sample_count: int
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Knowledge extraction output."""

    knowledge: Mapping[str, Any]
    language: str


@dataclass(frozen=True, slots=True)
class PredictedQuestion:
    """A question a listener is likely to ask, answered ahead of time.

    Attributes:
        question_id: Identifier, unique within the job.
        question: Question text.
        answer: Short answer text.
        relevant_concepts: Chapter ids the question refers to.
        related_turns: Ids of turns in those chapters, where the question could be asked.
    """

    question_id: str
    question: str
    answer: str
    relevant_concepts: tuple[str, ...] = field(default_factory=tuple)
    related_turns: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class DraftedScript:
    """Script drafting output with turns that still lack audio."""

    title: str
    description: str
    chapters: tuple[Chapter, ...]
    turns: tuple[Turn, ...]
    predicted_questions: tuple[PredictedQuestion, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class AdvanceResult:
    """Outcome of one `advance` invocation.

    Attributes:
        success: Whether the invocation completed without a stage failure.
        done: Whether the job reached `ready`.
        status: Job status after the invocation.
        progress: Job progress after the invocation.
        stage: Stage that ran last in this invocation.
        message: Job status message after the invocation.
        completed_turns: Number of turns with audio.
        total_turns: Number of turns in the script.
    """

    success: bool
    done: bool
    status: str
    progress: int
    stage: str
    message: str = ""
    completed_turns: int = 0
    total_turns: int = 0
