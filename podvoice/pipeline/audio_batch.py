"""Batched turn synthesis with per-turn fallback.

Responsibilities:
- Clean turn text for speech and plan speaker-constrained batches.
- Synthesize dialogue batches in one request and split the result per turn.
- Fall back to per-turn synthesis for every turn of a failed dialogue batch.
- Publish each clip and report every turn update for immediate persistence.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Mapping, Sequence

from ..audio.pcm import PcmSplitter
from ..errors import SynthesisError
from ..llm.pacing import RateLimiter
from ..models.datatypes import DialogueLine, SynthesisBatch, SynthesisResult, Turn
from ..telemetry.logger import RunLogger
from ..text.chunk_planner import ChunkPlanner
from ..text.cleaners import SpeechTextCleaner
from ..tts.synthesizer import Synthesizer
from ..tts.voices import VoiceProfile

PublishClip = Callable[[Turn, SynthesisResult], str]
TurnUpdate = Callable[[Turn], None]
ProgressCallback = Callable[[int, int, str], None]


class AudioBatchOrchestrator:
    """Drive planner, synthesizer, and splitter over a run of pending turns."""

    def __init__(
        self,
        synthesizer: Synthesizer,
        voices: Mapping[str, VoiceProfile],
        language: str,
        publish_clip: PublishClip,
        on_turn_update: TurnUpdate | None = None,
        planner: ChunkPlanner | None = None,
        splitter: PcmSplitter | None = None,
        cleaner: SpeechTextCleaner | None = None,
        rate_limiter: RateLimiter | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.synthesizer = synthesizer
        self.voices = voices
        self.language = language
        self.publish_clip = publish_clip
        self.on_turn_update = on_turn_update
        self.planner = planner or ChunkPlanner()
        self.splitter = splitter or PcmSplitter()
        self.cleaner = cleaner or SpeechTextCleaner()
        self.rate_limiter = rate_limiter or RateLimiter(min_interval_seconds=0.3)
        self.run_logger = run_logger
        self._pacing_key = f"synthesis:{getattr(synthesizer, 'provider_id', 'tts')}"

    def run(
        self,
        turns: Sequence[Turn],
        on_progress: ProgressCallback | None = None,
    ) -> list[Turn]:
        """Synthesize `turns` and return them updated, in input order.

        Turns that already carry audio are returned unchanged. Turns whose text
        cleans to nothing get empty audio and zero duration. A failed single
        synthesis leaves audio empty and increments `attempts`.
        """

        results: dict[str, Turn] = {turn.turn_id: turn for turn in turns}
        pending = [turn for turn in turns if not turn.has_audio]
        total = len(turns)
        completed = sum(1 for turn in turns if turn.has_audio)

        def report(turn: Turn, message: str) -> None:
            nonlocal completed
            results[turn.turn_id] = turn
            if self.on_turn_update is not None:
                self.on_turn_update(turn)
            if turn.has_audio:
                completed += 1
            if on_progress is not None:
                on_progress(completed, total, message)

        cleaned = {turn.turn_id: replace(turn, text=self.cleaner.clean(turn.text)) for turn in pending}
        for batch in self.planner.plan([cleaned[turn.turn_id] for turn in pending]):
            speakable = [turn for turn in batch.turns if turn.text]
            for turn in batch.turns:
                if not turn.text:
                    source = results[turn.turn_id]
                    report(replace(source, audio="", duration=0.0), f"Skipped empty turn {turn.turn_id}")
            if not speakable:
                continue
            if batch.is_dialogue and self._dialogue_ready(speakable):
                if self._run_dialogue(batch, speakable, results, report):
                    continue
            for turn in speakable:
                self._run_single(turn, results, report)

        return [results[turn.turn_id] for turn in turns]

    @staticmethod
    def _dialogue_ready(speakable: Sequence[Turn]) -> bool:
        return len(speakable) >= 2 and len({turn.speaker for turn in speakable}) == 2

    def _voice_for(self, role: str) -> str:
        profile = self.voices.get(role) or self.voices["host"]
        return profile.provider_voice_id

    def _run_dialogue(
        self,
        batch: SynthesisBatch,
        speakable: Sequence[Turn],
        results: Mapping[str, Turn],
        report: Callable[[Turn, str], None],
    ) -> bool:
        """Return whether the dialogue batch succeeded; failures mean fallback."""

        lines = [
            DialogueLine(text=turn.text, role=turn.speaker, voice=self._voice_for(turn.speaker))
            for turn in speakable
        ]
        self.rate_limiter.acquire(self._pacing_key)
        try:
            audio = self.synthesizer.synthesize_dialogue(lines, self.language)
            clips = self.splitter.split(audio, speakable)
        except Exception as exc:
            if self.run_logger is not None:
                self.run_logger.log_warning(
                    "audio",
                    "dialogue_fallback",
                    turns=len(speakable),
                    first_turn=speakable[0].turn_id,
                    error_type=type(exc).__name__,
                )
            return False

        if self.run_logger is not None:
            self.run_logger.log_event(
                "audio", "dialogue_batch", turns=len(batch.turns), roles=len(batch.roles)
            )
        for clip in clips:
            source = results[clip.turn_id]
            clip_result = SynthesisResult(
                audio=clip.audio,
                content_type="audio/wav",
                extension="wav",
                duration_seconds=clip.duration_seconds,
            )
            reference = self.publish_clip(source, clip_result)
            report(
                replace(source, audio=reference, duration=clip.duration_seconds),
                f"Synthesized turn {source.turn_id}",
            )
        return True

    def _run_single(
        self,
        cleaned_turn: Turn,
        results: Mapping[str, Turn],
        report: Callable[[Turn, str], None],
    ) -> None:
        source = results[cleaned_turn.turn_id]
        self.rate_limiter.acquire(self._pacing_key)
        try:
            result = self.synthesizer.synthesize_single(
                cleaned_turn.text, self._voice_for(cleaned_turn.speaker), self.language
            )
        except SynthesisError as exc:
            if self.run_logger is not None:
                self.run_logger.log_warning(
                    "audio",
                    "turn_failed",
                    turn=source.turn_id,
                    attempts=source.attempts + 1,
                    error_type=type(exc).__name__,
                )
            report(
                replace(source, attempts=source.attempts + 1),
                f"Synthesis failed for turn {source.turn_id}",
            )
            return

        reference = self.publish_clip(source, result)
        if self.run_logger is not None:
            self.run_logger.log_event(
                "audio",
                "turn_synthesized",
                turn=source.turn_id,
                estimated=str(result.duration_estimated).lower(),
            )
        report(
            replace(source, audio=reference, duration=result.duration_seconds),
            f"Synthesized turn {source.turn_id}",
        )
