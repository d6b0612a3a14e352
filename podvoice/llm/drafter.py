"""Script drafting interfaces and provider integrations.

Responsibilities:
- Draft a host/expert dialogue script with navigational chapters.
- Normalize the model reply into `Chapter` and `Turn` records without audio.
- Drop turns that would be empty once cleaned for speech.
- Draft anticipated listener questions and link them to the turns they concern.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, Protocol, Sequence

from ..errors import DraftError
from ..models.datatypes import (
    SPEAKER_ROLES,
    Chapter,
    DocumentContent,
    DraftedScript,
    GenerationRequest,
    PredictedQuestion,
    Turn,
)
from ..text.cleaners import SpeechTextCleaner
from ..tts.voices import VoiceProfile, language_name
from .openai_client import OpenAIChatClient, parse_json_object
from .prompts import PromptLibrary
from .provider_http import ProviderError, provider_error_hint

DRAFT_ROLES = ("host", "expert")


class ScriptDrafter(Protocol):
    """Protocol for script drafting providers."""

    def draft(
        self,
        documents: Sequence[DocumentContent],
        knowledge: Mapping[str, Any],
        request: GenerationRequest,
        voices: Mapping[str, VoiceProfile],
    ) -> DraftedScript:
        """Return a drafted script whose turns all lack audio."""


def normalize_speaker(raw: Any) -> str:
    """Map a model speaker label onto the closed role set, defaulting to `host`."""

    speaker = str(raw or "").strip().lower()
    return speaker if speaker in SPEAKER_ROLES else "host"


def script_from_payload(
    payload: Mapping[str, Any],
    cleaner: SpeechTextCleaner | None = None,
) -> DraftedScript:
    """Convert a drafted JSON payload into chapters and speakable turns."""

    speech_cleaner = cleaner or SpeechTextCleaner()
    title = str(payload.get("title") or "").strip() or "Podcast"
    description = str(payload.get("description") or "").strip()

    chapters: list[Chapter] = []
    raw_topics = payload.get("topics")
    for index, topic in enumerate(raw_topics if isinstance(raw_topics, list) else [], start=1):
        topic = topic if isinstance(topic, dict) else {}
        chapter_id = str(topic.get("id") or "").strip() or f"topic-{index}"
        if any(chapter.chapter_id == chapter_id for chapter in chapters):
            chapter_id = f"{chapter_id}-{index}"
        chapters.append(
            Chapter(
                chapter_id=chapter_id,
                title=str(topic.get("title") or "").strip() or f"Topic {index}",
                summary=str(topic.get("summary") or "").strip(),
            )
        )
    if not chapters:
        chapters.append(Chapter(chapter_id="topic-1", title=title))
    known_ids = {chapter.chapter_id for chapter in chapters}

    turns: list[Turn] = []
    raw_segments = payload.get("segments")
    for segment in raw_segments if isinstance(raw_segments, list) else []:
        if not isinstance(segment, dict):
            continue
        text = str(segment.get("text") or "").strip()
        if not speech_cleaner.clean(text):
            continue
        chapter_id = str(segment.get("topicId") or "").strip()
        turns.append(
            Turn(
                turn_id=f"turn-{len(turns):03d}",
                chapter_id=chapter_id if chapter_id in known_ids else chapters[0].chapter_id,
                speaker=normalize_speaker(segment.get("speaker")),
                text=text,
                is_breakpoint=bool(segment.get("isQuestionBreakpoint")),
            )
        )

    if not turns:
        raise DraftError(
            "Drafted script contains no speakable turns.",
            hint="Run `advance` again to redraft the script.",
        )
    return DraftedScript(
        title=title,
        description=description,
        chapters=tuple(chapters),
        turns=tuple(turns),
    )


def questions_from_payload(
    payload: Mapping[str, Any],
    turns: Sequence[Turn],
    limit: int | None = None,
) -> tuple[PredictedQuestion, ...]:
    """Convert a question JSON payload into answered questions linked to turns.

    Entries missing either the question or the answer are dropped. A question is
    related to every turn whose chapter id appears in its `relevantConcepts`.
    """

    questions: list[PredictedQuestion] = []
    raw_questions = payload.get("questions")
    for item in raw_questions if isinstance(raw_questions, list) else []:
        if not isinstance(item, dict):
            continue
        question = str(item.get("question") or "").strip()
        answer = str(item.get("answer") or "").strip()
        if not question or not answer:
            continue
        raw_concepts = item.get("relevantConcepts")
        concepts = tuple(
            str(concept).strip()
            for concept in (raw_concepts if isinstance(raw_concepts, list) else [])
            if str(concept or "").strip()
        )
        questions.append(
            PredictedQuestion(
                question_id=f"predicted-q-{len(questions)}",
                question=question,
                answer=answer,
                relevant_concepts=concepts,
                related_turns=tuple(turn.turn_id for turn in turns if turn.chapter_id in concepts),
            )
        )
    return tuple(questions if limit is None else questions[:limit])


class OpenAIScriptDrafter:
    """OpenAI-backed drafter for two-speaker podcast scripts."""

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        api_key: str | None = None,
        client: OpenAIChatClient | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        cleaner: SpeechTextCleaner | None = None,
        question_count: int = 15,
    ) -> None:
        """Initialize drafter settings and OpenAI client dependencies."""

        self.model = model
        self.question_count = question_count
        self.client = client or OpenAIChatClient(
            api_key=api_key,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
        )
        self.prompts = PromptLibrary()
        self.cleaner = cleaner or SpeechTextCleaner()

    def draft(
        self,
        documents: Sequence[DocumentContent],
        knowledge: Mapping[str, Any],
        request: GenerationRequest,
        voices: Mapping[str, VoiceProfile],
    ) -> DraftedScript:
        """Draft a script, then its listener questions when `question_count` is positive."""

        personas = {
            role: (voices[role].display_name, voices[role].description)
            for role in DRAFT_ROLES
            if role in voices
        }
        try:
            payload = self.client.chat_completion_json(
                model=self.model,
                system_prompt=self.prompts.script_system_prompt(
                    request, language_name(request.language), personas
                ),
                user_prompt=self.prompts.script_prompt(documents, knowledge, request),
                temperature=0.8,
            )
        except ProviderError as exc:
            raise DraftError(
                f"Script drafting failed: {exc}", hint=provider_error_hint(exc)
            ) from exc
        script = script_from_payload(payload, self.cleaner)
        if self.question_count <= 0:
            return script
        return replace(
            script, predicted_questions=self._predict_questions(documents, request, script)
        )

    def _predict_questions(
        self,
        documents: Sequence[DocumentContent],
        request: GenerationRequest,
        script: DraftedScript,
    ) -> tuple[PredictedQuestion, ...]:
        try:
            raw_reply = self.client.chat_completion_text(
                model=self.model,
                system_prompt=self.prompts.questions_system_prompt(
                    language_name(request.language), self.question_count
                ),
                user_prompt=self.prompts.questions_prompt(documents, script.chapters),
                temperature=0.6,
            )
        except ProviderError as exc:
            raise DraftError(
                f"Listener question drafting failed: {exc}", hint=provider_error_hint(exc)
            ) from exc

        try:
            payload = parse_json_object(raw_reply)
        except ValueError:
            # An unparseable reply leaves the script without listener questions.
            return ()
        return questions_from_payload(payload, script.turns, self.question_count)
