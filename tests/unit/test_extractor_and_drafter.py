"""Unit tests for knowledge extraction and script drafting normalization."""

from __future__ import annotations

from typing import Any

import pytest

from podvoice.errors import DraftError, ExtractionError
from podvoice.llm.drafter import (
    OpenAIScriptDrafter,
    normalize_speaker,
    questions_from_payload,
    script_from_payload,
)
from podvoice.llm.extractor import (
    OpenAIKnowledgeExtractor,
    derive_relationships,
    normalize_concepts,
    normalize_language_code,
)
from podvoice.llm.provider_http import ProviderError
from podvoice.models.datatypes import DocumentContent, GenerationRequest, Turn
from podvoice.tts.voices import voice_cast


def _documents() -> list[DocumentContent]:
    return [DocumentContent(document_id="doc-01", title="orchard.pdf", content="Apples grow.", page_count=1)]


class _FakeChatClient:
    """Replay canned chat replies in order and record prompts."""

    def __init__(self, replies: list[Any] | None = None, error: ProviderError | None = None) -> None:
        self.replies = list(replies or [])
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def chat_completion_text(self, **kwargs: Any) -> str:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0)

    def chat_completion_json(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0)


def test_normalize_concepts_slugifies_ids_and_drops_incomplete_entries() -> None:
    """Ids are slugified, duplicates suffixed, and nameless concepts dropped."""

    concepts = normalize_concepts(
        [
            {"id": "Core Idea", "name": "Core", "description": "The core."},
            {"id": "core idea", "name": "Twin", "description": "Same id.", "difficulty": "hard"},
            {"name": "", "description": "No name."},
            "not a concept",
        ]
    )

    assert [concept["id"] for concept in concepts] == ["core-idea", "core-idea-2"]
    assert [concept["difficulty"] for concept in concepts] == ["medium", "hard"]
    assert normalize_concepts("nope") == []


def test_normalize_concepts_caps_the_list() -> None:
    raw = [{"id": f"c{i}", "name": f"C{i}", "description": "d"} for i in range(100)]

    assert len(normalize_concepts(raw)) == 80


def test_derive_relationships_keeps_known_distinct_targets_once() -> None:
    """Edges only point to known concepts, never to self, and are deduplicated."""

    concepts = [
        {"id": "a", "relatedConcepts": ["b", "b", "a", "ghost"]},
        {"id": "b", "relatedConcepts": ["a"]},
    ]

    assert derive_relationships(concepts) == [
        {"from": "a", "to": "b", "type": "related"},
        {"from": "b", "to": "a", "type": "related"},
    ]


def test_normalize_language_code_defaults_to_english() -> None:
    assert normalize_language_code(" FR. ") == "fr"
    assert normalize_language_code("") == "en"
    assert normalize_language_code("123") == "en"


def test_extractor_detects_language_and_builds_knowledge() -> None:
    """Two chat calls produce a language code and a normalized concept graph."""

    client = _FakeChatClient(
        [
            "de",
            '```json\n{"concepts": [{"id": "soil", "name": "Soil", "description": "Ground.", '
            '"relatedConcepts": ["roots"]}, {"id": "roots", "name": "Roots", "description": "Below."}]}\n```',
        ]
    )
    extractor = OpenAIKnowledgeExtractor(model="chat-model", client=client)  # type: ignore[arg-type]

    result = extractor.extract(_documents())

    assert result.language == "de"
    assert [concept["id"] for concept in result.knowledge["concepts"]] == ["soil", "roots"]
    assert result.knowledge["relationships"] == [{"from": "soil", "to": "roots", "type": "related"}]
    assert client.calls[0]["temperature"] == 0.0
    assert "Apples grow." in client.calls[1]["user_prompt"]


def test_extractor_degrades_unparseable_concepts_to_empty_graph() -> None:
    client = _FakeChatClient(["en", "I could not find any concepts, sorry."])

    result = OpenAIKnowledgeExtractor(client=client).extract(_documents())  # type: ignore[arg-type]

    assert result.knowledge == {"concepts": [], "relationships": []}


def test_extractor_maps_provider_failures_to_extraction_errors() -> None:
    error = ProviderError("quota gone", failure_kind="insufficient_quota", provider="OpenAI")
    extractor = OpenAIKnowledgeExtractor(client=_FakeChatClient(error=error))  # type: ignore[arg-type]

    with pytest.raises(ExtractionError) as exc_info:
        extractor.extract(_documents())

    assert exc_info.value.stage == "extract"
    assert "billing" in (exc_info.value.hint or "")
    with pytest.raises(ExtractionError, match="No transcribed documents"):
        extractor.extract([])


def test_script_from_payload_normalizes_turns_and_chapters() -> None:
    """Unknown speakers become host, unknown topics map to the first chapter."""

    script = script_from_payload(
        {
            "title": "Orchards",
            "topics": [{"id": "roots", "title": "Roots"}, {"id": "roots"}],
            "segments": [
                {"speaker": "Expert", "text": "Roots drink water.", "topicId": "roots"},
                {"speaker": "narrator", "text": "Meanwhile...", "topicId": "missing"},
                {"speaker": "host", "text": "```\ncode only\n```", "topicId": "roots"},
                {"speaker": "host", "text": "Why?", "topicId": "roots-2", "isQuestionBreakpoint": True},
            ],
        }
    )

    assert script.title == "Orchards"
    assert [chapter.chapter_id for chapter in script.chapters] == ["roots", "roots-2"]
    assert script.chapters[1].title == "Topic 2"
    assert [(turn.turn_id, turn.speaker, turn.chapter_id) for turn in script.turns] == [
        ("turn-000", "expert", "roots"),
        ("turn-001", "host", "roots"),
        ("turn-002", "host", "roots-2"),
    ]
    assert script.turns[2].is_breakpoint is True
    assert all(turn.audio == "" for turn in script.turns)


def test_script_from_payload_without_topics_uses_one_chapter() -> None:
    script = script_from_payload({"segments": [{"speaker": "host", "text": "Hello."}]})

    assert script.title == "Podcast"
    assert [(chapter.chapter_id, chapter.title) for chapter in script.chapters] == [("topic-1", "Podcast")]


def test_script_from_payload_without_speakable_turns_fails() -> None:
    with pytest.raises(DraftError, match="no speakable turns"):
        script_from_payload({"title": "Empty", "segments": [{"speaker": "host", "text": "  "}]})


def test_normalize_speaker_defaults_to_host() -> None:
    assert normalize_speaker("SIMPLIFIER") == "simplifier"
    assert normalize_speaker(None) == "host"


def test_drafter_sends_personas_language_and_user_steering() -> None:
    """The system prompt names the cast and language; the user prompt carries steering."""

    client = _FakeChatClient([{"title": "T", "segments": [{"speaker": "host", "text": "Salut."}]}])
    drafter = OpenAIScriptDrafter(model="chat-model", client=client, question_count=0)  # type: ignore[arg-type]
    request = GenerationRequest(target_duration_minutes=10, style="casual", language="fr", user_prompt="Focus on pears")

    script = drafter.draft(_documents(), {"concepts": [{"name": "Soil", "description": "Ground."}]}, request, voice_cast("gemini"))

    call = client.calls[0]
    assert script.turns[0].text == "Salut."
    assert call["temperature"] == 0.8
    assert "Alex (host)" in call["system_prompt"]
    assert "Jamie (expert)" in call["system_prompt"]
    assert "Sam" not in call["system_prompt"]
    assert "MUST be in French" in call["system_prompt"]
    assert "1500 words" in call["system_prompt"]
    assert "Focus on pears" in call["user_prompt"]
    assert "- Soil: Ground." in call["user_prompt"]


def test_drafter_maps_provider_failures_to_draft_errors() -> None:
    error = ProviderError("timed out", failure_kind="timeout", provider="OpenAI")
    drafter = OpenAIScriptDrafter(client=_FakeChatClient(error=error))  # type: ignore[arg-type]

    with pytest.raises(DraftError) as exc_info:
        drafter.draft(_documents(), {}, GenerationRequest(), voice_cast("openai"))

    assert exc_info.value.stage == "script"


def test_questions_from_payload_links_questions_to_chapter_turns() -> None:
    """Incomplete entries are dropped and related turns follow the topic ids."""

    turns = [
        Turn(turn_id="turn-000", chapter_id="roots", speaker="host", text="Roots?"),
        Turn(turn_id="turn-001", chapter_id="roots", speaker="expert", text="Roots drink."),
        Turn(turn_id="turn-002", chapter_id="fruit", speaker="host", text="Fruit?"),
    ]

    questions = questions_from_payload(
        {
            "questions": [
                {"question": "How deep?", "answer": "About a metre.", "relevantConcepts": ["roots"]},
                {"question": "No answer?", "answer": ""},
                "not a question",
                {"question": "When to pick?", "answer": "In autumn.", "relevantConcepts": ["fruit", " "]},
                {"question": "Extra?", "answer": "Cut by the limit."},
            ]
        },
        turns,
        limit=2,
    )

    assert [question.question_id for question in questions] == ["predicted-q-0", "predicted-q-1"]
    assert questions[0].related_turns == ("turn-000", "turn-001")
    assert questions[1].relevant_concepts == ("fruit",)
    assert questions[1].related_turns == ("turn-002",)


def test_drafter_drafts_listener_questions_after_the_script() -> None:
    client = _FakeChatClient(
        [
            {
                "title": "T",
                "topics": [{"id": "topic-1", "title": "Soil", "summary": "Dirt."}],
                "segments": [{"speaker": "host", "text": "Salut.", "topicId": "topic-1"}],
            },
            '{"questions": [{"question": "Pourquoi?", "answer": "Parce que.", "relevantConcepts": ["topic-1"]}]}',
        ]
    )
    drafter = OpenAIScriptDrafter(client=client, question_count=2)  # type: ignore[arg-type]

    script = drafter.draft(_documents(), {}, GenerationRequest(language="fr"), voice_cast("gemini"))

    question_call = client.calls[1]
    assert "Generate 2 natural questions" in question_call["system_prompt"]
    assert "in French" in question_call["system_prompt"]
    assert "- topic-1: Soil (Dirt.)" in question_call["user_prompt"]
    assert "orchard.pdf: Apples grow." in question_call["user_prompt"]
    assert [(question.question, question.related_turns) for question in script.predicted_questions] == [
        ("Pourquoi?", ("turn-000",))
    ]


def test_drafter_keeps_script_when_question_reply_is_unparseable() -> None:
    client = _FakeChatClient([{"segments": [{"speaker": "host", "text": "Hello."}]}, "no json here"])
    drafter = OpenAIScriptDrafter(client=client)  # type: ignore[arg-type]

    script = drafter.draft(_documents(), {}, GenerationRequest(), voice_cast("gemini"))

    assert script.turns[0].text == "Hello."
    assert script.predicted_questions == ()
