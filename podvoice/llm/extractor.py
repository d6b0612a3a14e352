"""Knowledge extraction interfaces and provider integrations.

Responsibilities:
- Detect the primary language of the assembled transcripts.
- Extract normalized teaching concepts and derive their relationship edges.
"""

from __future__ import annotations

import re
from typing import Any, Protocol, Sequence

from ..errors import ExtractionError
from ..models.datatypes import DocumentContent, ExtractionResult
from .openai_client import OpenAIChatClient, parse_json_object
from .prompts import PromptLibrary
from .provider_http import ProviderError, provider_error_hint

MAX_CONCEPTS = 80
_DIFFICULTIES = ("easy", "medium", "hard")


class KnowledgeExtractor(Protocol):
    """Protocol for knowledge extraction providers."""

    def extract(self, documents: Sequence[DocumentContent]) -> ExtractionResult:
        """Return the knowledge structure and detected language for documents."""


def normalize_concepts(raw_concepts: Any) -> list[dict[str, Any]]:
    """Normalize model concepts into stable ids and a closed difficulty set.

    Concepts without a name or description are dropped; duplicate ids get the
    1-based concept position appended. At most `MAX_CONCEPTS` are kept.
    """

    if not isinstance(raw_concepts, list):
        return []

    normalized: list[dict[str, Any]] = []
    used_ids: set[str] = set()
    for index, raw in enumerate(raw_concepts, start=1):
        concept = raw if isinstance(raw, dict) else {}
        base_id = re.sub(
            r"[^a-z0-9\-]+", "-", str(concept.get("id") or f"concept-{index}").strip().lower()
        )
        concept_id = f"{base_id}-{index}" if base_id in used_ids else base_id
        used_ids.add(concept_id)

        name = str(concept.get("name") or "").strip()
        description = str(concept.get("description") or "").strip()
        if not name or not description:
            continue

        related = concept.get("relatedConcepts")
        difficulty = concept.get("difficulty")
        normalized.append(
            {
                "id": concept_id,
                "name": name,
                "description": description,
                "difficulty": difficulty if difficulty in _DIFFICULTIES else "medium",
                "relatedConcepts": [
                    str(item).strip() for item in related if str(item or "").strip()
                ]
                if isinstance(related, list)
                else [],
            }
        )
    return normalized[:MAX_CONCEPTS]


def derive_relationships(concepts: Sequence[dict[str, Any]]) -> list[dict[str, str]]:
    """Build deduplicated `related` edges from concept links to known ids."""

    known_ids = {concept["id"] for concept in concepts}
    edges: dict[tuple[str, str], dict[str, str]] = {}
    for concept in concepts:
        for target in concept.get("relatedConcepts", []):
            if target not in known_ids or target == concept["id"]:
                continue
            edges.setdefault(
                (concept["id"], target),
                {"from": concept["id"], "to": target, "type": "related"},
            )
    return list(edges.values())


def normalize_language_code(raw: str) -> str:
    """Reduce a model reply to a two-letter lowercase code, defaulting to `en`."""

    letters = re.sub(r"[^a-z]", "", (raw or "").strip().lower())[:2]
    return letters or "en"


class OpenAIKnowledgeExtractor:
    """OpenAI-backed extractor for language detection and concept analysis."""

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        api_key: str | None = None,
        client: OpenAIChatClient | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        """Initialize extractor settings and OpenAI client dependencies."""

        self.model = model
        self.client = client or OpenAIChatClient(
            api_key=api_key,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
        )
        self.prompts = PromptLibrary()

    def extract(self, documents: Sequence[DocumentContent]) -> ExtractionResult:
        """Detect language, extract concepts, and derive relationships."""

        if not documents:
            raise ExtractionError("No transcribed documents to analyze.")

        try:
            language = normalize_language_code(
                self.client.chat_completion_text(
                    model=self.model,
                    system_prompt=self.prompts.language_detection_system_prompt(),
                    user_prompt=self.prompts.language_sample(documents),
                    temperature=0.0,
                    max_tokens=16,
                )
            )
            raw_reply = self.client.chat_completion_text(
                model=self.model,
                system_prompt=self.prompts.concepts_system_prompt(),
                user_prompt=self.prompts.combined_documents(documents),
                temperature=0.3,
            )
        except ProviderError as exc:
            raise ExtractionError(
                f"Knowledge extraction failed: {exc}", hint=provider_error_hint(exc)
            ) from exc

        try:
            concepts = normalize_concepts(parse_json_object(raw_reply).get("concepts"))
        except ValueError:
            # An unparseable concept list degrades to an empty knowledge graph.
            concepts = []

        return ExtractionResult(
            knowledge={
                "concepts": concepts,
                "relationships": derive_relationships(concepts),
            },
            language=language,
        )
