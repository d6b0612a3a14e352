"""Prompt template library for LLM stages.

Responsibilities:
- Centralize prompt construction for transcription, analysis, and drafting.
- Keep prompts deterministic for identical inputs.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from ..models.datatypes import Chapter, DocumentContent, GenerationRequest

DRAFT_WORDS_PER_MINUTE = 150
MAX_SOURCE_CHARS = 200_000
LANGUAGE_SAMPLE_CHARS = 8000
QUESTION_SOURCE_CHARS = 60_000


class PromptLibrary:
    """Build prompt strings for supported LLM tasks."""

    def transcription_system_prompt(self) -> str:
        """Return deterministic system prompt for page transcription."""

        return (
            "You transcribe pages of educational documents. Reproduce every piece of "
            "readable text in reading order, describe figures and diagrams briefly in "
            "square brackets, and render formulas in plain text. "
            "Return only the transcription with no commentary."
        )

    def transcription_page_prompt(self, document_name: str, page_number: int) -> str:
        """Return user prompt for one page image."""

        return f"Transcribe page {page_number} of the document `{document_name}`."

    def language_detection_system_prompt(self) -> str:
        """Return system prompt that forces a bare ISO 639-1 language answer."""

        return (
            "Detect the language of the text and return ONLY the ISO 639-1 code "
            "(en, fr, es, de, etc.). No punctuation. No extra words."
        )

    def language_sample(self, documents: Sequence[DocumentContent]) -> str:
        """Return the leading text sample used for language detection."""

        if not documents:
            return ""
        return documents[0].content[:LANGUAGE_SAMPLE_CHARS]

    def concepts_system_prompt(self) -> str:
        """Return system prompt for knowledge concept extraction."""

        return (
            "You analyze educational material for high-quality podcast creation.\n\n"
            "Identify the genuinely central ideas in the source and express them as "
            "concepts that are useful in spoken teaching. Each concept should be concrete, "
            "distinct, and reusable in a deep conversation.\n\n"
            'Return only raw JSON with a "concepts" array. Every concept includes "id", '
            '"name", "description", "difficulty" (easy, medium, or hard), and '
            '"relatedConcepts" (ids of other concepts). IDs follow the "concept-1", '
            '"concept-2" format.'
        )

    def combined_documents(self, documents: Sequence[DocumentContent]) -> str:
        """Return all document transcripts joined for a single analysis prompt."""

        return "\n\n---\n\n".join(
            f"Document: {document.title}\n\n{document.content[:MAX_SOURCE_CHARS]}"
            for document in documents
        )

    def script_system_prompt(
        self,
        request: GenerationRequest,
        language_name: str,
        personas: Mapping[str, tuple[str, str]],
    ) -> str:
        """Return system prompt for dialogue script drafting.

        Args:
            request: Persisted generation request.
            language_name: English name of the program language.
            personas: role -> `(display_name, description)` for the cast.
        """

        target_words = self.target_words(request)
        cast = "\n".join(
            f"{name} ({role}): {description}" for role, (name, description) in personas.items()
        )
        roles = ", ".join(f'"{role}"' for role in personas)
        language_instruction = ""
        if language_name != "English":
            language_instruction = (
                f"\nLANGUAGE REQUIREMENT: The entire podcast MUST be in {language_name}. "
                f"All dialogue, the title, and the description must be written in {language_name}.\n"
            )

        return (
            "You are writing a podcast script. The podcast features a genuine conversation "
            f"between:\n\n{cast}\n{language_instruction}\n"
            f"DURATION REQUIREMENT: The podcast MUST be approximately "
            f"{request.target_duration_minutes} minutes long, which means approximately "
            f"{target_words} words of dialogue at ~{DRAFT_WORDS_PER_MINUTE} words per minute.\n\n"
            "This is ONE podcast with one opening and one closing. Topics flow into each "
            "other naturally; do not announce topic changes. The expert develops ideas fully "
            "with examples and analogies, and the host reacts, connects, and asks what "
            "listeners would ask.\n\n"
            f"The style is: {request.style}\n\n"
            "Write plain spoken text only: no markdown, lists, headings, or stage directions.\n\n"
            "OUTPUT FORMAT\n"
            "Return a JSON object with this structure:\n"
            "{\n"
            '  "title": "An engaging podcast title",\n'
            '  "description": "A 2-3 sentence description",\n'
            '  "topics": [{"id": "topic-1", "title": "Topic title", "summary": "Brief summary"}],\n'
            '  "segments": [{"speaker": "host", "text": "What they say", '
            '"topicId": "topic-1", "isQuestionBreakpoint": false}]\n'
            "}\n\n"
            f"Each segment is one person's turn; `speaker` is one of {roles}. Mark "
            "isQuestionBreakpoint true where a listener might want to pause and ask a question."
        )

    def script_prompt(
        self,
        documents: Sequence[DocumentContent],
        knowledge: Mapping[str, Any],
        request: GenerationRequest,
    ) -> str:
        """Return user prompt carrying source content, topics, and user steering."""

        concepts = knowledge.get("concepts") if isinstance(knowledge, Mapping) else None
        topics = "\n".join(
            f"- {concept.get('name', '')}: {concept.get('description', '')}"
            for concept in (concepts or [])
            if isinstance(concept, Mapping)
        )
        user_request = ""
        if request.user_prompt:
            user_request = f"USER'S SPECIFIC REQUEST:\n{request.user_prompt}\n\n"
        return (
            f"SOURCE CONTENT:\n{self.combined_documents(documents)}\n\n"
            f"IDENTIFIED TOPICS:\n{topics or '- (none identified)'}\n\n"
            f"{user_request}Generate the complete podcast script now."
        )

    def questions_system_prompt(self, language_name: str, count: int) -> str:
        """Return system prompt for anticipated listener questions."""

        return (
            "You anticipate questions listeners might have while listening to the podcast.\n\n"
            f"Generate {count} natural questions that a curious listener might want to ask, "
            "with concise but helpful answers. Vary the types: clarifications, deeper dives, "
            "concrete examples, connections to other topics, practical applications.\n\n"
            f"Write questions and answers in {language_name}.\n\n"
            "Return a JSON object:\n"
            "{\n"
            '  "questions": [{"question": "The listener\'s question", '
            '"answer": "Concise answer (2-4 sentences)", "relevantConcepts": ["topic-1"]}]\n'
            "}\n\n"
            "`relevantConcepts` lists ids of the podcast topics the question belongs to."
        )

    def questions_prompt(
        self, documents: Sequence[DocumentContent], chapters: Sequence[Chapter]
    ) -> str:
        """Return user prompt carrying source excerpts and the drafted topics."""

        content = "\n\n".join(
            f"{document.title}: {document.content[:QUESTION_SOURCE_CHARS]}" for document in documents
        )
        topics = "\n".join(
            f"- {chapter.chapter_id}: {chapter.title}"
            + (f" ({chapter.summary})" if chapter.summary else "")
            for chapter in chapters
        )
        return f"Content:\n{content}\n\nTopics:\n{topics}"

    @staticmethod
    def target_words(request: GenerationRequest) -> int:
        """Return the requested word count for a target duration."""

        return round(max(1, request.target_duration_minutes) * DRAFT_WORDS_PER_MINUTE)
