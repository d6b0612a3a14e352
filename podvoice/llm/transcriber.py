"""Page transcription interfaces and implementations.

Responsibilities:
- Define a protocol for per-page transcription.
- Provide an OpenAI vision transcriber for page images.
- Provide an offline pypdf text-layer transcriber for text-based PDFs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..errors import TranscriptionError
from ..models.datatypes import SourceDocument
from .openai_client import OpenAIChatClient
from .prompts import PromptLibrary
from .provider_http import ProviderError, provider_error_hint

_IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


class PageTranscriber(Protocol):
    """Protocol for page transcription providers."""

    provider_id: str

    def transcribe(self, document: SourceDocument, page_number: int) -> str:
        """Return the text of one 1-based page, raising `TranscriptionError` on failure."""


class OpenAIVisionTranscriber:
    """OpenAI-backed transcriber that reads rendered page images."""

    provider_id = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        client: OpenAIChatClient | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        """Initialize transcriber settings and OpenAI client dependencies."""

        self.model = model
        self.client = client or OpenAIChatClient(
            api_key=api_key,
            timeout_seconds=timeout_seconds,
            max_retries=max_retries,
        )
        self.prompts = PromptLibrary()

    def transcribe(self, document: SourceDocument, page_number: int) -> str:
        """Transcribe one page image with a vision chat-completions request."""

        if page_number < 1 or page_number > len(document.page_images):
            raise TranscriptionError(
                f"Document `{document.name}` has no page image for page {page_number}.",
                hint="Register the document with one image per page or use text-layer mode.",
            )
        image_path = document.page_images[page_number - 1]
        try:
            image_bytes = image_path.read_bytes()
        except OSError as exc:
            raise TranscriptionError(f"Cannot read page image `{image_path}`: {exc}") from exc

        try:
            return self.client.describe_image_text(
                model=self.model,
                system_prompt=self.prompts.transcription_system_prompt(),
                user_prompt=self.prompts.transcription_page_prompt(document.name, page_number),
                image_bytes=image_bytes,
                image_mime_type=_IMAGE_MIME_TYPES.get(image_path.suffix.lower(), "image/png"),
            )
        except ProviderError as exc:
            raise TranscriptionError(
                f"Page {page_number} transcription failed: {exc}",
                hint=provider_error_hint(exc),
            ) from exc


class PdfTextLayerTranscriber:
    """Offline transcriber reading the embedded PDF text layer with pypdf."""

    provider_id = "pdf-text"

    def __init__(self) -> None:
        self._readers: dict[Path, PdfReader] = {}

    def transcribe(self, document: SourceDocument, page_number: int) -> str:
        """Extract one page's text layer, failing when the page has no text."""

        reader = self._reader(document.source_path)
        if page_number < 1 or page_number > len(reader.pages):
            raise TranscriptionError(
                f"Document `{document.name}` has no page {page_number}."
            )
        try:
            text = (reader.pages[page_number - 1].extract_text() or "").strip()
        except (PdfReadError, ValueError, KeyError) as exc:
            raise TranscriptionError(
                f"Cannot extract text from page {page_number} of `{document.name}`: {exc}"
            ) from exc
        if not text:
            raise TranscriptionError(
                f"Page {page_number} of `{document.name}` has no extractable text.",
                hint="Scanned pages need page images and `transcription_mode: vision`.",
            )
        return text

    def _reader(self, source_path: Path) -> PdfReader:
        reader = self._readers.get(source_path)
        if reader is not None:
            return reader
        try:
            reader = PdfReader(str(source_path))
        except (OSError, PdfReadError) as exc:
            raise TranscriptionError(f"Cannot open PDF `{source_path}`: {exc}") from exc
        self._readers[source_path] = reader
        return reader
