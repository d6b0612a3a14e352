"""Job, document, and blob storage contracts with filesystem implementations.

Responsibilities:
- Persist job records as JSON with atomic read-modify-write updates.
- Register source documents and persist per-page transcriptions immediately.
- Store synthesized clips and transcripts as blobs addressed by file URIs.

Workspace layout:
    jobs/<job_id>/job.json
    jobs/<job_id>/documents/<document_id>/document.json
    jobs/<job_id>/documents/<document_id>/transcriptions/<page>.txt
    blobs/<path>
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from dataclasses import asdict, fields, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import unquote, urlparse

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..errors import InputError, PersistenceError
from ..models.datatypes import (
    Chapter,
    GenerationRequest,
    Job,
    PredictedQuestion,
    SourceDocument,
    Turn,
)

IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg", ".webp", ".gif"})

PageRef = tuple[str, int]


class JobStore(Protocol):
    """Persistence contract for job records."""

    def create(self, job_id: str, owner_id: str) -> Job:
        """Create a new pending job."""

    def get(self, job_id: str) -> Job:
        """Return the stored job, raising `InputError` when unknown."""

    def update(self, job_id: str, **fields: Any) -> Job:
        """Apply field updates atomically and return the stored job."""

    def exists(self, job_id: str) -> bool:
        """Return whether a job record exists."""


class DocumentStore(Protocol):
    """Persistence contract for source documents and page transcriptions."""

    def register_document(self, job_id: str, name: str, source: Path) -> SourceDocument:
        """Copy a source document into the job and return its record."""

    def list_documents(self, job_id: str) -> list[SourceDocument]:
        """Return job documents in registration order."""

    def get_page_transcription(self, job_id: str, document_id: str, page: int) -> str | None:
        """Return a stored page transcription, or `None` when missing."""

    def put_page_transcription(
        self, job_id: str, document_id: str, page: int, text: str
    ) -> None:
        """Persist one page transcription."""

    def transcribed_pages(self, job_id: str) -> set[PageRef]:
        """Return the set of `(document_id, page)` pairs already transcribed."""


class BlobStore(Protocol):
    """Persistence contract for binary artifacts."""

    def put(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes under `path` and return a playable reference."""

    def read(self, url: str) -> bytes:
        """Return the bytes behind a reference returned by `put`."""


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write `data` to `path` through a same-directory temp file and rename."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def job_to_payload(job: Job) -> dict[str, Any]:
    """Serialize a job record into a JSON-compatible mapping."""

    payload = asdict(job)
    payload["knowledge"] = dict(job.knowledge)
    return payload


def job_from_payload(payload: dict[str, Any]) -> Job:
    """Deserialize a job record, ignoring unknown keys from newer writers."""

    turn_keys = {item.name for item in fields(Turn)}
    chapter_keys = {item.name for item in fields(Chapter)}
    job_keys = {item.name for item in fields(Job)}
    generation = payload.get("generation")
    values = {key: value for key, value in payload.items() if key in job_keys}
    values["chapters"] = tuple(
        Chapter(**{key: value for key, value in item.items() if key in chapter_keys})
        for item in payload.get("chapters") or []
    )
    values["turns"] = tuple(
        Turn(**{key: value for key, value in item.items() if key in turn_keys})
        for item in payload.get("turns") or []
    )
    values["predicted_questions"] = tuple(
        PredictedQuestion(
            question_id=str(item.get("question_id") or ""),
            question=str(item.get("question") or ""),
            answer=str(item.get("answer") or ""),
            relevant_concepts=tuple(item.get("relevant_concepts") or ()),
            related_turns=tuple(item.get("related_turns") or ()),
        )
        for item in payload.get("predicted_questions") or []
    )
    values["generation"] = GenerationRequest(**generation) if isinstance(generation, dict) else None
    values["knowledge"] = dict(payload.get("knowledge") or {})
    return Job(**values)


class FilesystemJobStore:
    """Job store keeping one JSON document per job."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with the workspace root directory."""

        self.root = root

    def _job_path(self, job_id: str) -> Path:
        return self.root / "jobs" / job_id / "job.json"

    def exists(self, job_id: str) -> bool:
        return self._job_path(job_id).is_file()

    def create(self, job_id: str, owner_id: str) -> Job:
        if self.exists(job_id):
            raise InputError(f"Job `{job_id}` already exists.", hint="Choose a new job id.")
        now = utc_timestamp()
        job = Job(job_id=job_id, owner_id=owner_id, created_at=now, updated_at=now)
        self._write(job)
        return job

    def get(self, job_id: str) -> Job:
        path = self._job_path(job_id)
        if not path.is_file():
            raise InputError(
                f"Unknown job `{job_id}`.",
                hint="Create the job first with `podvoice create`.",
            )
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read job record `{path}`: {exc}") from exc
        return job_from_payload(payload)

    def update(self, job_id: str, **fields: Any) -> Job:
        job = replace(self.get(job_id), **fields, updated_at=utc_timestamp())
        self._write(job)
        return job

    def _write(self, job: Job) -> None:
        payload = json.dumps(job_to_payload(job), ensure_ascii=False, indent=2, sort_keys=True)
        try:
            atomic_write_bytes(self._job_path(job.job_id), payload.encode("utf-8"))
        except OSError as exc:
            raise PersistenceError(f"Cannot write job `{job.job_id}`: {exc}") from exc


class FilesystemDocumentStore:
    """Document store copying sources into the job workspace."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with the workspace root directory."""

        self.root = root

    def _documents_dir(self, job_id: str) -> Path:
        return self.root / "jobs" / job_id / "documents"

    def register_document(self, job_id: str, name: str, source: Path) -> SourceDocument:
        """Copy a PDF, a single image, or a directory of page images into the job."""

        if not source.exists():
            raise InputError(f"Source document not found: {source}")

        document_id = f"doc-{len(self.list_documents(job_id)) + 1:02d}"
        document_dir = self._documents_dir(job_id) / document_id
        try:
            document_dir.mkdir(parents=True, exist_ok=False)
        except OSError as exc:
            raise PersistenceError(f"Cannot create document directory `{document_dir}`: {exc}") from exc
        try:
            if source.is_dir():
                images = sorted(
                    path for path in source.iterdir() if path.suffix.lower() in IMAGE_SUFFIXES
                )
                if not images:
                    raise InputError(f"Directory `{source}` contains no page images.")
                stored_source = document_dir / "pages"
                stored_source.mkdir()
                page_images = []
                for index, image in enumerate(images, start=1):
                    target = stored_source / f"{index:04d}{image.suffix.lower()}"
                    shutil.copy2(image, target)
                    page_images.append(target)
                page_count = len(page_images)
            else:
                stored_source = document_dir / f"source{source.suffix.lower()}"
                shutil.copy2(source, stored_source)
                if source.suffix.lower() in IMAGE_SUFFIXES:
                    page_images = [stored_source]
                    page_count = 1
                else:
                    page_images = []
                    page_count = self._pdf_page_count(stored_source)
        except OSError as exc:
            shutil.rmtree(document_dir, ignore_errors=True)
            raise PersistenceError(f"Cannot store document `{name}`: {exc}") from exc
        except InputError:
            shutil.rmtree(document_dir, ignore_errors=True)
            raise

        document = SourceDocument(
            document_id=document_id,
            name=name,
            page_count=page_count,
            source_path=stored_source,
            page_images=tuple(page_images),
        )
        record = {
            "document_id": document.document_id,
            "name": document.name,
            "page_count": document.page_count,
            "source_path": str(document.source_path.relative_to(document_dir)),
            "page_images": [str(path.relative_to(document_dir)) for path in page_images],
        }
        try:
            atomic_write_bytes(
                document_dir / "document.json",
                json.dumps(record, ensure_ascii=False, indent=2).encode("utf-8"),
            )
        except OSError as exc:
            raise PersistenceError(f"Cannot store document `{name}`: {exc}") from exc
        return document

    @staticmethod
    def _pdf_page_count(path: Path) -> int:
        try:
            page_count = len(PdfReader(str(path)).pages)
        except (OSError, PdfReadError) as exc:
            raise InputError(f"Cannot read PDF `{path.name}`: {exc}") from exc
        if page_count < 1:
            raise InputError(f"PDF `{path.name}` has no pages.")
        return page_count

    def list_documents(self, job_id: str) -> list[SourceDocument]:
        documents_dir = self._documents_dir(job_id)
        if not documents_dir.is_dir():
            return []
        documents: list[SourceDocument] = []
        for record_path in sorted(documents_dir.glob("*/document.json")):
            try:
                record = json.loads(record_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise PersistenceError(f"Cannot read document record `{record_path}`: {exc}") from exc
            base = record_path.parent
            documents.append(
                SourceDocument(
                    document_id=record["document_id"],
                    name=record["name"],
                    page_count=int(record["page_count"]),
                    source_path=base / record["source_path"],
                    page_images=tuple(base / item for item in record.get("page_images", [])),
                )
            )
        return documents

    def _page_path(self, job_id: str, document_id: str, page: int) -> Path:
        return self._documents_dir(job_id) / document_id / "transcriptions" / f"{page:04d}.txt"

    def get_page_transcription(self, job_id: str, document_id: str, page: int) -> str | None:
        path = self._page_path(job_id, document_id, page)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def put_page_transcription(
        self, job_id: str, document_id: str, page: int, text: str
    ) -> None:
        try:
            atomic_write_bytes(self._page_path(job_id, document_id, page), text.encode("utf-8"))
        except OSError as exc:
            raise PersistenceError(
                f"Cannot persist transcription for {document_id} page {page}: {exc}"
            ) from exc

    def transcribed_pages(self, job_id: str) -> set[PageRef]:
        pages: set[PageRef] = set()
        for path in self._documents_dir(job_id).glob("*/transcriptions/*.txt"):
            pages.add((path.parent.parent.name, int(path.stem)))
        return pages


class FilesystemBlobStore:
    """Blob store writing files under `<root>/blobs` and returning file URIs."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with the workspace root directory."""

        self.root = root / "blobs"

    def put(self, path: str, data: bytes, content_type: str) -> str:
        _ = content_type
        target = (self.root / path).resolve()
        try:
            atomic_write_bytes(target, data)
        except OSError as exc:
            raise PersistenceError(f"Cannot store blob `{path}`: {exc}") from exc
        return target.as_uri()

    def read(self, url: str) -> bytes:
        parsed = urlparse(url)
        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(url)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise PersistenceError(f"Cannot read blob `{url}`: {exc}") from exc
