"""Persistence components for Podvoice.

This package contains job, document, and blob store interfaces together with
their filesystem-backed implementations.
"""

from .storage import (
    BlobStore,
    DocumentStore,
    FilesystemBlobStore,
    FilesystemDocumentStore,
    FilesystemJobStore,
    JobStore,
)

__all__ = [
    "JobStore",
    "DocumentStore",
    "BlobStore",
    "FilesystemJobStore",
    "FilesystemDocumentStore",
    "FilesystemBlobStore",
]
