"""
Record store protocol for audio records.

Defines the contract the API layer relies on when talking to the external
backend that persists audio records and their files. This module is pure —
no I/O, no network calls. The HTTP implementation lives in
``ingestion/record_store.py``; tests substitute an in-memory fake.

Records are plain JSON-like dicts as returned by the store. The fields the
API reads are ``id``, ``audio`` (stored filename), ``latitude``,
``longitude``, ``loudness``, ``tags`` and ``created``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from core.audio.types import AudioUpload

Record = dict[str, Any]

AUDIO_FIELD = "audio"
"""Name of the file field holding the uploaded clip."""

RECORD_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
"""Record ids are opaque tokens of letters, digits, ``_`` and ``-``."""


def is_valid_record_id(record_id: str) -> bool:
    """True if ``record_id`` is safe to place in a store URL path segment."""
    return RECORD_ID_PATTERN.fullmatch(record_id) is not None


@runtime_checkable
class RecordStore(Protocol):
    """
    Protocol for audio record stores.

    Every operation either returns the store's view of the record(s) or
    raises ``core.errors.StoreError`` carrying the store's status code and
    message. Implementations never retry.
    """

    def create(self, fields: Mapping[str, Any], upload: AudioUpload) -> Record:
        """Create a record holding ``fields`` plus the uploaded file."""
        ...

    def list(self, *, sort: str = "-created") -> list[Record]:
        """
        Return every record, ordered by ``sort``.

        ``sort`` uses the store's syntax: a field name, ``-`` prefix for
        descending.
        """
        ...

    def get(self, record_id: str) -> Record:
        """Fetch one record. Missing records raise ``StoreError`` with status 404."""
        ...

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Apply a partial update and return the updated record."""
        ...

    def delete(self, record_id: str, *, authorization: str | None = None) -> None:
        """
        Delete a record.

        Args:
            record_id: Record identifier.
            authorization: Caller's ``Authorization`` header, forwarded as-is
                so the store applies its own access rules.
        """
        ...

    def file_url(self, record: Mapping[str, Any]) -> str:
        """Absolute URL of the record's stored audio file."""
        ...
