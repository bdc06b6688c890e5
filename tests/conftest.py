"""
Shared fixtures for the test suite.

Centralizes reusable test infrastructure so individual test files
don't need to repeat override/mock boilerplate.
"""

from __future__ import annotations

import copy
import itertools
from collections.abc import Mapping
from typing import Any
from unittest.mock import MagicMock

import numpy as np
import pytest
from fastapi.testclient import TestClient

from api.deps import get_analysis_engine, get_record_store
from api.main import app
from core.audio.types import AudioUpload
from core.errors import StoreError
from core.store import AUDIO_FIELD, Record
from ingestion.audio_engine import AudioAnalysisEngine

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SAMPLE_RATE: int = 44100
FAKE_STORE_URL: str = "http://store.test"


# ---------------------------------------------------------------------------
# Fake record store
# ---------------------------------------------------------------------------


class InMemoryRecordStore:
    """Dict-backed record store — no network calls.

    Satisfies the ``RecordStore`` protocol. ``created`` timestamps are
    strictly increasing so ``-created`` ordering is deterministic.
    """

    def __init__(self) -> None:
        self.records: dict[str, Record] = {}
        self.uploads: dict[str, AudioUpload] = {}
        self.deleted_with: list[tuple[str, str | None]] = []
        self._ids = itertools.count(1)

    def add(self, **fields: Any) -> Record:
        """Insert a record directly, bypassing ``create``."""
        n = next(self._ids)
        record: Record = {
            "id": fields.pop("id", f"rec{n:04d}"),
            "collectionId": "col_audio",
            "collectionName": "audio",
            AUDIO_FIELD: fields.pop(AUDIO_FIELD, f"clip_{n}.wav"),
            "latitude": 0.0,
            "longitude": 0.0,
            "loudness": 0.0,
            "tags": [],
            "created": f"2026-01-01 00:00:{n:02d}.000Z",
            "updated": f"2026-01-01 00:00:{n:02d}.000Z",
        }
        record.update(fields)
        self.records[record["id"]] = record
        return copy.deepcopy(record)

    def create(self, fields: Mapping[str, Any], upload: AudioUpload) -> Record:
        record = self.add(**dict(fields), audio=upload.filename)
        self.uploads[record["id"]] = upload
        return record

    def list(self, *, sort: str = "-created") -> list[Record]:
        key = sort.lstrip("-")
        ordered = sorted(self.records.values(), key=lambda r: r[key], reverse=sort.startswith("-"))
        return copy.deepcopy(ordered)

    def get(self, record_id: str) -> Record:
        if record_id not in self.records:
            raise StoreError(404, "The requested resource wasn't found.")
        return copy.deepcopy(self.records[record_id])

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        if record_id not in self.records:
            raise StoreError(404, "The requested resource wasn't found.")
        self.records[record_id].update(fields)
        return copy.deepcopy(self.records[record_id])

    def delete(self, record_id: str, *, authorization: str | None = None) -> None:
        if record_id not in self.records:
            raise StoreError(404, "The requested resource wasn't found.")
        self.deleted_with.append((record_id, authorization))
        del self.records[record_id]

    def file_url(self, record: Mapping[str, Any]) -> str:
        collection = record["collectionId"]
        return f"{FAKE_STORE_URL}/api/files/{collection}/{record['id']}/{record[AUDIO_FIELD]}"


# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------


def make_sine(
    freq: float = 440.0,
    *,
    amplitude: float = 0.5,
    n_samples: int = 2048 * 8,
    sr: int = SAMPLE_RATE,
) -> np.ndarray:
    """Deterministic mono sine wave as float32."""
    t = np.arange(n_samples) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def make_mock_librosa(y: np.ndarray | None = None, sr: int = SAMPLE_RATE) -> MagicMock:
    """Build a mock librosa module whose ``load`` returns ``(y, sr)``."""
    mock = MagicMock()
    mock.load.return_value = (make_sine() if y is None else y, sr)
    return mock


# ---------------------------------------------------------------------------
# FastAPI test client fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def mock_librosa() -> MagicMock:
    return make_mock_librosa()


@pytest.fixture()
def api_client(store: InMemoryRecordStore, mock_librosa: MagicMock):
    """FastAPI ``TestClient`` with the record store and librosa faked.

    The in-memory store is reachable as the ``store`` fixture; the mock
    librosa module as ``mock_librosa``.
    """
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_analysis_engine] = lambda: AudioAnalysisEngine(
        librosa=mock_librosa
    )

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
