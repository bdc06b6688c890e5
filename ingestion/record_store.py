"""
PocketBase record store client.

Implements the ``RecordStore`` protocol from core over the PocketBase
REST API using httpx. Lives in ingestion/ because it performs network
I/O (core/ must remain pure).

Endpoints used (relative to ``StoreConfig.base_url``)::

    GET    /api/collections/{collection}/records?page=N&perPage=M&sort=...
    POST   /api/collections/{collection}/records          (multipart)
    GET    /api/collections/{collection}/records/{id}
    PATCH  /api/collections/{collection}/records/{id}     (JSON)
    DELETE /api/collections/{collection}/records/{id}
    GET    /api/files/{collectionId}/{id}/{filename}      (file_url only)
"""

from __future__ import annotations

import json
import logging
from urllib.parse import quote
from collections.abc import Mapping
from typing import Any

import httpx

from core.audio.types import AudioUpload
from core.config import StoreConfig
from core.errors import StoreError
from core.store import AUDIO_FIELD, Record, is_valid_record_id

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Record store unavailable"
RECORD_NOT_FOUND_MESSAGE = "The requested resource wasn't found."


def _error_from_response(response: httpx.Response) -> StoreError:
    """Build a ``StoreError`` from a non-2xx store response.

    PocketBase error bodies look like ``{"code": 404, "message": "...",
    "data": {...}}``; the message is forwarded verbatim. Non-JSON bodies
    fall back to the HTTP reason phrase.
    """
    message = ""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = str(body.get("message") or "")
    if not message:
        message = response.reason_phrase or f"Record store returned {response.status_code}"
    return StoreError(response.status_code, message)


class PocketBaseRecordStore:
    """
    Record store backed by a PocketBase collection.

    Satisfies the ``RecordStore`` protocol. One instance wraps one
    ``httpx.Client`` (connection pool, thread-safe) and is shared across
    requests. No retries: every failure is surfaced as ``StoreError``.
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config or StoreConfig.from_env()
        self._client = client or httpx.Client(
            base_url=self._config.base_url,
            timeout=self._config.timeout_seconds,
        )

    @property
    def config(self) -> StoreConfig:
        return self._config

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Record store %s %s failed: %s", method, path, exc)
            raise StoreError(500, STORE_UNAVAILABLE_MESSAGE) from exc

        if response.is_error:
            error = _error_from_response(response)
            logger.warning(
                "Record store %s %s returned %d: %s", method, path, error.status, error.message
            )
            raise error
        return response

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Record store returned non-JSON body for %s", response.request.url)
            raise StoreError(500, STORE_UNAVAILABLE_MESSAGE) from exc

    def _record_path(self, record_id: str) -> str:
        # A malformed id must never leave the records path or add query params
        if not is_valid_record_id(record_id):
            logger.warning("Refusing malformed record id %r", record_id)
            raise StoreError(404, RECORD_NOT_FOUND_MESSAGE)
        return f"{self._config.records_path}/{quote(record_id, safe='')}"

    # ------------------------------------------------------------------
    # RecordStore protocol
    # ------------------------------------------------------------------

    def create(self, fields: Mapping[str, Any], upload: AudioUpload) -> Record:
        """
        Create a record with a multipart request (fields + file).

        Non-string values are JSON-encoded, which is how PocketBase reads
        number and JSON fields from multipart bodies.
        """
        data = {
            key: value if isinstance(value, str) else json.dumps(value)
            for key, value in fields.items()
        }
        files = {AUDIO_FIELD: (upload.filename, upload.data, upload.content_type)}
        response = self._request("POST", self._config.records_path, data=data, files=files)
        record = self._json(response)
        logger.info(
            "Created record %s (%s, %d bytes)", record.get("id"), upload.filename, upload.size
        )
        return record

    def list(self, *, sort: str = "-created") -> list[Record]:
        """Return every record, walking all pages of ``page_size`` items."""
        per_page = self._config.page_size
        records: list[Record] = []
        page = 1
        while True:
            response = self._request(
                "GET",
                self._config.records_path,
                params={"page": page, "perPage": per_page, "sort": sort, "skipTotal": 1},
            )
            items = self._json(response).get("items", [])
            records.extend(items)
            if len(items) < per_page:
                break
            page += 1
        return records

    def get(self, record_id: str) -> Record:
        return self._json(self._request("GET", self._record_path(record_id)))

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Record:
        record = self._json(self._request("PATCH", self._record_path(record_id), json=dict(fields)))
        logger.info("Updated record %s fields=%s", record_id, sorted(fields))
        return record

    def delete(self, record_id: str, *, authorization: str | None = None) -> None:
        headers = {"Authorization": authorization} if authorization else None
        self._request("DELETE", self._record_path(record_id), headers=headers)
        logger.info("Deleted record %s", record_id)

    def file_url(self, record: Mapping[str, Any]) -> str:
        collection = (
            record.get("collectionId") or record.get("collectionName") or self._config.collection
        )
        base = self._config.base_url
        return f"{base}/api/files/{collection}/{record['id']}/{record[AUDIO_FIELD]}"
