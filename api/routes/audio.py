"""
api/routes/audio.py — Geotagged audio clip endpoints.

Endpoints:
    POST   /audio/            — Upload a clip with coordinates and tags
    GET    /audio/            — List clips newest first; any query params mean geo search
    GET    /audio/search      — Geo search (explicit form)
    GET    /audio/{record_id} — Fetch one clip; ``?download`` redirects to the stored file
    PUT    /audio/{record_id} — Update coordinates, loudness, tags
    DELETE /audio/{record_id} — Delete a clip (forwards Authorization to the store)

Every handled failure is an ``AudioApiError`` rendered by the handler in
api/main.py as ``{"error": message}``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile
from fastapi.responses import RedirectResponse

from api.deps import get_analysis_engine, get_record_store
from api.schemas.audio import (
    AudioRecordResponse,
    DeleteAudioResponse,
    UpdateAudioRequest,
    split_tags,
)
from core.audio.types import AudioUpload
from core.errors import BadRequestError, NotFoundError, StoreError
from core.geo import GeoQuery, validate_coordinates, validate_latitude, validate_longitude
from core.store import RecordStore, is_valid_record_id
from infrastructure.metrics import record_request
from ingestion.audio_engine import AudioAnalysisEngine
from ingestion.audio_loader import is_audio_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audio", tags=["audio"])

Store = Annotated[RecordStore, Depends(get_record_store)]
Engine = Annotated[AudioAnalysisEngine, Depends(get_analysis_engine)]

_SEARCH_PARAMS: tuple[str, ...] = ("latitude", "longitude", "radius")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_number(raw: str, message: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise BadRequestError(message) from exc
    if not math.isfinite(value):
        raise BadRequestError(message)
    return value


@contextmanager
def _record_not_found(record_id: str) -> Iterator[None]:
    """Translate a store 404 into ``NotFoundError``; other store errors pass through.

    Ids that cannot name a record are rejected before the store is called.
    """
    if not is_valid_record_id(record_id):
        logger.warning("Rejected malformed record id %r", record_id)
        raise NotFoundError("Record not found")
    try:
        yield
    except StoreError as exc:
        if exc.status == 404:
            raise NotFoundError("Record not found") from exc
        raise


def _geo_search(params: Callable[[str], str | None], store: RecordStore) -> list[dict[str, Any]]:
    raw = {name: params(name) for name in _SEARCH_PARAMS}
    missing = [name for name, value in raw.items() if value in (None, "")]
    if missing:
        raise BadRequestError("Latitude, longitude and radius are required for search.")

    query = GeoQuery(
        latitude=_parse_number(raw["latitude"], "Latitude must be a number."),
        longitude=_parse_number(raw["longitude"], "Longitude must be a number."),
        radius=_parse_number(raw["radius"], "Radius must be a non-negative number."),
    )
    # Full scan: the store has no geo index, every record is tested
    records = store.list(sort="-created")
    hits = query.filter_records(records)
    logger.info(
        "Geo search (%.5f, %.5f) r=%.3f km: %d/%d records",
        query.latitude,
        query.longitude,
        query.radius,
        len(hits),
        len(records),
    )
    if not hits:
        raise NotFoundError("No records found")
    return hits


# ---------------------------------------------------------------------------
# POST /audio/
# ---------------------------------------------------------------------------


@router.post("/", response_model=AudioRecordResponse)
def upload_audio(
    store: Store,
    engine: Engine,
    audio: Annotated[UploadFile | None, File()] = None,
    latitude: Annotated[str | None, Form()] = None,
    longitude: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form()] = None,
) -> dict[str, Any]:
    """Upload a clip, extract its loudness, and create the record.

    Loudness extraction runs before the store is touched: a decode failure
    aborts the upload with 500 and no record is created. A clip with no
    measurable loudness is stored with loudness 0.

    Raises:
        400: Missing/invalid file, type, or coordinates.
        500: Extraction failure or store error.
    """
    if audio is None or not audio.filename:
        raise BadRequestError("No audio file provided.")
    if not is_audio_upload(audio.filename, audio.content_type):
        raise BadRequestError("File must be an audio file.")
    if latitude in (None, "") or longitude in (None, ""):
        raise BadRequestError("Latitude and longitude are required.")

    lat = _parse_number(latitude, "Latitude must be a number.")
    lon = _parse_number(longitude, "Longitude must be a number.")
    validate_coordinates(lat, lon)

    data = audio.file.read()
    if not data:
        raise BadRequestError("Audio file is empty.")
    upload = AudioUpload(
        filename=audio.filename,
        data=data,
        content_type=audio.content_type or "application/octet-stream",
    )

    analysis = engine.analyze(upload)
    if analysis.loudness is None:
        logger.info("No loudness computed for %r, storing default 0", upload.filename)

    record = store.create(
        {
            "latitude": lat,
            "longitude": lon,
            "loudness": analysis.loudness_or_default,
            "tags": split_tags(tags) if tags else [],
        },
        upload,
    )
    record_request(operation="upload_audio", status=200)
    return record


# ---------------------------------------------------------------------------
# GET /audio/
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[AudioRecordResponse])
def list_audio(request: Request, store: Store) -> list[dict[str, Any]]:
    """List all records newest first.

    Any query parameter switches to geo search, which requires
    ``latitude``, ``longitude`` and ``radius`` (km).

    Raises:
        400: Missing or invalid search parameters.
        404: Search matched no record.
    """
    if request.query_params:
        hits = _geo_search(request.query_params.get, store)
        record_request(operation="search_audio", status=200)
        return hits

    records = store.list(sort="-created")
    record_request(operation="list_audio", status=200)
    return records


# NOTE: /search is declared BEFORE /{record_id} so the literal path is not
# captured as a record id.


@router.get("/search", response_model=list[AudioRecordResponse])
def search_audio(request: Request, store: Store) -> list[dict[str, Any]]:
    """Geo search by ``latitude``, ``longitude`` and ``radius`` (km)."""
    hits = _geo_search(request.query_params.get, store)
    record_request(operation="search_audio", status=200)
    return hits


# ---------------------------------------------------------------------------
# /audio/{record_id}
# ---------------------------------------------------------------------------


@router.get("/{record_id}", response_model=AudioRecordResponse)
def get_audio(record_id: str, request: Request, store: Store) -> Any:
    """Fetch one record, or redirect to its file when ``?download`` is present."""
    with _record_not_found(record_id):
        record = store.get(record_id)

    if "download" in request.query_params:
        record_request(operation="download_audio", status=302)
        return RedirectResponse(store.file_url(record), status_code=302)

    record_request(operation="get_audio", status=200)
    return record


@router.put("/{record_id}", response_model=AudioRecordResponse)
def update_audio(record_id: str, body: UpdateAudioRequest, store: Store) -> dict[str, Any]:
    """Update coordinates, loudness and/or tags.

    Raises:
        400: Invalid coordinates or empty update.
        404: Record not found.
    """
    fields = body.model_dump(exclude_none=True)
    if not fields:
        raise BadRequestError("No fields to update.")
    if body.latitude is not None:
        validate_latitude(body.latitude)
    if body.longitude is not None:
        validate_longitude(body.longitude)

    with _record_not_found(record_id):
        record = store.update(record_id, fields)
    record_request(operation="update_audio", status=200)
    return record


@router.delete("/{record_id}", response_model=DeleteAudioResponse)
def delete_audio(
    record_id: str,
    store: Store,
    authorization: Annotated[str | None, Header()] = None,
) -> DeleteAudioResponse:
    """Delete a record, forwarding the caller's Authorization header."""
    with _record_not_found(record_id):
        store.delete(record_id, authorization=authorization)
    record_request(operation="delete_audio", status=200)
    return DeleteAudioResponse(success=True)
