"""Pydantic schemas for /audio endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def split_tags(raw: str) -> list[str]:
    """Split a comma-separated tag string, dropping blanks."""
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


class AudioRecordResponse(BaseModel):
    """An audio record as stored, passed through to the client.

    Store bookkeeping fields (``collectionId``, ``collectionName``, ...)
    are kept as extras.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    audio: str = ""
    latitude: float | None = None
    longitude: float | None = None
    loudness: float = 0.0
    tags: list[str] = Field(default_factory=list)
    created: str = ""
    updated: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("loudness", mode="before")
    @classmethod
    def _loudness_default(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class UpdateAudioRequest(BaseModel):
    """Partial update. Omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    latitude: float | None = None
    longitude: float | None = None
    loudness: float | None = Field(default=None, ge=0)
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _accept_comma_separated(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_tags(value)
        return value


class DeleteAudioResponse(BaseModel):
    success: bool
