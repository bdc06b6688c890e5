"""
Configuration dataclasses for the record store client and upload analysis.

These immutable config objects decouple parameter passing from function
signatures. ``StoreConfig.from_env`` is the only place that reads the
environment; everything downstream receives a validated instance.

Environment variables
---------------------
``POCKETBASE_URL``
    Base URL of the record store. Default ``http://127.0.0.1:8090``.

``POCKETBASE_COLLECTION``
    Collection holding audio records. Default ``audio``.

``POCKETBASE_TIMEOUT``
    Transport timeout in seconds. Default ``10``.

``AUDIO_MAX_DURATION``
    Seconds of audio decoded per upload for analysis. Unset = whole file.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_STORE_URL: str = "http://127.0.0.1:8090"


@dataclass(frozen=True)
class StoreConfig:
    """
    Connection settings for the external record store.

    Attributes:
        base_url: Root URL of the store, without trailing slash.
        collection: Collection name holding audio records.
        timeout_seconds: Transport timeout applied to every request.
        page_size: Records requested per page when listing everything.

    Example:
        >>> config = StoreConfig(base_url="http://pb.local:8090")
        >>> config.records_path
        '/api/collections/audio/records'
    """

    base_url: str = DEFAULT_STORE_URL
    collection: str = "audio"
    timeout_seconds: float = 10.0
    page_size: int = 500

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if not self.collection:
            raise ValueError("collection must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if not 1 <= self.page_size <= 1000:
            raise ValueError(f"page_size must be in [1, 1000], got {self.page_size}")
        # Normalise once so URL joins never produce '//'
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def records_path(self) -> str:
        return f"/api/collections/{self.collection}/records"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StoreConfig:
        """Build a config from environment variables (see module docstring)."""
        env = os.environ if environ is None else environ
        return cls(
            base_url=env.get("POCKETBASE_URL", DEFAULT_STORE_URL),
            collection=env.get("POCKETBASE_COLLECTION", "audio"),
            timeout_seconds=float(env.get("POCKETBASE_TIMEOUT", "10")),
        )


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Parameters for upload-time loudness analysis.

    Attributes:
        frame_size: Samples per non-overlapping frame. Defaults to 2048.
        max_duration_seconds: Decode at most this many seconds of each
            upload. None decodes the whole file.
    """

    frame_size: int = 2048
    max_duration_seconds: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.frame_size <= 0:
            raise ValueError(f"frame_size must be positive, got {self.frame_size}")
        if self.max_duration_seconds is not None and self.max_duration_seconds <= 0:
            raise ValueError(
                f"max_duration_seconds must be positive, got {self.max_duration_seconds}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AnalysisConfig:
        env = os.environ if environ is None else environ
        raw = env.get("AUDIO_MAX_DURATION")
        return cls(max_duration_seconds=float(raw) if raw else None)


DEFAULT_ANALYSIS_CONFIG = AnalysisConfig()
"""Default analysis: 2048-sample frames, whole file decoded."""
