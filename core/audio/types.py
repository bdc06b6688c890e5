"""
core/audio/types.py — Frozen data types for upload analysis.

All types are frozen dataclasses — immutable value objects that can be
safely passed between layers.

Design principles:
    - No I/O, no state, no side effects.
    - `LoudnessAnalysis.loudness` is Optional: None means "no result",
      which is not the same thing as a computed 0.0.
    - Raw upload bytes are carried in `AudioUpload` so the record store
      never re-reads the request body.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LoudnessAnalysis:
    """Result of framing a clip and averaging per-frame loudness.

    Invariants:
        0 <= valid_frame_count <= frame_count
        loudness is None  <=>  valid_frame_count == 0
        loudness >= 0 when present
        sample_rate > 0
    """

    loudness: float | None
    """Mean total loudness over valid frames. None if no frame qualified."""

    frame_count: int
    """Number of complete frames the signal was split into."""

    valid_frame_count: int
    """Frames whose loudness was finite and non-zero."""

    sample_rate: int
    """Sample rate of the analysed signal in Hz."""

    duration_sec: float
    """Length of the analysed signal in seconds (including the dropped tail)."""

    @property
    def loudness_or_default(self) -> float:
        """Loudness with the storage default applied (0.0 when absent)."""
        return self.loudness if self.loudness is not None else 0.0


@dataclass(frozen=True)
class AudioUpload:
    """An uploaded audio file held in memory.

    Invariants:
        data is non-empty
    """

    filename: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)
