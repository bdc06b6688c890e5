"""
core/audio/loudness.py — Perceptual loudness from mono PCM.

All functions accept (samples, sample_rate) and are pure numpy — no
librosa, no I/O. Decoding lives in ingestion/audio_loader.py.

Model (per frame):
    1. Hann-window the frame and take the amplitude spectrum.
    2. Map each FFT bin to the Bark scale:
           bark(f) = 13·atan(f / 1315.8) + 3.5·atan((f / 7518)²)
    3. Split the Bark axis into 24 critical bands of equal width.
    4. Specific loudness of a band = (sum of its amplitudes) ** 0.23.
    5. Total loudness = sum of the 24 specific loudness values.

The clip loudness is the mean of the per-frame totals that are finite and
non-zero. A clip with no such frame (shorter than one frame, or digital
silence) has no loudness: ``extract_loudness`` returns None, never 0.0 or
NaN, so callers decide the default deliberately.
"""

from __future__ import annotations

import functools
from collections.abc import Sequence

import numpy as np

from core.audio.types import LoudnessAnalysis

FRAME_SIZE: int = 2048
"""Samples per analysis frame. Frames do not overlap; the remainder is dropped."""

N_BARK_BANDS: int = 24

_SPECIFIC_LOUDNESS_EXPONENT: float = 0.23


def frame_signal(samples: Sequence[float] | np.ndarray, frame_size: int = FRAME_SIZE) -> np.ndarray:
    """Split a mono signal into non-overlapping frames.

    Args:
        samples: 1-D sample sequence.
        frame_size: Samples per frame (> 0).

    Returns:
        Array of shape ``(len(samples) // frame_size, frame_size)``.
        A trailing partial frame is dropped, never padded.

    Raises:
        ValueError: If samples is not 1-D or frame_size <= 0.
    """
    if frame_size <= 0:
        raise ValueError(f"frame_size must be positive, got {frame_size}")
    y = np.asarray(samples, dtype=np.float64)
    if y.ndim != 1:
        raise ValueError(f"expected mono (1-D) samples, got shape {y.shape}")
    n_frames = y.shape[0] // frame_size
    return y[: n_frames * frame_size].reshape(n_frames, frame_size)


@functools.lru_cache(maxsize=32)
def _bark_band_limits(sample_rate: int, frame_size: int) -> np.ndarray:
    """Bin index boundaries of the 24 Bark bands, shape (N_BARK_BANDS + 1,)."""
    n_bins = frame_size // 2
    freqs = np.arange(n_bins) * sample_rate / frame_size
    bark = 13.0 * np.arctan(freqs / 1315.8) + 3.5 * np.arctan((freqs / 7518.0) ** 2)

    band_width = bark[-1] / N_BARK_BANDS
    limits = np.empty(N_BARK_BANDS + 1, dtype=np.intp)
    limits[0] = 0
    # Band k ends at the first bin whose Bark value exceeds k * band_width
    edges = band_width * np.arange(1, N_BARK_BANDS)
    limits[1:N_BARK_BANDS] = np.searchsorted(bark, edges, side="right")
    limits[N_BARK_BANDS] = n_bins - 1
    limits.setflags(write=False)
    return limits


def _total_loudness(frames: np.ndarray, sample_rate: int) -> np.ndarray:
    """Total Bark-band loudness of each row of ``frames``."""
    frame_size = frames.shape[1]
    window = np.hanning(frame_size)
    spectrum = np.abs(np.fft.rfft(frames * window, axis=1))[:, : frame_size // 2]

    limits = _bark_band_limits(sample_rate, frame_size)
    cumulative = np.concatenate(
        [np.zeros((spectrum.shape[0], 1)), np.cumsum(spectrum, axis=1)], axis=1
    )
    band_sums = cumulative[:, limits[1:]] - cumulative[:, limits[:-1]]
    # Cumsum differences can dip a hair below zero on silent bands
    band_sums = np.clip(band_sums, 0.0, None)
    specific = band_sums**_SPECIFIC_LOUDNESS_EXPONENT
    return specific.sum(axis=1)


def frame_loudness(frame: Sequence[float] | np.ndarray, sample_rate: int) -> float:
    """Total loudness of a single frame (sum of 24 Bark-band specific loudness).

    Raises:
        ValueError: If sample_rate <= 0 or the frame is empty / not 1-D.
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    y = np.asarray(frame, dtype=np.float64)
    if y.ndim != 1 or y.size < 2:
        raise ValueError(f"frame must be 1-D with at least 2 samples, got shape {y.shape}")
    return float(_total_loudness(y[np.newaxis, :], sample_rate)[0])


def analyze_loudness(
    samples: Sequence[float] | np.ndarray,
    sample_rate: int,
    *,
    frame_size: int = FRAME_SIZE,
) -> LoudnessAnalysis:
    """Frame the signal and aggregate per-frame loudness.

    Args:
        samples: Mono PCM samples, typically in [-1, 1].
        sample_rate: Sample rate in Hz (> 0).
        frame_size: Samples per frame (default 2048).

    Returns:
        LoudnessAnalysis. ``loudness`` is None when no frame produced a
        finite, non-zero value.

    Raises:
        ValueError: If sample_rate <= 0, frame_size <= 0, or samples is not 1-D.
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")

    frames = frame_signal(samples, frame_size)
    n_samples = int(np.asarray(samples).shape[0])
    duration_sec = n_samples / sample_rate

    if frames.shape[0] == 0:
        return LoudnessAnalysis(
            loudness=None,
            frame_count=0,
            valid_frame_count=0,
            sample_rate=sample_rate,
            duration_sec=duration_sec,
        )

    with np.errstate(invalid="ignore", over="ignore"):
        totals = _total_loudness(frames, sample_rate)
    valid = totals[np.isfinite(totals) & (totals != 0.0)]

    loudness = float(np.mean(valid)) if valid.size else None
    return LoudnessAnalysis(
        loudness=loudness,
        frame_count=int(frames.shape[0]),
        valid_frame_count=int(valid.size),
        sample_rate=sample_rate,
        duration_sec=duration_sec,
    )


def extract_loudness(
    samples: Sequence[float] | np.ndarray,
    sample_rate: int,
    *,
    frame_size: int = FRAME_SIZE,
) -> float | None:
    """Mean perceptual loudness of a clip, or None when none could be computed.

    None means "no result" (e.g. fewer than ``frame_size`` samples, or only
    silent frames) and is distinct from a computed 0.0.
    """
    return analyze_loudness(samples, sample_rate, frame_size=frame_size).loudness
