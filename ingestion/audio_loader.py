"""
ingestion/audio_loader.py — Decoding boundary for uploaded audio.

This is the ONLY module in the audio pipeline that turns bytes into
samples. Everything downstream (core/audio/loudness.py) takes pre-decoded
(y, sr) arrays — never files or bytes.

Usage:
    from ingestion.audio_loader import decode_audio
    y, sr = decode_audio(upload.data, filename=upload.filename)

    from ingestion.audio_loader import analyze_upload
    loudness = analyze_upload(upload.data, filename=upload.filename)
"""

from __future__ import annotations

import logging
import mimetypes
import os
import tempfile
from pathlib import PurePath
from typing import Any

import numpy as np

from core.audio.loudness import FRAME_SIZE, extract_loudness
from core.errors import DecodeError

logger = logging.getLogger(__name__)

# Supported audio file extensions (must be loadable by librosa / soundfile / audioread)
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".flac", ".aiff", ".aif", ".ogg", ".m4a", ".opus", ".webm"}
)


def is_audio_upload(filename: str | None, content_type: str | None) -> bool:
    """True if the upload looks like audio by MIME type or file extension.

    ``application/octet-stream`` and missing content types fall back to
    the extension check.
    """
    if content_type and content_type.lower().startswith("audio/"):
        return True
    if not filename:
        return False
    suffix = PurePath(filename).suffix.lower()
    if suffix in AUDIO_EXTENSIONS:
        return True
    guessed, _ = mimetypes.guess_type(filename)
    return bool(guessed and guessed.startswith("audio/"))


def decode_audio(
    data: bytes,
    *,
    filename: str | None = None,
    duration: float | None = None,
    sr: int | None = None,
    librosa: Any = None,
) -> tuple[np.ndarray, int]:
    """Decode an in-memory audio file and return mono (y, sr).

    The bytes are spilled to a temporary file carrying the original
    extension so every librosa backend (soundfile, then audioread for
    compressed formats) can sniff the container.

    Args:
        data: Raw file bytes as uploaded.
        filename: Original filename; only its extension is used.
        duration: Maximum seconds to decode. None decodes everything.
        sr: Target sample rate in Hz. None preserves the native rate.
        librosa: Injected librosa module. None = import lazily.

    Returns:
        (y, sr) — 1-D float32 numpy array and sample rate.

    Raises:
        DecodeError: Empty payload, or the decoder failed (corrupted,
                     truncated, unsupported container, etc.).
    """
    if not data:
        raise DecodeError("empty audio payload")

    if librosa is None:
        import librosa  # deferred to allow testing without audio backend

    suffix = PurePath(filename).suffix.lower() if filename else ""
    fd, tmp_path = tempfile.mkstemp(suffix=suffix or ".bin", prefix="upload-")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        y, loaded_sr = librosa.load(tmp_path, sr=sr, mono=True, duration=duration)
    except Exception as exc:
        logger.warning("Failed to decode audio %r: %s", filename, exc)
        raise DecodeError(f"failed to decode {filename!r}: {exc}") from exc
    finally:
        try:
            os.unlink(tmp_path)
        except OSError:
            logger.debug("Temporary upload file already removed: %s", tmp_path)

    y = np.asarray(y, dtype=np.float32)
    if y.ndim != 1:
        raise DecodeError(f"decoder returned {y.ndim}-D audio for {filename!r}")
    return y, int(loaded_sr)


def analyze_upload(
    data: bytes,
    filename: str | None = None,
    *,
    duration: float | None = None,
    frame_size: int = FRAME_SIZE,
    librosa: Any = None,
) -> float | None:
    """Decode an uploaded file and return its mean loudness.

    Returns None when no loudness could be computed (clip shorter than one
    frame, or digital silence).

    Raises:
        DecodeError: The payload could not be decoded.
    """
    y, sr = decode_audio(data, filename=filename, duration=duration, librosa=librosa)
    return extract_loudness(y, sr, frame_size=frame_size)
