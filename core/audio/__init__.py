"""
core/audio — Pure audio analysis module.

Provides DSP functions for extracting features from decoded audio.
All functions are pure: they take (samples, sample_rate) and return
plain values or frozen dataclasses. No file I/O — decoding lives in
ingestion/audio_loader.py.

Public API:
    Types:      AudioUpload, LoudnessAnalysis
    Loudness:   extract_loudness, analyze_loudness, frame_signal, frame_loudness
"""

from core.audio.loudness import (
    FRAME_SIZE,
    analyze_loudness,
    extract_loudness,
    frame_loudness,
    frame_signal,
)
from core.audio.types import AudioUpload, LoudnessAnalysis

__all__ = [
    "FRAME_SIZE",
    "AudioUpload",
    "LoudnessAnalysis",
    "analyze_loudness",
    "extract_loudness",
    "frame_loudness",
    "frame_signal",
]
