"""
ingestion/audio_engine.py — Upload-time audio analysis.

Ties the decoding boundary (audio_loader) to the pure loudness model
(core/audio/loudness). Routes call ``AudioAnalysisEngine.analyze`` once
per upload, before anything is written to the record store, so a decode
failure aborts the upload with no partial record.
"""

from __future__ import annotations

import logging
from typing import Any

from core.audio.loudness import analyze_loudness
from core.audio.types import AudioUpload, LoudnessAnalysis
from core.config import DEFAULT_ANALYSIS_CONFIG, AnalysisConfig
from core.errors import DecodeError
from infrastructure.metrics import LatencyTimer, record_extraction
from ingestion.audio_loader import decode_audio

logger = logging.getLogger(__name__)


class AudioAnalysisEngine:
    """Decode an upload and compute its loudness.

    librosa is imported lazily on first use (or injected for testing).
    The engine holds no per-request state, so one instance is shared
    across concurrent requests.

    Example:
        engine = AudioAnalysisEngine()
        analysis = engine.analyze(AudioUpload("clip.wav", data))
        loudness = analysis.loudness_or_default
    """

    def __init__(
        self,
        config: AnalysisConfig = DEFAULT_ANALYSIS_CONFIG,
        librosa: Any = None,
    ) -> None:
        """Initialise the engine.

        Args:
            config:  Frame size and decode limits.
            librosa: Injected librosa module. Pass a MagicMock in tests to avoid
                     loading the audio stack. None = import lazily on first use.
        """
        self._config = config
        self._librosa = librosa

    def _get_librosa(self) -> Any:
        """Return librosa, importing it lazily if not already injected."""
        if self._librosa is None:
            import librosa as _lib

            self._librosa = _lib
        return self._librosa

    def analyze(self, upload: AudioUpload) -> LoudnessAnalysis:
        """Decode ``upload`` and run loudness analysis.

        Returns:
            LoudnessAnalysis. ``loudness`` is None when the clip is shorter
            than one frame or entirely silent.

        Raises:
            DecodeError: The bytes could not be decoded.
        """
        timer = LatencyTimer()
        try:
            with timer:
                y, sr = decode_audio(
                    upload.data,
                    filename=upload.filename,
                    duration=self._config.max_duration_seconds,
                    librosa=self._get_librosa(),
                )
                analysis = analyze_loudness(y, sr, frame_size=self._config.frame_size)
        except DecodeError:
            record_extraction(outcome="error", latency_seconds=timer.elapsed)
            raise

        record_extraction(
            outcome="ok" if analysis.loudness is not None else "empty",
            latency_seconds=timer.elapsed,
        )
        logger.info(
            "Analysed %r: %d/%d valid frames, %.2fs @ %d Hz, loudness=%s",
            upload.filename,
            analysis.valid_frame_count,
            analysis.frame_count,
            analysis.duration_sec,
            analysis.sample_rate,
            analysis.loudness,
        )
        return analysis
