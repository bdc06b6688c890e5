"""
Tests for ingestion/audio_loader.py — decoding boundary and upload sniffing.

librosa is always injected as a MagicMock; no audio backend required.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from core.errors import DecodeError
from ingestion.audio_loader import (
    AUDIO_EXTENSIONS,
    analyze_upload,
    decode_audio,
    is_audio_upload,
)

# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------


def _make_mock_librosa(n_samples: int = 4096, sr: int = 22050) -> MagicMock:
    mock = MagicMock()
    mock.load.return_value = (np.zeros(n_samples, dtype=np.float64), sr)
    return mock


# ---------------------------------------------------------------------------
# is_audio_upload()
# ---------------------------------------------------------------------------


class TestIsAudioUpload:
    @pytest.mark.parametrize("content_type", ["audio/mpeg", "audio/wav", "AUDIO/OGG"])
    def test_audio_mime_types_accepted(self, content_type: str) -> None:
        assert is_audio_upload("clip.bin", content_type) is True

    @pytest.mark.parametrize("ext", sorted(AUDIO_EXTENSIONS))
    def test_known_extensions_accepted_without_mime(self, ext: str) -> None:
        assert is_audio_upload(f"clip{ext}", "application/octet-stream") is True

    def test_uppercase_extension_accepted(self) -> None:
        assert is_audio_upload("CLIP.WAV", None) is True

    def test_text_file_rejected(self) -> None:
        assert is_audio_upload("notes.txt", "text/plain") is False

    def test_image_rejected(self) -> None:
        assert is_audio_upload("photo.png", "image/png") is False

    def test_no_filename_and_no_mime_rejected(self) -> None:
        assert is_audio_upload(None, None) is False


# ---------------------------------------------------------------------------
# decode_audio()
# ---------------------------------------------------------------------------


class TestDecodeAudio:
    def test_returns_mono_float32_and_rate(self) -> None:
        mock = _make_mock_librosa(n_samples=1000, sr=16000)
        y, sr = decode_audio(b"RIFF....", filename="clip.wav", librosa=mock)
        assert y.dtype == np.float32
        assert y.shape == (1000,)
        assert sr == 16000
        assert isinstance(sr, int)

    def test_passes_decode_options(self) -> None:
        mock = _make_mock_librosa()
        decode_audio(b"data", filename="clip.mp3", duration=12.5, sr=22050, librosa=mock)
        _, kwargs = mock.load.call_args
        assert kwargs == {"sr": 22050, "mono": True, "duration": 12.5}

    def test_temp_file_keeps_extension_and_is_removed(self) -> None:
        seen: dict[str, object] = {}

        def _load(path, **_kwargs):
            seen["path"] = path
            seen["bytes"] = Path(path).read_bytes()
            return np.zeros(10), 8000

        mock = MagicMock()
        mock.load.side_effect = _load
        decode_audio(b"payload", filename="song.FLAC", librosa=mock)

        assert str(seen["path"]).endswith(".flac")
        assert seen["bytes"] == b"payload"
        assert not Path(str(seen["path"])).exists()

    def test_empty_payload_raises(self) -> None:
        with pytest.raises(DecodeError):
            decode_audio(b"", filename="clip.wav", librosa=_make_mock_librosa())

    def test_decoder_failure_wrapped(self) -> None:
        mock = MagicMock()
        mock.load.side_effect = RuntimeError("no backend could read the file")
        with pytest.raises(DecodeError) as exc_info:
            decode_audio(b"garbage", filename="clip.mp3", librosa=mock)
        assert exc_info.value.status == 500
        assert exc_info.value.message == "Error extracting audio features"
        assert "no backend" in exc_info.value.detail
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_temp_file_removed_on_failure(self) -> None:
        seen: dict[str, str] = {}

        def _load(path, **_kwargs):
            seen["path"] = path
            raise ValueError("truncated")

        mock = MagicMock()
        mock.load.side_effect = _load
        with pytest.raises(DecodeError):
            decode_audio(b"x", filename="clip.ogg", librosa=mock)
        assert not Path(seen["path"]).exists()

    def test_multichannel_result_rejected(self) -> None:
        mock = MagicMock()
        mock.load.return_value = (np.zeros((2, 100)), 44100)
        with pytest.raises(DecodeError):
            decode_audio(b"x", filename="clip.wav", librosa=mock)

    def test_lazy_librosa_import(self) -> None:
        mock = _make_mock_librosa()
        with patch.dict("sys.modules", {"librosa": mock}):
            y, sr = decode_audio(b"x", filename="clip.wav")
        mock.load.assert_called_once()
        assert sr == 22050
        assert y.shape == (4096,)


# ---------------------------------------------------------------------------
# analyze_upload()
# ---------------------------------------------------------------------------


class TestAnalyzeUpload:
    def test_tone_has_positive_loudness(self) -> None:
        sr = 22050
        t = np.arange(2048 * 4) / sr
        mock = MagicMock()
        mock.load.return_value = (0.5 * np.sin(2 * np.pi * 440.0 * t), sr)
        loudness = analyze_upload(b"x", "tone.wav", librosa=mock)
        assert loudness is not None
        assert loudness > 0.0

    def test_silence_has_no_loudness(self) -> None:
        assert analyze_upload(b"x", "quiet.wav", librosa=_make_mock_librosa()) is None

    def test_clip_shorter_than_one_frame_has_no_loudness(self) -> None:
        mock = _make_mock_librosa(n_samples=1000)
        assert analyze_upload(b"x", "short.wav", librosa=mock) is None

    def test_duration_forwarded_to_decoder(self) -> None:
        mock = _make_mock_librosa()
        analyze_upload(b"x", "clip.wav", duration=30.0, librosa=mock)
        assert mock.load.call_args.kwargs["duration"] == 30.0

    def test_undecodable_payload_raises(self) -> None:
        mock = MagicMock()
        mock.load.side_effect = RuntimeError("bad header")
        with pytest.raises(DecodeError):
            analyze_upload(b"garbage", "clip.mp3", librosa=mock)
