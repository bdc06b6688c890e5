"""
FastAPI dependency providers.

Provides singletons for the record store client and the upload analysis
engine so they are created once and reused across requests. Tests swap
them through ``app.dependency_overrides``.
"""

from dotenv import load_dotenv

from core.config import AnalysisConfig, StoreConfig
from core.store import RecordStore
from ingestion.audio_engine import AudioAnalysisEngine
from ingestion.record_store import PocketBaseRecordStore

_record_store: RecordStore | None = None


def get_record_store() -> RecordStore:
    """
    Return a cached ``PocketBaseRecordStore`` singleton.

    Reads ``POCKETBASE_*`` settings (and ``.env``) on first call; the
    underlying httpx connection pool is reused thereafter.
    """
    global _record_store  # noqa: PLW0603
    if _record_store is None:
        load_dotenv()
        _record_store = PocketBaseRecordStore(StoreConfig.from_env())
    return _record_store


_analysis_engine: AudioAnalysisEngine | None = None


def get_analysis_engine() -> AudioAnalysisEngine:
    """Return a cached ``AudioAnalysisEngine`` singleton.

    librosa is imported lazily on the first upload, not at startup.
    """
    global _analysis_engine  # noqa: PLW0603
    if _analysis_engine is None:
        load_dotenv()
        _analysis_engine = AudioAnalysisEngine(AnalysisConfig.from_env())
    return _analysis_engine
