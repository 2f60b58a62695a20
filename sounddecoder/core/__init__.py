"""
Core module containing data models, intake, playback, analysis and session state.

Uses lazy imports for modules with heavy dependencies (librosa, soundfile).
"""

# Models are lightweight - import directly
from sounddecoder.core.models import (
    MimeKind,
    AnalysisStatus,
    SessionState,
    FileCandidate,
    AudioAsset,
    PlaybackState,
    AnalysisResult,
    AnalysisTask,
    HistoryEntry,
    SessionSnapshot,
    format_time,
    validate_confidence_bps,
)

__all__ = [
    # Models (always available)
    "MimeKind",
    "AnalysisStatus",
    "SessionState",
    "FileCandidate",
    "AudioAsset",
    "PlaybackState",
    "AnalysisResult",
    "AnalysisTask",
    "HistoryEntry",
    "SessionSnapshot",
    "format_time",
    "validate_confidence_bps",
    # Lazy loaded
    "FileIntakeValidator",
    "create_intake_validator",
    "PlaybackController",
    "DecodedAudioResource",
    "PlaybackResource",
    "Subscription",
    "AnalysisOrchestrator",
    "TaskHandle",
    "HistoryStore",
    "create_history_store",
    "SessionCoordinator",
    "create_session",
]


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    if name in ("FileIntakeValidator", "create_intake_validator"):
        from sounddecoder.core.intake import FileIntakeValidator, create_intake_validator
        return FileIntakeValidator if name == "FileIntakeValidator" else create_intake_validator
    elif name == "PlaybackController":
        from sounddecoder.core.playback import PlaybackController
        return PlaybackController
    elif name in ("DecodedAudioResource", "PlaybackResource", "Subscription"):
        from sounddecoder.core import resource
        return getattr(resource, name)
    elif name in ("AnalysisOrchestrator", "TaskHandle"):
        from sounddecoder.core.orchestrator import AnalysisOrchestrator, TaskHandle
        return AnalysisOrchestrator if name == "AnalysisOrchestrator" else TaskHandle
    elif name in ("HistoryStore", "create_history_store"):
        from sounddecoder.core.history import HistoryStore, create_history_store
        return HistoryStore if name == "HistoryStore" else create_history_store
    elif name in ("SessionCoordinator", "create_session"):
        from sounddecoder.core.session import SessionCoordinator, create_session
        return SessionCoordinator if name == "SessionCoordinator" else create_session
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
