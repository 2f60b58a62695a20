"""
Core data models for the Sound Decoder application.

Immutable domain models for audio assets, playback and analysis state,
classification results and history entries.
"""

from __future__ import annotations

import json
import math
import mimetypes
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from sounddecoder.utils.errors import FailureReason

MAX_CONFIDENCE_BPS: int = 10000

# Badge thresholds, in percent
HIGH_CONFIDENCE_PERCENT: float = 80.0
MEDIUM_CONFIDENCE_PERCENT: float = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_token() -> str:
    return uuid.uuid4().hex


class MimeKind(Enum):
    """Audio encodings the intake understands."""

    WAV = "wav"
    MP3 = "mp3"
    OTHER = "other"


class AnalysisStatus(Enum):
    """Lifecycle of one analysis attempt."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SessionState(Enum):
    """States of the session state machine."""

    EMPTY = "empty"
    FILE_LOADED = "file_loaded"
    ANALYZING = "analyzing"
    RESULTED = "resulted"
    ANALYSIS_FAILED = "analysis_failed"


@dataclass(frozen=True)
class FileCandidate:
    """
    A file offered by an intake surface, not yet validated.

    ``mime_type`` is the type the surface declares for the file; intake
    decisions are made on it rather than on the name's extension.
    """

    name: str
    size_bytes: int
    mime_type: str
    path: Optional[Path] = None
    data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "FileCandidate":
        """Describe a file on disk, guessing the declared type from its name."""
        path = Path(path)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(
            name=path.name,
            size_bytes=path.stat().st_size,
            mime_type=mime_type,
            path=path,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str) -> "FileCandidate":
        """Describe an in-memory upload."""
        return cls(name=name, size_bytes=len(data), mime_type=mime_type, data=data)


@dataclass(frozen=True)
class AudioAsset:
    """
    An accepted audio file owned by the current session.

    ``asset_id`` is unique per acceptance, so loading the same file twice
    still yields two distinct assets.
    """

    name: str
    size_bytes: int
    mime_kind: MimeKind
    mime_type: str
    path: Optional[Path] = None
    data: Optional[bytes] = field(default=None, repr=False, compare=False)
    asset_id: str = field(default_factory=_new_token)

    @property
    def size_mb(self) -> float:
        return self.size_bytes / 1024 / 1024

    def read_bytes(self) -> bytes:
        """Raw file contents, from memory or disk."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ValueError(f"Asset {self.name} has neither data nor a path")
        return self.path.read_bytes()


@dataclass(frozen=True)
class PlaybackState:
    """Transport state for the bound asset. Duration is None until known."""

    position_seconds: float = 0.0
    duration_seconds: Optional[float] = None
    is_playing: bool = False

    @classmethod
    def initial(cls) -> "PlaybackState":
        return cls()

    @property
    def progress(self) -> float:
        """Fraction of the clip played, 0.0 while the duration is unknown."""
        if not self.duration_seconds:
            return 0.0
        return min(1.0, self.position_seconds / self.duration_seconds)


def format_time(seconds: Optional[float]) -> str:
    """Render seconds as m:ss; unknown values render as 0:00."""
    if seconds is None or math.isnan(seconds) or math.isinf(seconds):
        return "0:00"
    seconds = max(0.0, seconds)
    minutes = int(seconds // 60)
    return f"{minutes}:{int(seconds % 60):02d}"


@dataclass(frozen=True)
class AnalysisResult:
    """Species classification for one recording."""

    species: str
    interpretation: str
    confidence_bps: int  # [0, 10000]
    cluster_group: str
    note: Optional[str] = None

    def __post_init__(self) -> None:
        validate_confidence_bps(self.confidence_bps)

    @property
    def confidence_percent(self) -> float:
        return self.confidence_bps / 100

    @property
    def confidence_tier(self) -> str:
        """'high', 'medium' or 'low', as shown on history badges."""
        if self.confidence_percent >= HIGH_CONFIDENCE_PERCENT:
            return "high"
        if self.confidence_percent >= MEDIUM_CONFIDENCE_PERCENT:
            return "medium"
        return "low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'species': self.species,
            'interpretation': self.interpretation,
            'confidence_bps': self.confidence_bps,
            'cluster_group': self.cluster_group,
            'note': self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            species=str(data['species']),
            interpretation=str(data['interpretation']),
            confidence_bps=int(data['confidence_bps']),
            cluster_group=str(data['cluster_group']),
            note=data.get('note'),
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def get_summary(self) -> str:
        """One-line human-readable summary."""
        return (
            f"{self.species} | {self.interpretation} | "
            f"{self.confidence_percent:.0f}% ({self.confidence_tier})"
        )


@dataclass(frozen=True)
class AnalysisTask:
    """Snapshot of one analysis attempt."""

    task_id: Optional[str] = None
    status: AnalysisStatus = AnalysisStatus.IDLE
    asset_id: Optional[str] = None
    result: Optional[AnalysisResult] = None
    failure: Optional[FailureReason] = None
    detail: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def idle(cls) -> "AnalysisTask":
        return cls()

    @classmethod
    def running(cls, asset_id: str) -> "AnalysisTask":
        return cls(
            task_id=_new_token(),
            status=AnalysisStatus.RUNNING,
            asset_id=asset_id,
            started_at=_utcnow(),
        )

    @property
    def is_running(self) -> bool:
        return self.status is AnalysisStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self.status in (AnalysisStatus.SUCCEEDED, AnalysisStatus.FAILED)

    def succeeded(self, result: AnalysisResult) -> "AnalysisTask":
        return replace(
            self,
            status=AnalysisStatus.SUCCEEDED,
            result=result,
            finished_at=_utcnow(),
        )

    def failed(self, reason: FailureReason, detail: Optional[str] = None) -> "AnalysisTask":
        return replace(
            self,
            status=AnalysisStatus.FAILED,
            failure=reason,
            detail=detail,
            finished_at=_utcnow(),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """One past analysis outcome."""

    file_name: str
    result: AnalysisResult
    entry_id: str = field(default_factory=_new_token)
    created_at: datetime = field(default_factory=_utcnow)

    def age_label(self, now: Optional[datetime] = None) -> str:
        """Relative age: 'Less than an hour ago', '3 hours ago', '2 days ago'."""
        now = now or _utcnow()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        hours = int((now - self.created_at).total_seconds() // 3600)
        if hours < 1:
            return "Less than an hour ago"
        if hours < 24:
            return f"{hours} hour{'s' if hours > 1 else ''} ago"
        days = hours // 24
        return f"{days} day{'s' if days > 1 else ''} ago"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entry_id': self.entry_id,
            'file_name': self.file_name,
            'result': self.result.to_dict(),
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        created_at = datetime.fromisoformat(data['created_at'])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            file_name=data['file_name'],
            result=AnalysisResult.from_dict(data['result']),
            entry_id=data['entry_id'],
            created_at=created_at,
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a presentation layer needs to render one session."""

    state: SessionState
    asset: Optional[AudioAsset]
    playback: PlaybackState
    analysis: AnalysisTask
    history: Tuple[HistoryEntry, ...] = ()


# Validation helpers

def validate_confidence_bps(confidence_bps: int) -> None:
    """Validate confidence is an integer number of basis points in range."""
    if isinstance(confidence_bps, bool) or not isinstance(confidence_bps, int):
        raise ValueError(
            f"Confidence must be an integer number of basis points, got {confidence_bps!r}"
        )
    if not (0 <= confidence_bps <= MAX_CONFIDENCE_BPS):
        raise ValueError(
            f"Confidence must be in [0, {MAX_CONFIDENCE_BPS}] bps, got {confidence_bps}"
        )
