"""
Custom exceptions for the Sound Decoder application.

This module defines a hierarchy of exceptions for intake, playback,
analysis and configuration failures, plus the reason enums that the
presentation layer switches on.
"""

from enum import Enum
from typing import Any, Optional


class RejectionReason(Enum):
    """Why a candidate file was refused at intake."""

    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"


class FailureReason(Enum):
    """Why an analysis task ended in the failed state."""

    SERVICE_ERROR = "service_error"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


class SoundDecoderError(Exception):
    """Base exception for all sound decoder errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class IntakeRejectedError(SoundDecoderError):
    """Raised when a candidate file is refused by the intake validator."""

    reason: RejectionReason

    def __init__(
        self,
        message: str,
        reason: RejectionReason,
        file_name: Optional[str] = None,
    ):
        super().__init__(message, details={"file_name": file_name})
        self.reason = reason
        self.file_name = file_name


class UnsupportedTypeError(IntakeRejectedError):
    """Raised when the declared media type is not wav or mp3 audio."""

    def __init__(
        self,
        message: str,
        mime_type: Optional[str] = None,
        file_name: Optional[str] = None,
    ):
        super().__init__(message, RejectionReason.UNSUPPORTED_TYPE, file_name)
        self.mime_type = mime_type
        self.details = {"file_name": file_name, "mime_type": mime_type}


class FileTooLargeError(IntakeRejectedError):
    """Raised when a candidate exceeds the size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
        file_name: Optional[str] = None,
    ):
        super().__init__(message, RejectionReason.TOO_LARGE, file_name)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {
            "file_name": file_name,
            "file_size": file_size,
            "max_size": max_size,
        }


class PlaybackError(SoundDecoderError):
    """Base class for playback failures."""


class ResourceUnavailableError(PlaybackError):
    """Raised when the playback resource cannot decode or open an asset."""

    def __init__(
        self,
        message: str,
        asset_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.asset_name = asset_name
        self.original_error = original_error
        self.details = {
            "asset_name": asset_name,
            "original_error": str(original_error) if original_error else None,
        }


class AnalysisError(SoundDecoderError):
    """Raised when an analysis command cannot be carried out."""


class AlreadyRunningError(AnalysisError):
    """Raised when an analysis is requested while another is in flight."""

    def __init__(self, task_id: str):
        super().__init__(
            f"Analysis task {task_id} is already running",
            details={"task_id": task_id},
        )
        self.task_id = task_id


class NoFileLoadedError(AnalysisError):
    """Raised when an analysis is requested with no audio file loaded."""

    def __init__(self) -> None:
        super().__init__("No audio file is loaded")


class ClassificationServiceError(SoundDecoderError):
    """Raised by a classification backend when it cannot produce a result."""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.service_name = service_name
        self.original_error = original_error
        self.details = {
            "service_name": service_name,
            "original_error": str(original_error) if original_error else None,
        }


class ConfigurationError(SoundDecoderError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}


class ModelLoadError(SoundDecoderError):
    """Raised when the remote model client cannot be created."""

    def __init__(self, message: str, model_name: Optional[str] = None):
        super().__init__(message)
        self.model_name = model_name
        self.details = {"model_name": model_name}


class HistoryStoreError(SoundDecoderError):
    """Raised when the persisted history cannot be read or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.details = {"path": path}
