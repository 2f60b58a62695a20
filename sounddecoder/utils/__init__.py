"""
Utility modules for configuration, logging, and error handling.
"""

from sounddecoder.utils.errors import (
    SoundDecoderError,
    RejectionReason,
    FailureReason,
    IntakeRejectedError,
    UnsupportedTypeError,
    FileTooLargeError,
    PlaybackError,
    ResourceUnavailableError,
    AnalysisError,
    AlreadyRunningError,
    NoFileLoadedError,
    ClassificationServiceError,
    ConfigurationError,
    ModelLoadError,
    HistoryStoreError,
)
from sounddecoder.utils.logging import get_logger, setup_logging, JSONFormatter
from sounddecoder.utils.config import ConfigManager, load_config, get_default_config

__all__ = [
    "SoundDecoderError",
    "RejectionReason",
    "FailureReason",
    "IntakeRejectedError",
    "UnsupportedTypeError",
    "FileTooLargeError",
    "PlaybackError",
    "ResourceUnavailableError",
    "AnalysisError",
    "AlreadyRunningError",
    "NoFileLoadedError",
    "ClassificationServiceError",
    "ConfigurationError",
    "ModelLoadError",
    "HistoryStoreError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
    "get_default_config",
]
