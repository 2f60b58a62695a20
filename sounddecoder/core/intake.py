"""
File intake for the Sound Decoder application.

Checks candidate files against the size limit and the accepted audio
types before anything else in the session sees them.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from sounddecoder.core.models import AudioAsset, FileCandidate, MimeKind
from sounddecoder.utils.errors import FileTooLargeError, UnsupportedTypeError


# Constants
MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10 MiB
AUDIO_PREFIX: str = "audio/"
WAV_MARKERS = ("wav",)
MP3_MARKERS = ("mp3", "mpeg")

logger = logging.getLogger("intake")


def classify_mime_type(mime_type: Optional[str]) -> MimeKind:
    """
    Map a declared media type to the encoding it names.

    Only identifiers that declare audio and mention wav, mp3 or mpeg map
    to a supported kind; everything else is OTHER.
    """
    declared = (mime_type or "").strip().lower()
    if not declared.startswith(AUDIO_PREFIX):
        return MimeKind.OTHER
    if any(marker in declared for marker in WAV_MARKERS):
        return MimeKind.WAV
    if any(marker in declared for marker in MP3_MARKERS):
        return MimeKind.MP3
    return MimeKind.OTHER


class FileIntakeValidator:
    """
    Accepts or rejects candidate files.

    Stateless and side-effect free apart from building the AudioAsset,
    so one instance can serve any number of sessions.
    """

    def __init__(self, max_file_size: int = MAX_FILE_SIZE):
        self.max_file_size = max_file_size

    def is_supported_type(self, mime_type: Optional[str]) -> bool:
        """Non-throwing type check."""
        return classify_mime_type(mime_type) is not MimeKind.OTHER

    def validate(self, candidate: FileCandidate) -> AudioAsset:
        """
        Validate one candidate and build its AudioAsset.

        The size limit is checked first, so an oversized file is reported
        as too large whatever type it declares.

        Raises:
            FileTooLargeError: Candidate exceeds max_file_size
            UnsupportedTypeError: Declared type is not wav/mp3 audio
        """
        if candidate.size_bytes > self.max_file_size:
            logger.info(
                f"Rejected {candidate.name}: {candidate.size_bytes} bytes "
                f"exceeds {self.max_file_size}"
            )
            raise FileTooLargeError(
                f"File too large: {candidate.size_bytes / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=candidate.size_bytes,
                max_size=self.max_file_size,
                file_name=candidate.name,
            )

        kind = classify_mime_type(candidate.mime_type)
        if kind is MimeKind.OTHER:
            logger.info(f"Rejected {candidate.name}: unsupported type {candidate.mime_type!r}")
            raise UnsupportedTypeError(
                f"Type {candidate.mime_type!r} not supported. "
                f"Please upload a .wav or .mp3 audio file.",
                mime_type=candidate.mime_type,
                file_name=candidate.name,
            )

        asset = AudioAsset(
            name=candidate.name,
            size_bytes=candidate.size_bytes,
            mime_kind=kind,
            mime_type=candidate.mime_type,
            path=candidate.path,
            data=candidate.data,
        )
        logger.debug(f"Accepted {asset.name} as {kind.value} ({asset.size_mb:.2f} MB)")
        return asset

    def select(self, candidates: Iterable[FileCandidate]) -> AudioAsset:
        """
        Pick the first candidate of a supported type from a multi-file drop.

        The chosen candidate is then validated in full, so a matching but
        oversized file is still rejected as too large.

        Raises:
            UnsupportedTypeError: No candidate declares a supported type
            FileTooLargeError: The first matching candidate is too large
        """
        names = []
        for candidate in candidates:
            if self.is_supported_type(candidate.mime_type):
                return self.validate(candidate)
            names.append(candidate.name)

        raise UnsupportedTypeError(
            "No .wav or .mp3 audio file found among dropped files",
            file_name=", ".join(names) or None,
        )


def create_intake_validator(config: Optional[Dict[str, Any]] = None) -> FileIntakeValidator:
    """
    Factory function to create a FileIntakeValidator from the 'intake' section.
    """
    if config is None:
        config = {}

    return FileIntakeValidator(
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
    )
