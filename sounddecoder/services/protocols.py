"""
Protocol for classification backends.

Anything with a ``name`` and an async ``classify(asset)`` returning an
AnalysisResult can drive the orchestrator: a remote model, a local one,
or a test stub.
"""

from typing import Protocol, runtime_checkable

from sounddecoder.core.models import AnalysisResult, AudioAsset


@runtime_checkable
class ClassificationService(Protocol):
    """
    Structural interface for classification backends.

    Implementations raise ClassificationServiceError when they cannot
    produce a result; the orchestrator turns that into a failed task.
    """

    @property
    def name(self) -> str:
        """Short backend identifier for logs."""
        ...

    async def classify(self, asset: AudioAsset) -> AnalysisResult:
        """Classify one recording."""
        ...
