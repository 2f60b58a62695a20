"""
Simulated classification backend.

Waits a fixed delay and answers with one of a few canned results.
Useful for demos and for exercising the session without a model.
"""

import asyncio
import logging
import random
from typing import Optional, Sequence, Tuple

from sounddecoder.core.models import AnalysisResult, AudioAsset

DEFAULT_DELAY: float = 3.0  # seconds

SIMULATED_RESULTS: Tuple[AnalysisResult, ...] = (
    AnalysisResult(
        species="Bird (Yellow Warbler)",
        interpretation="Likely a mating call",
        confidence_bps=8800,
        cluster_group="Group A - High pitch, 6 pulses, early morning",
        note="Typical territorial song pattern detected",
    ),
    AnalysisResult(
        species="Wolf (Canis lupus)",
        interpretation="Pack communication howl",
        confidence_bps=9200,
        cluster_group="Group B - Long, low frequency, evening",
        note="Social bonding behavior observed",
    ),
    AnalysisResult(
        species="Dolphin (Bottlenose)",
        interpretation="Echolocation clicks",
        confidence_bps=9500,
        cluster_group="Group C - Rapid clicks, hunting behavior",
        note="Foraging signature pattern",
    ),
    AnalysisResult(
        species="Cat (Domestic)",
        interpretation="Attention-seeking vocalization",
        confidence_bps=7600,
        cluster_group="Group D - Variable pitch, human-directed",
        note="Food request behavior likely",
    ),
)


class SimulatedClassificationService:
    """Canned-answer backend with a configurable delay and seedable choice."""

    def __init__(
        self,
        delay: float = DEFAULT_DELAY,
        catalog: Optional[Sequence[AnalysisResult]] = None,
        seed: Optional[int] = None,
    ):
        self.delay = delay
        self.catalog: Tuple[AnalysisResult, ...] = tuple(SIMULATED_RESULTS if catalog is None else catalog)
        if not self.catalog:
            raise ValueError("Simulated catalog must contain at least one result")
        self._rng = random.Random(seed)
        self.logger = logging.getLogger("services.simulated")

    @property
    def name(self) -> str:
        return "simulated"

    async def classify(self, asset: AudioAsset) -> AnalysisResult:
        await asyncio.sleep(self.delay)
        result = self._rng.choice(self.catalog)
        self.logger.debug(f"Simulated answer for {asset.name}: {result.species}")
        return result
