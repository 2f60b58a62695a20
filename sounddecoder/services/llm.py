"""
LLM-backed classification service.

Summarizes the recording with librosa, asks a chat model to name the
species and the likely meaning of the call, and parses the JSON answer
into an AnalysisResult.
"""

import asyncio
import json
import logging
from concurrent.futures import Executor
from typing import Any, Dict, Optional

from sounddecoder.core.models import MAX_CONFIDENCE_BPS, AnalysisResult, AudioAsset
from sounddecoder.services.acoustics import AcousticSummary, summarize_audio
from sounddecoder.services.client import LLMClient
from sounddecoder.utils.errors import ClassificationServiceError

logger = logging.getLogger("services.llm")

SYSTEM_PROMPT = """You are a bioacoustics expert. You identify animals from \
acoustic measurements of a short recording and explain what the vocalization \
most likely communicates.

Respond with a single JSON object and nothing else, using exactly these keys:
  "species": common name with a qualifier in parentheses, e.g. "Wolf (Grey)"
  "interpretation": short meaning of the call, e.g. "Pack communication howl"
  "confidence": your confidence from 0 to 100
  "cluster_group": short description of the acoustic pattern, e.g. "Long, low frequency, evening"
  "note": one optional sentence of extra context, or null"""

REQUIRED_KEYS = ("species", "interpretation", "confidence", "cluster_group")


def build_prompt(file_name: str, summary: AcousticSummary) -> str:
    """Render the user prompt for one recording."""
    measurements = json.dumps(summary.to_dict(), indent=2)
    return (
        f"Recording: {file_name}\n"
        f"Acoustic measurements:\n{measurements}\n\n"
        "Which animal most likely produced this sound, and what does it mean?"
    )


def _strip_code_fence(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    return cleaned


def _confidence_to_bps(value: Any) -> int:
    """Accept a 0-100 percentage (int, float or "92%") and convert to bps."""
    if isinstance(value, bool):
        raise ValueError(f"confidence must be a number, got {value!r}")
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    bps = int(round(float(value) * 100))
    if not (0 <= bps <= MAX_CONFIDENCE_BPS):
        raise ValueError(f"confidence out of range: {value!r}")
    return bps


def parse_classification(raw: str) -> AnalysisResult:
    """
    Parse a model answer into an AnalysisResult.

    Tolerates markdown code fences around the JSON.

    Raises:
        ClassificationServiceError: The answer is not the expected JSON object
    """
    try:
        data: Dict[str, Any] = json.loads(_strip_code_fence(raw))
    except json.JSONDecodeError as e:
        raise ClassificationServiceError(
            f"Malformed classification response: {e}",
            service_name="llm",
            original_error=e,
        ) from e

    if not isinstance(data, dict):
        raise ClassificationServiceError("Classification response is not a JSON object", service_name="llm")

    missing = [key for key in REQUIRED_KEYS if data.get(key) in (None, "")]
    if missing:
        raise ClassificationServiceError(
            f"Classification response missing keys: {', '.join(missing)}",
            service_name="llm",
        )

    try:
        note = data.get("note")
        return AnalysisResult(
            species=str(data["species"]).strip(),
            interpretation=str(data["interpretation"]).strip(),
            confidence_bps=_confidence_to_bps(data["confidence"]),
            cluster_group=str(data["cluster_group"]).strip(),
            note=str(note).strip() if note else None,
        )
    except (TypeError, ValueError) as e:
        raise ClassificationServiceError(
            f"Invalid classification response: {e}",
            service_name="llm",
            original_error=e,
        ) from e


class LLMClassificationService:
    """
    Classification backend that asks a chat model.

    The blocking decode and HTTP call run in an executor so the event
    loop stays responsive; a cancelled request finishes in the background
    and its answer is dropped by the orchestrator.
    """

    def __init__(self, client: LLMClient, executor: Optional[Executor] = None):
        self._client = client
        self._executor = executor

    @property
    def name(self) -> str:
        return f"llm:{self._client.model_id}"

    async def classify(self, asset: AudioAsset) -> AnalysisResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.classify_sync, asset)

    def classify_sync(self, asset: AudioAsset) -> AnalysisResult:
        """Blocking classification, also usable outside an event loop."""
        summary = summarize_audio(asset)
        logger.debug(f"Acoustic summary for {asset.name}: {summary.to_dict()}")
        raw = self._client.chat(SYSTEM_PROMPT, build_prompt(asset.name, summary))
        result = parse_classification(raw)
        logger.info(f"{asset.name} classified as {result.species} ({result.confidence_percent:.0f}%)")
        return result
