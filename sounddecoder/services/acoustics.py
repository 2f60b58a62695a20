"""
Acoustic summary extraction using librosa.

Reduces a recording to a handful of descriptive numbers that a language
model can reason about: loudness, brightness, noisiness, how often
events start, and where the energy peaks in frequency.
"""

import io
from dataclasses import asdict, dataclass
from typing import Any, Dict, Union

import librosa
import numpy as np

from sounddecoder.core.models import AudioAsset
from sounddecoder.utils.errors import ClassificationServiceError

ANALYSIS_SAMPLE_RATE: int = 22050  # Hz


@dataclass(frozen=True)
class AcousticSummary:
    """Scalar descriptors for one recording."""

    duration_seconds: float
    sample_rate: int
    rms: float
    peak: float
    spectral_centroid_hz: float
    spectral_bandwidth_hz: float
    spectral_rolloff_hz: float
    zero_crossing_rate: float
    onset_rate_per_second: float
    dominant_frequency_hz: float

    def to_dict(self) -> Dict[str, Any]:
        return {key: round(value, 4) if isinstance(value, float) else value
                for key, value in asdict(self).items()}


def _source(asset: AudioAsset) -> Union[str, io.BytesIO]:
    if asset.data is not None:
        return io.BytesIO(asset.data)
    if asset.path is None:
        raise ClassificationServiceError(f"Asset {asset.name} has no audio source")
    return str(asset.path)


def summarize_audio(asset: AudioAsset, sample_rate: int = ANALYSIS_SAMPLE_RATE) -> AcousticSummary:
    """
    Decode asset to mono and compute its AcousticSummary.

    Raises:
        ClassificationServiceError: Audio cannot be decoded or is empty
    """
    try:
        audio, sr = librosa.load(_source(asset), sr=sample_rate, mono=True)
    except ClassificationServiceError:
        raise
    except Exception as e:
        raise ClassificationServiceError(
            f"Cannot decode {asset.name} for analysis: {e}",
            service_name="acoustics",
            original_error=e,
        ) from e

    if audio.size == 0:
        raise ClassificationServiceError(f"Audio file is empty: {asset.name}", service_name="acoustics")

    return summarize_signal(audio, sr)


def summarize_signal(audio: np.ndarray, sr: int) -> AcousticSummary:
    """Compute the AcousticSummary of a mono float signal."""
    duration = len(audio) / sr

    centroid = librosa.feature.spectral_centroid(y=audio, sr=sr)
    bandwidth = librosa.feature.spectral_bandwidth(y=audio, sr=sr)
    rolloff = librosa.feature.spectral_rolloff(y=audio, sr=sr)
    zcr = librosa.feature.zero_crossing_rate(audio)
    onset_frames = librosa.onset.onset_detect(y=audio, sr=sr)

    spectrum = np.abs(np.fft.rfft(audio))
    freqs = np.fft.rfftfreq(len(audio), d=1.0 / sr)
    dominant = float(freqs[int(np.argmax(spectrum))]) if spectrum.size else 0.0

    return AcousticSummary(
        duration_seconds=float(duration),
        sample_rate=int(sr),
        rms=float(np.sqrt(np.mean(audio ** 2))),
        peak=float(np.max(np.abs(audio))),
        spectral_centroid_hz=float(np.mean(centroid)),
        spectral_bandwidth_hz=float(np.mean(bandwidth)),
        spectral_rolloff_hz=float(np.mean(rolloff)),
        zero_crossing_rate=float(np.mean(zcr)),
        onset_rate_per_second=float(len(onset_frames) / duration) if duration > 0 else 0.0,
        dominant_frequency_hz=dominant,
    )
