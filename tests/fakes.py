"""Fakes and helpers shared by the Sound Decoder test suites."""

import asyncio
import struct
from pathlib import Path
from typing import List, Optional

from sounddecoder.core.models import AnalysisResult, AudioAsset, FileCandidate, MimeKind
from sounddecoder.core.resource import PlaybackListener, Subscription
from sounddecoder.utils.errors import ResourceUnavailableError


# ---------------------------------------------------------------------------
# Canned results
# ---------------------------------------------------------------------------

WOLF = AnalysisResult(
    species="Wolf (Canis lupus)",
    interpretation="Pack communication howl",
    confidence_bps=9200,
    cluster_group="Group B - Long, low frequency, evening",
)

WARBLER = AnalysisResult(
    species="Bird (Yellow Warbler)",
    interpretation="Likely a mating call",
    confidence_bps=8800,
    cluster_group="Group A - High pitch, 6 pulses, early morning",
    note="Typical territorial song pattern detected",
)


# ---------------------------------------------------------------------------
# Candidates and files
# ---------------------------------------------------------------------------


def make_candidate(
    name: str = "wolf.wav",
    size_bytes: int = 1024,
    mime_type: str = "audio/wav",
) -> FileCandidate:
    return FileCandidate(name=name, size_bytes=size_bytes, mime_type=mime_type, data=b"\x00" * 16)


def make_asset(name: str = "wolf.wav", mime_kind: MimeKind = MimeKind.WAV) -> AudioAsset:
    return AudioAsset(
        name=name,
        size_bytes=1024,
        mime_kind=mime_kind,
        mime_type="audio/wav",
        data=b"\x00" * 16,
    )


def create_wav(path: Path, duration_seconds: float = 1.0, sample_rate: int = 8000, channels: int = 1, bits: int = 16):
    """Create a minimal valid (silent) PCM WAV file for testing."""
    byte_rate = sample_rate * channels * (bits // 8)
    block_align = channels * (bits // 8)
    data_size = int(duration_seconds * sample_rate) * block_align

    with open(path, "wb") as f:
        f.write(b"RIFF")
        f.write(struct.pack("<I", 36 + data_size))
        f.write(b"WAVE")
        f.write(b"fmt ")
        f.write(struct.pack("<I", 16))
        f.write(struct.pack("<H", 1))   # PCM
        f.write(struct.pack("<H", channels))
        f.write(struct.pack("<I", sample_rate))
        f.write(struct.pack("<I", byte_rate))
        f.write(struct.pack("<H", block_align))
        f.write(struct.pack("<H", bits))
        f.write(b"data")
        f.write(struct.pack("<I", data_size))
        f.write(b"\x00" * data_size)


# ---------------------------------------------------------------------------
# Fake playback resource
# ---------------------------------------------------------------------------


class FakePlaybackResource:
    """PlaybackResource that records commands and lets tests emit signals."""

    def __init__(self, duration: Optional[float] = 10.0, fail: bool = False):
        self.duration = duration
        self.fail = fail
        self.calls: List[str] = []
        self.subscription: Optional[Subscription] = None
        self.closed = False

    def open(self, asset: AudioAsset, listener: PlaybackListener) -> Subscription:
        self.calls.append("open")
        if self.fail:
            raise ResourceUnavailableError(f"Cannot decode audio: {asset.name}", asset_name=asset.name)
        self.subscription = Subscription(listener)
        if self.duration is not None:
            self.subscription.duration(self.duration)
        return self.subscription

    def play(self) -> None:
        self.calls.append("play")

    def pause(self) -> None:
        self.calls.append("pause")

    def seek(self, seconds: float) -> None:
        self.calls.append(f"seek:{seconds:g}")

    def close(self) -> None:
        self.calls.append("close")
        self.closed = True

    # Signals, as a real resource would emit them
    def emit_position(self, seconds: float) -> None:
        self.subscription.position(seconds)

    def emit_duration(self, seconds: float) -> None:
        self.subscription.duration(seconds)

    def emit_ended(self) -> None:
        self.subscription.ended()


class FakeResourceFactory:
    """Resource factory that keeps every resource it hands out."""

    def __init__(self, duration: Optional[float] = 10.0):
        self.duration = duration
        self.fail_next = False
        self.created: List[FakePlaybackResource] = []

    def __call__(self) -> FakePlaybackResource:
        resource = FakePlaybackResource(duration=self.duration, fail=self.fail_next)
        self.fail_next = False
        self.created.append(resource)
        return resource

    @property
    def latest(self) -> FakePlaybackResource:
        return self.created[-1]


# ---------------------------------------------------------------------------
# Controllable classification service
# ---------------------------------------------------------------------------


class ControllableService:
    """Classification service whose answers the test hands out explicitly."""

    def __init__(self):
        self.requests: List[AudioAsset] = []
        self.pending: List["asyncio.Future[AnalysisResult]"] = []

    @property
    def name(self) -> str:
        return "controllable"

    async def classify(self, asset: AudioAsset) -> AnalysisResult:
        future = asyncio.get_running_loop().create_future()
        self.requests.append(asset)
        self.pending.append(future)
        return await future

    def respond(self, result, index: int = -1) -> None:
        self.pending[index].set_result(result)

    def raise_error(self, error: Exception, index: int = -1) -> None:
        self.pending[index].set_exception(error)


class InstantService:
    """Classification service that answers immediately."""

    def __init__(self, result: AnalysisResult = WOLF):
        self.result = result
        self.calls = 0

    @property
    def name(self) -> str:
        return "instant"

    async def classify(self, asset: AudioAsset) -> AnalysisResult:
        self.calls += 1
        return self.result


async def settle() -> None:
    """Yield to the test loop so pending callbacks and tasks can run."""
    for _ in range(5):
        await asyncio.sleep(0)
