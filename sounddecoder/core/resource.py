"""
Playback resources for the Sound Decoder application.

A playback resource decodes one asset, accepts transport commands and
reports timing back through a subscription: position updates, the
duration once it is known, and end of playback.
"""

import asyncio
import io
import logging
import threading
from typing import Optional, Protocol, Union, runtime_checkable

import librosa
import soundfile as sf

from sounddecoder.core.models import AudioAsset
from sounddecoder.utils.errors import ResourceUnavailableError

logger = logging.getLogger("playback.resource")


@runtime_checkable
class PlaybackListener(Protocol):
    """Receiver for the three timing signals a resource emits."""

    def on_position(self, seconds: float) -> None:
        ...

    def on_duration(self, seconds: float) -> None:
        ...

    def on_ended(self) -> None:
        ...


class Subscription:
    """
    Link between a resource and its listener.

    Once cancelled, nothing more reaches the listener; signals emitted
    after that are dropped here.
    """

    def __init__(self, listener: PlaybackListener):
        self._listener = listener
        self._active = True
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        with self._lock:
            self._active = False

    def position(self, seconds: float) -> None:
        if self._active:
            self._listener.on_position(seconds)

    def duration(self, seconds: float) -> None:
        if self._active:
            self._listener.on_duration(seconds)

    def ended(self) -> None:
        if self._active:
            self._listener.on_ended()


@runtime_checkable
class PlaybackResource(Protocol):
    """Structural interface for anything that can play an asset."""

    def open(self, asset: AudioAsset, listener: PlaybackListener) -> Subscription:
        """Decode the asset and start reporting to listener.

        Raises:
            ResourceUnavailableError: The asset cannot be decoded
        """
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def seek(self, seconds: float) -> None:
        ...

    def close(self) -> None:
        ...


class DecodedAudioResource:
    """
    Playback resource backed by soundfile, with librosa as the fallback
    decoder for anything libsndfile cannot read.

    Audio output is left to the host; this resource keeps the clock.
    Drive it with ``advance()`` from any timer, or run ``run_clock()`` on
    the event loop.
    """

    def __init__(self) -> None:
        self._subscription: Optional[Subscription] = None
        self._duration: Optional[float] = None
        self._position = 0.0
        self._playing = False
        self._closed = False
        self._lock = threading.Lock()

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    @property
    def position(self) -> float:
        return self._position

    @property
    def is_playing(self) -> bool:
        return self._playing

    def open(self, asset: AudioAsset, listener: PlaybackListener) -> Subscription:
        duration = self._decode_duration(asset)

        with self._lock:
            self._duration = duration
            self._position = 0.0
            self._playing = False
            self._closed = False
            self._subscription = Subscription(listener)
            subscription = self._subscription

        logger.info(f"Opened {asset.name}: {duration:.2f}s")
        subscription.duration(duration)
        return subscription

    def play(self) -> None:
        with self._lock:
            if self._closed or self._duration is None:
                return
            if self._position >= self._duration:
                # Finished clips start over
                self._position = 0.0
            self._playing = True

    def pause(self) -> None:
        with self._lock:
            self._playing = False

    def seek(self, seconds: float) -> None:
        with self._lock:
            upper = self._duration if self._duration is not None else seconds
            self._position = min(max(0.0, seconds), upper)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._playing = False
            if self._subscription is not None:
                self._subscription.cancel()
                self._subscription = None

    def advance(self, elapsed: float) -> None:
        """Move the clock forward by elapsed seconds and report."""
        with self._lock:
            if not self._playing or self._duration is None or self._subscription is None:
                return
            self._position = min(self._position + max(0.0, elapsed), self._duration)
            position = self._position
            finished = position >= self._duration
            if finished:
                self._playing = False
            subscription = self._subscription

        subscription.position(position)
        if finished:
            subscription.ended()

    async def run_clock(self, interval: float = 0.25) -> None:
        """Tick the clock from the running event loop until closed."""
        loop = asyncio.get_running_loop()
        last = loop.time()
        while not self._closed:
            await asyncio.sleep(interval)
            now = loop.time()
            self.advance(now - last)
            last = now

    def _decode_duration(self, asset: AudioAsset) -> float:
        """Decode enough of the asset to know its duration."""
        try:
            duration = self._duration_with_soundfile(asset)
        except Exception as e:
            logger.debug(f"soundfile could not read {asset.name}, trying librosa: {e}")
            try:
                duration = self._duration_with_librosa(asset)
            except Exception as fallback_error:
                raise ResourceUnavailableError(
                    f"Cannot decode audio: {asset.name}",
                    asset_name=asset.name,
                    original_error=fallback_error,
                ) from fallback_error

        if duration <= 0:
            raise ResourceUnavailableError(
                f"Audio file is empty: {asset.name}",
                asset_name=asset.name,
            )
        return duration

    @staticmethod
    def _source(asset: AudioAsset) -> Union[str, io.BytesIO]:
        if asset.data is not None:
            return io.BytesIO(asset.data)
        if asset.path is None:
            raise ValueError(f"Asset {asset.name} has neither data nor a path")
        return str(asset.path)

    def _duration_with_soundfile(self, asset: AudioAsset) -> float:
        info = sf.info(self._source(asset))
        return info.frames / info.samplerate

    def _duration_with_librosa(self, asset: AudioAsset) -> float:
        if asset.data is None and asset.path is not None:
            return float(librosa.get_duration(path=str(asset.path)))
        audio, sample_rate = librosa.load(self._source(asset), sr=None, mono=True)
        return len(audio) / sample_rate
