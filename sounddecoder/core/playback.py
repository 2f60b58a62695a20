"""
Playback controller for the Sound Decoder application.

Owns the transport state for the one asset a session has loaded and
keeps it consistent with the signals its resource reports.
"""

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from sounddecoder.core.models import AudioAsset, PlaybackState
from sounddecoder.core.resource import DecodedAudioResource, PlaybackResource, Subscription
from sounddecoder.utils.errors import ResourceUnavailableError

ResourceFactory = Callable[[], PlaybackResource]


class _BoundListener:
    """Forwards resource signals tagged with the load generation they belong to."""

    def __init__(self, controller: "PlaybackController", generation: int):
        self._controller = controller
        self._generation = generation

    def on_position(self, seconds: float) -> None:
        self._controller._apply_position(self._generation, seconds)

    def on_duration(self, seconds: float) -> None:
        self._controller._apply_duration(self._generation, seconds)

    def on_ended(self) -> None:
        self._controller._apply_ended(self._generation)


class PlaybackController:
    """
    Transport state machine for a single bound asset.

    Every load bumps a generation counter; signals carrying an older
    generation are dropped, and the previous subscription is cancelled,
    so a replaced asset can never write into the new asset's state.
    Transport commands with nothing loaded are no-ops.
    """

    def __init__(self, resource_factory: Optional[ResourceFactory] = None):
        self._resource_factory = resource_factory or DecodedAudioResource
        self._state = PlaybackState.initial()
        self._asset: Optional[AudioAsset] = None
        self._resource: Optional[PlaybackResource] = None
        self._subscription: Optional[Subscription] = None
        self._generation = 0
        self._lock = threading.RLock()
        self.logger = logging.getLogger("playback")

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def asset(self) -> Optional[AudioAsset]:
        return self._asset

    @property
    def resource(self) -> Optional[PlaybackResource]:
        return self._resource

    @property
    def is_bound(self) -> bool:
        return self._asset is not None

    def load(self, asset: AudioAsset) -> None:
        """
        Bind a new asset, releasing whatever was bound before.

        Raises:
            ResourceUnavailableError: The asset cannot be opened; the
                controller is left unbound
        """
        with self._lock:
            self._release()
            self._generation += 1
            self._state = PlaybackState.initial()
            # Bound before open so a duration reported during open applies
            self._asset = asset
            resource = self._resource_factory()

            try:
                subscription = resource.open(asset, _BoundListener(self, self._generation))
            except ResourceUnavailableError:
                self._unbind()
                raise
            except Exception as e:
                self._unbind()
                raise ResourceUnavailableError(
                    f"Cannot open audio: {asset.name}",
                    asset_name=asset.name,
                    original_error=e,
                ) from e

            self._resource = resource
            self._subscription = subscription
            self.logger.info(f"Loaded {asset.name}")

    def unload(self) -> None:
        """Release the bound asset and return to the initial state."""
        with self._lock:
            if self._asset is not None:
                self.logger.info(f"Unloaded {self._asset.name}")
            self._release()
            self._generation += 1
            self._unbind()

    def play(self) -> None:
        with self._lock:
            if self._resource is None:
                return
            self._resource.play()
            position = self._state.position_seconds
            duration = self._state.duration_seconds
            if duration is not None and position >= duration:
                position = 0.0
            self._state = replace(self._state, is_playing=True, position_seconds=position)

    def pause(self) -> None:
        with self._lock:
            if self._resource is None:
                return
            self._resource.pause()
            self._state = replace(self._state, is_playing=False)

    def toggle(self) -> None:
        """Play if paused, pause if playing."""
        with self._lock:
            if self._state.is_playing:
                self.pause()
            else:
                self.play()

    def seek(self, target_seconds: float) -> None:
        """Move the position, clamped to [0, duration] once duration is known."""
        with self._lock:
            if self._resource is None:
                return
            position = self._clamp(target_seconds)
            self._resource.seek(position)
            self._state = replace(self._state, position_seconds=position)

    def reset(self) -> None:
        """Rewind and stop, keeping the asset bound."""
        with self._lock:
            if self._resource is None:
                return
            self._resource.pause()
            self._resource.seek(0.0)
            self._state = replace(self._state, position_seconds=0.0, is_playing=False)

    def _clamp(self, seconds: float) -> float:
        position = max(0.0, seconds)
        duration = self._state.duration_seconds
        if duration is not None:
            position = min(position, duration)
        return position

    def _current(self, generation: int) -> bool:
        return generation == self._generation and self._asset is not None

    def _apply_position(self, generation: int, seconds: float) -> None:
        with self._lock:
            if not self._current(generation):
                self.logger.debug("Dropped position update from a released asset")
                return
            self._state = replace(self._state, position_seconds=self._clamp(seconds))

    def _apply_duration(self, generation: int, seconds: float) -> None:
        with self._lock:
            if not self._current(generation):
                self.logger.debug("Dropped duration from a released asset")
                return
            duration = max(0.0, seconds)
            self._state = replace(
                self._state,
                duration_seconds=duration,
                position_seconds=min(self._state.position_seconds, duration),
            )

    def _apply_ended(self, generation: int) -> None:
        with self._lock:
            if not self._current(generation):
                return
            position = self._state.duration_seconds
            if position is None:
                position = self._state.position_seconds
            self._state = replace(self._state, is_playing=False, position_seconds=position)

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._resource is not None:
            self._resource.close()
            self._resource = None

    def _unbind(self) -> None:
        self._asset = None
        self._resource = None
        self._subscription = None
        self._state = PlaybackState.initial()
