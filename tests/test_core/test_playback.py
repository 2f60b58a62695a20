"""Tests for PlaybackController."""

import pytest

from fakes import FakePlaybackResource, FakeResourceFactory, make_asset
from sounddecoder.core.models import PlaybackState
from sounddecoder.core.playback import PlaybackController
from sounddecoder.utils.errors import ResourceUnavailableError


@pytest.fixture
def controller(resource_factory):
    return PlaybackController(resource_factory)


class TestLoad:
    def test_initial_state(self, controller):
        assert controller.state == PlaybackState(0.0, None, False)
        assert not controller.is_bound

    def test_duration_known_after_open(self, controller):
        controller.load(make_asset())
        assert controller.is_bound
        assert controller.state.duration_seconds == 10.0
        assert controller.state.position_seconds == 0.0
        assert not controller.state.is_playing

    def test_duration_unknown_until_reported(self):
        factory = FakeResourceFactory(duration=None)
        controller = PlaybackController(factory)
        controller.load(make_asset())
        assert controller.state.duration_seconds is None

        factory.latest.emit_duration(4.5)
        assert controller.state.duration_seconds == 4.5

    def test_reload_resets_state(self, controller, resource_factory):
        controller.load(make_asset("a.wav"))
        controller.play()
        resource_factory.latest.emit_position(3.0)

        controller.load(make_asset("b.wav"))
        assert controller.state == PlaybackState(0.0, 10.0, False)
        assert controller.asset.name == "b.wav"

    def test_reload_releases_previous_resource(self, controller, resource_factory):
        controller.load(make_asset("a.wav"))
        first = resource_factory.latest
        controller.load(make_asset("b.wav"))
        assert first.closed
        assert not first.subscription.active

    def test_open_failure_leaves_unbound(self, controller, resource_factory):
        resource_factory.fail_next = True
        with pytest.raises(ResourceUnavailableError):
            controller.load(make_asset())
        assert not controller.is_bound
        assert controller.state == PlaybackState.initial()

    def test_unexpected_open_error_is_wrapped(self):
        class Broken(FakePlaybackResource):
            def open(self, asset, listener):
                raise RuntimeError("decoder exploded")

        controller = PlaybackController(Broken)
        with pytest.raises(ResourceUnavailableError) as exc_info:
            controller.load(make_asset())
        assert isinstance(exc_info.value.original_error, RuntimeError)

    def test_unload(self, controller, resource_factory):
        controller.load(make_asset())
        controller.unload()
        assert not controller.is_bound
        assert resource_factory.latest.closed
        assert controller.state == PlaybackState.initial()


class TestTransport:
    def test_commands_without_asset_are_noops(self, controller):
        controller.play()
        controller.pause()
        controller.toggle()
        controller.seek(5.0)
        controller.reset()
        assert controller.state == PlaybackState.initial()

    def test_play_pause(self, controller, resource_factory):
        controller.load(make_asset())
        controller.play()
        assert controller.state.is_playing
        controller.pause()
        assert not controller.state.is_playing
        assert resource_factory.latest.calls[-2:] == ["play", "pause"]

    def test_toggle(self, controller):
        controller.load(make_asset())
        controller.toggle()
        assert controller.state.is_playing
        controller.toggle()
        assert not controller.state.is_playing

    def test_seek_clamps_to_duration(self, controller):
        controller.load(make_asset())
        controller.seek(42.0)
        assert controller.state.position_seconds == 10.0
        controller.seek(-3.0)
        assert controller.state.position_seconds == 0.0
        controller.seek(4.0)
        assert controller.state.position_seconds == 4.0

    def test_reset_rewinds_and_stops(self, controller, resource_factory):
        controller.load(make_asset())
        controller.play()
        resource_factory.latest.emit_position(6.0)
        controller.reset()
        assert controller.state.position_seconds == 0.0
        assert not controller.state.is_playing
        assert controller.is_bound

    def test_play_after_end_restarts(self, controller, resource_factory):
        controller.load(make_asset())
        controller.play()
        resource_factory.latest.emit_position(10.0)
        resource_factory.latest.emit_ended()
        assert not controller.state.is_playing
        assert controller.state.position_seconds == 10.0

        controller.play()
        assert controller.state.is_playing
        assert controller.state.position_seconds == 0.0


class TestSignals:
    def test_position_updates(self, controller, resource_factory):
        controller.load(make_asset())
        controller.play()
        resource_factory.latest.emit_position(2.5)
        assert controller.state.position_seconds == 2.5

    def test_position_clamped(self, controller, resource_factory):
        controller.load(make_asset())
        resource_factory.latest.emit_position(99.0)
        assert controller.state.position_seconds == 10.0

    def test_ended_stops_at_duration(self, controller, resource_factory):
        controller.load(make_asset())
        controller.play()
        resource_factory.latest.emit_ended()
        assert not controller.state.is_playing
        assert controller.state.position_seconds == 10.0

    def test_signals_from_replaced_asset_are_dropped(self, controller, resource_factory):
        controller.load(make_asset("a.wav"))
        old = resource_factory.latest
        # Keep the old listener reachable past cancellation
        old_listener = old.subscription._listener

        controller.load(make_asset("b.wav"))
        old_listener.on_position(7.0)
        old_listener.on_duration(99.0)
        old_listener.on_ended()

        assert controller.state == PlaybackState(0.0, 10.0, False)

    def test_signals_after_unload_are_dropped(self, controller, resource_factory):
        controller.load(make_asset())
        listener = resource_factory.latest.subscription._listener
        controller.unload()
        listener.on_duration(5.0)
        assert controller.state == PlaybackState.initial()

    def test_position_never_exceeds_shorter_duration(self, controller, resource_factory):
        controller.load(make_asset())
        resource_factory.latest.emit_position(8.0)
        resource_factory.latest.emit_duration(5.0)
        assert controller.state.duration_seconds == 5.0
        assert controller.state.position_seconds == 5.0

    def test_seek_then_position_signal_last_wins(self, controller, resource_factory):
        controller.load(make_asset())
        controller.seek(3.0)
        resource_factory.latest.emit_position(7.0)
        assert controller.state.position_seconds == 7.0

    def test_position_signal_then_seek_last_wins(self, controller, resource_factory):
        controller.load(make_asset())
        resource_factory.latest.emit_position(7.0)
        controller.seek(3.0)
        assert controller.state.position_seconds == 3.0
