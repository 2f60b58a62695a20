"""Tests for DecodedAudioResource and Subscription."""

import asyncio

import pytest

from fakes import create_wav
from sounddecoder.core.intake import FileIntakeValidator
from sounddecoder.core.models import FileCandidate
from sounddecoder.core.resource import DecodedAudioResource, PlaybackResource, Subscription
from sounddecoder.utils.errors import ResourceUnavailableError


class RecordingListener:
    def __init__(self):
        self.events = []

    def on_position(self, seconds):
        self.events.append(("position", seconds))

    def on_duration(self, seconds):
        self.events.append(("duration", seconds))

    def on_ended(self):
        self.events.append(("ended", None))


def _wav_asset(tmp_path, duration=2.0, name="call.wav"):
    path = tmp_path / name
    create_wav(path, duration_seconds=duration)
    return FileIntakeValidator().validate(FileCandidate.from_path(path, mime_type="audio/wav"))


class TestSubscription:
    def test_delivers_until_cancelled(self):
        listener = RecordingListener()
        subscription = Subscription(listener)
        subscription.position(1.0)
        subscription.cancel()
        subscription.position(2.0)
        subscription.ended()
        assert listener.events == [("position", 1.0)]
        assert not subscription.active


class TestDecodedAudioResource:
    def test_satisfies_protocol(self):
        assert isinstance(DecodedAudioResource(), PlaybackResource)

    def test_open_reports_duration(self, tmp_path):
        listener = RecordingListener()
        resource = DecodedAudioResource()
        resource.open(_wav_asset(tmp_path, duration=2.0), listener)
        assert listener.events[0][0] == "duration"
        assert listener.events[0][1] == pytest.approx(2.0, abs=0.01)

    def test_open_from_bytes(self, tmp_path):
        path = tmp_path / "mem.wav"
        create_wav(path, duration_seconds=1.0)
        candidate = FileCandidate.from_bytes("mem.wav", path.read_bytes(), "audio/wav")
        asset = FileIntakeValidator().validate(candidate)

        listener = RecordingListener()
        DecodedAudioResource().open(asset, listener)
        assert listener.events[0][1] == pytest.approx(1.0, abs=0.01)

    def test_undecodable_raises(self, tmp_path):
        path = tmp_path / "junk.wav"
        path.write_bytes(b"not audio at all")
        asset = FileIntakeValidator().validate(FileCandidate.from_path(path, mime_type="audio/wav"))
        with pytest.raises(ResourceUnavailableError):
            DecodedAudioResource().open(asset, RecordingListener())

    def test_empty_audio_raises(self, tmp_path):
        with pytest.raises(ResourceUnavailableError):
            DecodedAudioResource().open(_wav_asset(tmp_path, duration=0.0), RecordingListener())

    def test_advance_reports_position_then_ended(self, tmp_path):
        listener = RecordingListener()
        resource = DecodedAudioResource()
        resource.open(_wav_asset(tmp_path, duration=1.0), listener)

        resource.advance(0.5)  # not playing yet
        resource.play()
        resource.advance(0.5)
        resource.advance(5.0)

        assert listener.events[1:] == [("position", 0.5), ("position", 1.0), ("ended", None)]
        assert not resource.is_playing

    def test_seek_clamps(self, tmp_path):
        resource = DecodedAudioResource()
        resource.open(_wav_asset(tmp_path, duration=1.0), RecordingListener())
        resource.seek(10.0)
        assert resource.position == pytest.approx(1.0, abs=0.01)
        resource.seek(-1.0)
        assert resource.position == 0.0

    def test_close_stops_signals(self, tmp_path):
        listener = RecordingListener()
        resource = DecodedAudioResource()
        resource.open(_wav_asset(tmp_path), listener)
        resource.play()
        resource.close()
        resource.advance(0.5)
        assert len(listener.events) == 1

    @pytest.mark.asyncio
    async def test_run_clock_until_closed(self, tmp_path):
        listener = RecordingListener()
        resource = DecodedAudioResource()
        resource.open(_wav_asset(tmp_path, duration=0.05), listener)
        resource.play()

        clock = asyncio.ensure_future(resource.run_clock(interval=0.01))
        await asyncio.sleep(0.2)
        resource.close()
        await asyncio.wait_for(clock, timeout=1.0)

        assert ("ended", None) in listener.events
