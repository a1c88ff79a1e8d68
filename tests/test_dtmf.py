import pytest

from tonegend.ausrv import AudioServer, ContextState
from tonegend.dbusif import SignalBus
from tonegend.dtmf import (
    ENDLESS_PERIOD,
    ENDLESS_TIMEOUT,
    MUTE_RELEASE_DELAY,
    MUTE_SIGNAL,
    STOP_LINGER,
    TIMEOUT_MARGIN,
    DtmfPlayer,
    DtmfTone,
)
from tonegend.indicator import IndicatorPlayer
from tonegend.stream import STREAM_DTMF, STREAM_INDICATOR
from tonegend.tone import SCALE, ToneType


class _FakeScheduler:
    def __init__(self):
        self.calls = []
        self.cancelled = 0

    def __call__(self, milliseconds, callback):
        self.calls.append((milliseconds, callback))

        def cancel():
            self.cancelled += 1

        return cancel


class _FakeIndicator:
    def __init__(self):
        self.kills = []

    def stop(self, kill_stream):
        self.kills.append(kill_stream)


def _server():
    server = AudioServer(clock=lambda: 0)
    server.context_state_changed(ContextState.READY)
    return server


def _player(**kwargs):
    kwargs.setdefault("bus", SignalBus())
    kwargs.setdefault("scheduler", _FakeScheduler())
    return DtmfPlayer(_server(), **kwargs)


def test_frequencies_from_table():
    assert DtmfTone.D.frequencies() == (941, 1633)
    assert DtmfTone.DIGIT_5.frequencies() == (770, 1336)
    assert DtmfTone.HASHMARK.frequencies() == (941, 1477)


def test_endless_tone_uses_indicator_types_and_mutes():
    player = _player()
    stream = player.play(DtmfTone.DIGIT_1, 100, 0)
    assert stream.name == STREAM_DTMF
    assert sorted(t.type for t in stream.data) == [ToneType.DTMF_IND_L, ToneType.DTMF_IND_H]
    assert all(t.period == ENDLESS_PERIOD for t in stream.data)
    assert stream.end == ENDLESS_TIMEOUT
    assert player.mute is True
    assert [m.args for m in player.bus.sent] == [(True,)]
    assert player.bus.sent[0].name == MUTE_SIGNAL


def test_timed_tone_ends_after_duration():
    player = _player()
    duration = 100000
    stream = player.play(DtmfTone.DIGIT_2, 100, duration)
    assert sorted(t.type for t in stream.data) == [ToneType.DTMF_L, ToneType.DTMF_H]
    assert all(t.end == duration * SCALE for t in stream.data)
    assert stream.end == duration + TIMEOUT_MARGIN


def test_timed_tones_chain():
    player = _player()
    stream = player.play(DtmfTone.DIGIT_3, 100, 100000)
    player.play(DtmfTone.DIGIT_4, 100, 100000)
    assert len(stream.data) == 2
    low = next(t for t in stream.data if t.type == ToneType.DTMF_L)
    assert low.chain.type == ToneType.DTMF_L
    assert low.chain.start == low.end


def test_short_duration_and_bad_key_raise():
    player = _player()
    with pytest.raises(ValueError):
        player.play(DtmfTone.DIGIT_0, 100, 5000)
    with pytest.raises(ValueError):
        player.play(16, 100, 0)
    assert player.server.find_stream(STREAM_DTMF) is None


def test_replaying_endless_tone_replaces_previous_and_stops_indicator():
    indicator = _FakeIndicator()
    player = _player(indicator=indicator)
    stream = player.play(DtmfTone.DIGIT_1, 100, 0)
    player.play(DtmfTone.DIGIT_2, 100, 0)
    assert indicator.kills == [True]
    assert len(stream.data) == 2


def test_stop_removes_endless_tones_and_schedules_unmute():
    scheduler = _FakeScheduler()
    player = _player(scheduler=scheduler)
    stream = player.play(DtmfTone.DIGIT_1, 100, 0)
    player.stop()
    assert not stream.data
    assert stream.end == stream.time + STOP_LINGER
    assert [ms for ms, _ in scheduler.calls] == [MUTE_RELEASE_DELAY // 1000]

    scheduler.calls[0][1]()
    assert player.mute is False
    assert player.bus.sent[-1].args == (False,)


def test_stop_without_stream_does_nothing():
    scheduler = _FakeScheduler()
    player = _player(scheduler=scheduler)
    player.stop()
    assert scheduler.calls == []
    assert player.bus.sent == []


def test_stream_destruction_unmutes():
    player = _player()
    stream = player.play(DtmfTone.A, 100, 0)
    player.server.kill_all_streams()
    assert player.mute is False
    assert player.bus.sent[-1].args == (False,)
    assert not stream.data


def test_failed_signal_leaves_mute_unchanged():
    player = _player(bus=SignalBus(transport=lambda message: False))
    player.play(DtmfTone.B, 100, 0)
    assert player.mute is False
    assert player.bus.sent == []


def test_extra_properties_merge_without_touching_defaults():
    player = _player()
    player.set_properties("media.role=phone")
    stream = player.play(DtmfTone.C, 100, 0, "module-stream-restore.id=x-maemo-key-pressed")
    assert stream.properties == {
        "media.role": "phone",
        "module-stream-restore.id": "x-maemo-key-pressed",
    }
    assert player.properties == {"media.role": "phone"}


def test_endless_dtmf_kills_indicator_stream():
    server = _server()
    indicator = IndicatorPlayer(server)
    dtmf = DtmfPlayer(server, bus=SignalBus(), scheduler=_FakeScheduler(), indicator=indicator)
    indicator.dtmf = dtmf
    dtmf.play(DtmfTone.DIGIT_9, 100, 0)
    indicator.play(ToneType.DIAL, 100, 0)
    dtmf.play(DtmfTone.DIGIT_8, 100, 0)
    assert server.find_stream(STREAM_INDICATOR) is None
    assert len(server.find_stream(STREAM_DTMF).data) == 2