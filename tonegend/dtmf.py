"""Dual-tone multi-frequency key tones and the mute signal sent while they play."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from .ausrv import AudioServer
from .dbusif import SignalBus, SignalError
from .properties import merge_properties, parse_properties
from .stream import STREAM_DTMF, Stream
from .tone import (
    ToneType,
    create_tone,
    destroy_all_tones,
    destroy_tone,
    is_chainable,
    render_tones,
)

log = logging.getLogger(__name__)

MIN_DURATION = 10_000  # usec
ENDLESS_PERIOD = 1_000_000  # usec
ENDLESS_TIMEOUT = 1 * 60 * 1_000_000
TIMEOUT_MARGIN = 30 * 1_000_000
STOP_LINGER = 10 * 1_000_000
MUTE_RELEASE_DELAY = 2 * 1_000_000
MUTE_SIGNAL = "Mute"

Scheduler = Callable[[int, Callable[[], None]], Callable[[], None]]


class DtmfTone(IntEnum):
    """The sixteen DTMF keys."""

    DIGIT_0 = 0
    DIGIT_1 = 1
    DIGIT_2 = 2
    DIGIT_3 = 3
    DIGIT_4 = 4
    DIGIT_5 = 5
    DIGIT_6 = 6
    DIGIT_7 = 7
    DIGIT_8 = 8
    DIGIT_9 = 9
    ASTERISK = 10
    HASHMARK = 11
    A = 12
    B = 13
    C = 14
    D = 15

    def frequencies(self) -> tuple[int, int]:
        """The low and high frequency of this key, in Hz."""
        return _FREQUENCIES[self]


_FREQUENCIES: dict[DtmfTone, tuple[int, int]] = {
    DtmfTone.DIGIT_0: (941, 1336),
    DtmfTone.DIGIT_1: (697, 1209),
    DtmfTone.DIGIT_2: (697, 1336),
    DtmfTone.DIGIT_3: (697, 1477),
    DtmfTone.DIGIT_4: (770, 1209),
    DtmfTone.DIGIT_5: (770, 1336),
    DtmfTone.DIGIT_6: (770, 1477),
    DtmfTone.DIGIT_7: (852, 1209),
    DtmfTone.DIGIT_8: (852, 1336),
    DtmfTone.DIGIT_9: (852, 1477),
    DtmfTone.ASTERISK: (941, 1209),
    DtmfTone.HASHMARK: (941, 1477),
    DtmfTone.A: (697, 1633),
    DtmfTone.B: (770, 1633),
    DtmfTone.C: (852, 1633),
    DtmfTone.D: (941, 1633),
}


def _thread_scheduler(milliseconds: int, callback: Callable[[], None]) -> Callable[[], None]:
    timer = threading.Timer(milliseconds / 1000, callback)
    timer.daemon = True
    timer.start()
    return timer.cancel


@dataclass(eq=False)
class DtmfPlayer:
    """Plays DTMF tones on the audio server's DTMF stream.

    While tones play a ``Mute`` signal with ``True`` is sent on ``bus``; it is
    released with ``False`` when the stream goes away or a while after the
    tones stop. ``scheduler(milliseconds, callback)`` runs ``callback`` later
    and returns a function that cancels it. ``indicator``, when set, is
    stopped when an endless tone replaces another on a live stream.
    """

    server: AudioServer
    bus: SignalBus | None = None
    properties: dict[str, str] | None = None
    volume_scale: int = 100
    indicator: Any = None
    scheduler: Scheduler = field(default=_thread_scheduler, repr=False)
    mute: bool = False
    _cancel_mute: Callable[[], None] | None = field(default=None, init=False, repr=False)

    def play(
        self,
        tone: int,
        volume: int,
        duration: int,
        extra_properties: str | None = None,
    ) -> Stream:
        """Play key ``tone`` at ``volume`` (0-100) for ``duration`` usec.

        A duration of 0 plays until stopped. Durations shorter than 10 ms and
        unknown keys raise :class:`ValueError`. ``extra_properties`` are added
        to the stream properties when a new stream is created.
        """
        try:
            key = DtmfTone(tone)
        except ValueError:
            raise ValueError(f"invalid DTMF tone {tone}") from None
        if duration != 0 and duration < MIN_DURATION:
            raise ValueError(f"DTMF duration {duration} is too short")

        low, high = key.frequencies()
        if duration:
            type_l, type_h = ToneType.DTMF_L, ToneType.DTMF_H
            period = duration
            play = duration - 20_000 if duration > 60_000 else duration
        else:
            # these types make the tone stoppable like an indicator
            type_l, type_h = ToneType.DTMF_IND_L, ToneType.DTMF_IND_H
            period = play = ENDLESS_PERIOD

        stream = self.server.find_stream(STREAM_DTMF)
        if stream is not None:
            if not duration:
                if self.indicator is not None:
                    self.indicator.stop(True)
                self.stop()
        else:
            properties = (
                merge_properties(self.properties, extra_properties)
                if extra_properties
                else self.properties
            )
            stream = self.server.create_stream(
                STREAM_DTMF,
                None,
                0,
                render_tones,
                self._stream_destroyed,
                properties,
                None,
            )

        volume = self.volume_scale * volume // 100
        create_tone(stream, type_l, low, volume // 2, period, play, 0, duration)
        create_tone(stream, type_h, high, volume // 2, period, play, 0, duration)

        stream.set_timeout(duration + TIMEOUT_MARGIN if duration else ENDLESS_TIMEOUT)

        self._request_muting(True)
        self._set_mute_timeout(0)
        return stream

    def stop(self) -> None:
        """Stop the endless tones and let the stream run out shortly after."""
        stream = self.server.find_stream(STREAM_DTMF)
        log.debug("dtmf stop stream=%s", stream)
        if stream is None:
            return

        for tone in list(stream.data or ()):
            if tone.type in (ToneType.DTMF_IND_L, ToneType.DTMF_IND_H) or not is_chainable(
                tone.type
            ):
                destroy_tone(tone, True)

        if not stream.data:
            stream.clean_buffer(self.server.clock())

        stream.set_timeout(STOP_LINGER)
        self._set_mute_timeout(MUTE_RELEASE_DELAY)

    def set_properties(self, propstring: str | None) -> None:
        """Set the stream properties from a ``key=value,...`` string."""
        self.properties = parse_properties(propstring)

    def _stream_destroyed(self, stream: Stream) -> None:
        self._set_mute_timeout(0)
        if self.mute and stream.data:
            self._request_muting(False)
            self.mute = False
        destroy_all_tones(stream)

    def _set_mute_timeout(self, interval: int) -> None:
        if self._cancel_mute is not None:
            self._cancel_mute()
            self._cancel_mute = None
        if interval > 0:
            self._cancel_mute = self.scheduler(interval // 1000, self._mute_timeout_fired)

    def _mute_timeout_fired(self) -> None:
        self._cancel_mute = None
        self._request_muting(False)

    def _request_muting(self, new_mute: bool) -> None:
        if self.bus is None or self.mute == new_mute:
            return
        try:
            self.bus.send_signal(None, MUTE_SIGNAL, new_mute)
        except SignalError:
            log.error("failed to send mute signal")
        else:
            self.mute = new_mute