"""Call progress indicator tones (dial, busy, ring and the like) per telephony standard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, NamedTuple

from .ausrv import AudioServer
from .properties import parse_properties
from .stream import STREAM_INDICATOR, Stream
from .tone import (
    ToneType,
    create_tone,
    destroy_all_tones,
    destroy_tone,
    is_chainable,
    render_tones,
)

log = logging.getLogger(__name__)

MAX_TONE_LENGTH = 1 * 60 * 1_000_000
# Shorter tones must not keep a silent stream around for long after playing.
MAX_SHORT_TONE_LENGTH = 1 * 5 * 1_000_000


class IndicatorStandard(IntEnum):
    """Telephony standards that define how indicator tones sound."""

    CEPT = 0
    ANSI = 1
    JAPAN = 2
    ATNT = 3


class _Part(NamedTuple):
    """One sine component of an indicator tone; times in microseconds."""

    freq: int
    reduced: bool  # played at 7/10 of the volume
    period: int
    play: int
    start: int = 0
    duration: int | None = None  # None: the duration of the request


_CEPT = IndicatorStandard.CEPT
_ANSI = IndicatorStandard.ANSI
_JAPAN = IndicatorStandard.JAPAN
_ATNT = IndicatorStandard.ATNT


def _all(parts: tuple[_Part, ...]) -> dict[IndicatorStandard, tuple[_Part, ...]]:
    return {standard: parts for standard in IndicatorStandard}


_DIAL_US = (
    _Part(350, True, 1_000_000, 1_000_000, 0, 0),
    _Part(440, True, 1_000_000, 1_000_000, 0, 0),
)
_BUSY_US = (
    _Part(480, True, 1_000_000, 500_000),
    _Part(620, True, 1_000_000, 500_000),
)
_CONGEST_US = (
    _Part(480, True, 500_000, 250_000),
    _Part(620, True, 500_000, 250_000),
)
_JAPAN_BUSY = (_Part(400, False, 1_000_000, 500_000),)
_RADIO_ACK = (_Part(425, False, 200_000, 200_000, 0, 200_000),)
_RADIO_NA = (_Part(425, False, 400_000, 200_000, 0, 1_200_000),)
_ERROR = (
    _Part(900, False, 2_000_000, 333_333, 0),
    _Part(1400, False, 2_000_000, 332_857, 333_333),
    _Part(1800, False, 2_000_000, 300_000, 666_190),
)
_RING_US = (
    _Part(440, True, 6_000_000, 2_000_000, 0, 0),
    _Part(480, True, 6_000_000, 2_000_000, 0, 0),
)

_PATTERNS: dict[ToneType, dict[IndicatorStandard, tuple[_Part, ...]]] = {
    ToneType.DIAL: {
        _CEPT: (_Part(425, False, 1_000_000, 1_000_000, 0, 0),),
        _ANSI: _DIAL_US,
        _ATNT: _DIAL_US,
        _JAPAN: (_Part(400, False, 1_000_000, 1_000_000, 0, 0),),
    },
    ToneType.BUSY: {
        _CEPT: (_Part(425, False, 1_000_000, 500_000),),
        _ANSI: _BUSY_US,
        _ATNT: _BUSY_US,
        _JAPAN: _JAPAN_BUSY,
    },
    ToneType.CONGEST: {
        _CEPT: (_Part(425, False, 400_000, 200_000),),
        _ANSI: _CONGEST_US,
        _ATNT: _CONGEST_US,
        # non-standard: busy tone instead of silence
        _JAPAN: _JAPAN_BUSY,
    },
    ToneType.RADIO_ACK: {
        _CEPT: _RADIO_ACK,
        _ANSI: _RADIO_ACK,
        _ATNT: _RADIO_ACK,
        _JAPAN: (_Part(400, False, 3_000_000, 1_000_000, 0, 0),),
    },
    ToneType.RADIO_NA: {
        _CEPT: _RADIO_NA,
        _ANSI: _RADIO_NA,
        _ATNT: _RADIO_NA,
        _JAPAN: (),
    },
    ToneType.ERROR: {
        _CEPT: _ERROR,
        _ANSI: _ERROR,
        _ATNT: _ERROR,
        # non-standard: busy tone instead of silence
        _JAPAN: _JAPAN_BUSY,
    },
    ToneType.WAIT: {
        _CEPT: (
            _Part(425, False, 800_000, 200_000, 0, 1_000_000),
            _Part(425, False, 800_000, 200_000, 4_000_000, 1_000_000),
        ),
        _ANSI: (
            _Part(440, False, 300_000, 300_000, 0, 300_000),
            _Part(440, False, 10_000_000, 100_000, 10_000_000, 0),
            _Part(440, False, 10_000_000, 100_000, 10_200_000, 0),
        ),
        _ATNT: (
            _Part(440, False, 4_000_000, 200_000, 0, 0),
            _Part(440, False, 4_000_000, 200_000, 500_000, 0),
        ),
        _JAPAN: (),
    },
    ToneType.RING: {
        _CEPT: (_Part(425, False, 5_000_000, 1_000_000, 0, 0),),
        _ANSI: _RING_US,
        _ATNT: _RING_US,
        _JAPAN: (),
    },
}


def _timeout(kind: ToneType, standard: IndicatorStandard, duration: int) -> int:
    if kind in (ToneType.DIAL, ToneType.WAIT, ToneType.RING):
        return MAX_TONE_LENGTH
    if kind is ToneType.RADIO_NA:
        return MAX_SHORT_TONE_LENGTH
    if kind is ToneType.RADIO_ACK:
        # the Japanese tone repeats, so it runs for the full length
        return MAX_TONE_LENGTH if standard is _JAPAN else MAX_SHORT_TONE_LENGTH
    return duration or MAX_TONE_LENGTH


@dataclass(eq=False)
class IndicatorPlayer:
    """Plays indicator tones on the audio server's indicator stream.

    ``dtmf``, when set, is stopped before a new indicator tone replaces an
    old one on a live stream.
    """

    server: AudioServer
    standard: IndicatorStandard = IndicatorStandard.CEPT
    properties: dict[str, str] | None = None
    volume_scale: int = 100
    dtmf: Any = None

    def play(self, tone_type: int, volume: int, duration: int) -> Stream:
        """Play indicator ``tone_type`` at ``volume`` (0-100) for ``duration`` usec.

        A duration of 0 plays for as long as the tone type allows. Returns the
        indicator stream; an unknown type raises :class:`ValueError`.
        """
        try:
            kind = ToneType(tone_type)
        except ValueError:
            raise ValueError(f"invalid type {tone_type}") from None
        if kind not in _PATTERNS:
            raise ValueError(f"invalid type {tone_type}")
        standard = IndicatorStandard(self.standard)

        stream = self.server.find_stream(STREAM_INDICATOR)
        if stream is not None:
            if self.dtmf is not None:
                self.dtmf.stop()
            self.stop(False)
        else:
            stream = self.server.create_stream(
                STREAM_INDICATOR,
                None,
                0,
                render_tones,
                destroy_all_tones,
                self.properties,
                None,
            )

        volume = self.volume_scale * volume // 100
        for part in _PATTERNS[kind][standard]:
            level = volume * 7 // 10 if part.reduced else volume
            create_tone(
                stream,
                kind,
                part.freq,
                level,
                part.period,
                part.play,
                part.start,
                duration if part.duration is None else part.duration,
            )

        stream.set_timeout(_timeout(kind, standard, duration))
        return stream

    def stop(self, kill_stream: bool) -> None:
        """Stop indicator tones; ``kill_stream`` destroys the whole stream.

        Without ``kill_stream`` only chainable (DTMF) tones are kept.
        """
        stream = self.server.find_stream(STREAM_INDICATOR)
        log.debug("indicator stop (kill_stream=%s) stream=%s", kill_stream, stream)
        if stream is None:
            return
        if kill_stream:
            stream.destroy()
            return
        for tone in list(stream.data or ()):
            if not is_chainable(tone.type):
                destroy_tone(tone, True)

    def set_properties(self, propstring: str | None) -> None:
        """Set the stream properties from a ``key=value,...`` string."""
        self.properties = parse_properties(propstring)