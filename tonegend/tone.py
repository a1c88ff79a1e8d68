"""Fixed-point sine tones, chaining, and mixing them into sample buffers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

from .envelop import EnvelopeKind, LinearRamp, apply_envelope, create_envelope

AMPLITUDE = 32767
OFFSET = 8192
SCALE = 1024

_SAMPLE_MAX = 32767
_SAMPLE_MIN = -32768
_LONG_MAX = 2**63 - 1
_UINT32_MASK = 0xFFFFFFFF
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def _to_int64(value: int) -> int:
    value &= _UINT64_MASK
    return value - (1 << 64) if value >= (1 << 63) else value


class ToneType(IntEnum):
    """Predefined tone types."""

    UNDEFINED = 0
    DIAL = 1
    BUSY = 2
    CONGEST = 3
    RADIO_ACK = 4
    RADIO_NA = 5
    ERROR = 6
    WAIT = 7
    RING = 8
    DTMF_IND_L = 9
    DTMF_IND_H = 10
    DTMF_L = 11
    DTMF_H = 12
    NOTE_0 = 13
    SINGEN_END = 14
    MAX = 15


class Backend(IntEnum):
    """Sample generation backends."""

    UNKNOWN = 0
    SINGEN = 1


class ToneStream(Protocol):
    """What the tone functions need from a stream."""

    rate: int
    time: int
    data: list[Tone] | None
    flush: bool


class SineGenerator:
    """Recursive fixed-point sine oscillator."""

    __slots__ = ("m", "n0", "n1", "offs")

    def __init__(self, freq: int, rate: int, volume: int) -> None:
        w = 2.0 * math.pi * (freq / rate)
        volume = min(volume, 100)
        self.m = int(2.0 * math.cos(w) * (AMPLITUDE * OFFSET))
        self.n0 = int(-math.sin(w) * (AMPLITUDE * OFFSET))
        self.n1 = 0
        self.offs = (OFFSET * 100) // volume if volume else _LONG_MAX

    def next_sample(self) -> int:
        """Advance the oscillator one step and return the next sample."""
        n2 = _to_int64(_trunc_div(self.m * self.n1, AMPLITUDE * OFFSET) - self.n0)
        self.n0 = self.n1
        self.n1 = n2
        return _trunc_div(self.n0, self.offs)


@dataclass(eq=False)
class Tone:
    """A periodic tone; times are in microseconds scaled by ``SCALE``."""

    stream: ToneStream
    type: ToneType
    period: int
    play: int
    start: int
    end: int
    backend: Backend = Backend.UNKNOWN
    generator: SineGenerator | None = None
    reltime: bool = False
    envelope: LinearRamp | None = None
    chain: Tone | None = None


def is_chainable(tone_type: int) -> bool:
    """Whether tones of this type queue after each other instead of mixing."""
    return tone_type in (ToneType.DTMF_L, ToneType.DTMF_H, ToneType.NOTE_0)


def _setup_envelope(tone: Tone, tone_type: int, play: int, duration: int) -> None:
    if tone_type in (ToneType.DIAL, ToneType.DTMF_IND_L, ToneType.DTMF_IND_H):
        tone.reltime = False
        tone.envelope = create_envelope(EnvelopeKind.RAMP_LINEAR, 10000, 0, duration)
    elif tone_type in (
        ToneType.BUSY,
        ToneType.CONGEST,
        ToneType.RADIO_ACK,
        ToneType.RADIO_NA,
        ToneType.WAIT,
        ToneType.RING,
        ToneType.DTMF_L,
        ToneType.DTMF_H,
    ):
        tone.reltime = True
        tone.envelope = create_envelope(EnvelopeKind.RAMP_LINEAR, 10000, 0, play)
    elif tone_type == ToneType.ERROR:
        tone.reltime = True
        tone.envelope = create_envelope(EnvelopeKind.RAMP_LINEAR, 3000, 0, play)


def create_tone(
    stream: ToneStream,
    tone_type: int,
    freq: int,
    volume: int,
    period: int,
    play: int,
    start: int,
    duration: int,
) -> Tone | None:
    """Add a tone to ``stream``; gives ``None`` if volume, period or play is zero.

    A chainable tone with a duration is queued after the last tone of the
    same type instead of being mixed in immediately.
    """
    if not volume or not period or not play:
        return None

    if stream.data is None:
        stream.data = []

    time = stream.time
    link: Tone | None = None
    if is_chainable(tone_type) and duration > 0:
        link = next((t for t in stream.data if t.type == tone_type), None)
        if link is not None:
            while link.chain is not None:
                link = link.chain
            time = (link.end // SCALE) & _UINT32_MASK

    tone_start = ((time + start) & _UINT32_MASK) * SCALE
    tone = Tone(
        stream=stream,
        type=ToneType(tone_type),
        period=period,
        play=play,
        start=tone_start,
        end=tone_start + duration * SCALE if duration else 0,
    )
    _setup_envelope(tone, tone_type, play, duration)

    if freq:
        tone.backend = Backend.SINGEN
        tone.generator = SineGenerator(freq, stream.rate, volume)

    if link is not None:
        link.chain = tone
    else:
        stream.data.insert(0, tone)

    if duration:
        stream.flush = False

    return tone


def destroy_tone(tone: Tone, kill_chain: bool) -> None:
    """Remove ``tone`` from its stream.

    Its chained successors are dropped with it when ``kill_chain`` is true,
    otherwise the next chained tone takes its place.
    """
    tones = tone.stream.data or []
    for index, candidate in enumerate(tones):
        if candidate is tone:
            break
    else:
        raise ValueError("tone does not belong to its stream")

    if tone.chain is not None and not kill_chain:
        tones[index] = tone.chain
    else:
        del tones[index]


def render_tones(stream: ToneStream, length: int) -> tuple[list[int], int]:
    """Mix ``length`` samples from the stream's tones.

    Returns the samples and the stream time, in microseconds, after them.
    """
    t = stream.time * SCALE
    dt = (1000000 * SCALE) // stream.rate

    if not stream.data:
        return [0] * length, ((t + dt * length) // SCALE) & _UINT32_MASK

    samples = []
    for _ in range(length):
        sample = 0
        for tone in list(stream.data or ()):
            if tone.end and tone.end < t:
                destroy_tone(tone, False)
            elif t > tone.start:
                abst = ((t - tone.start) // SCALE) & _UINT32_MASK
                relt = abst % tone.period
                if relt < tone.play and tone.backend == Backend.SINGEN:
                    sine = tone.generator.next_sample()
                    sample += apply_envelope(
                        tone.envelope, sine, relt if tone.reltime else abst
                    )
        samples.append(max(_SAMPLE_MIN, min(_SAMPLE_MAX, sample)))
        t += dt

    return samples, (t // SCALE) & _UINT32_MASK


def destroy_all_tones(stream: ToneStream) -> None:
    """Remove every tone, with its chain, from ``stream``."""
    while stream.data:
        destroy_tone(stream.data[0], True)