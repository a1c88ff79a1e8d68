"""Playback streams that pull generated samples through a write-ahead buffer."""

from __future__ import annotations

import struct
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

_UINT32_MASK = 0xFFFFFFFF
_USEC_PER_SEC = 1_000_000
_USEC_PER_MSEC = 1_000
_FRAME_SIZE = 2  # signed 16 bit little endian, mono
_RAMP_DOWN_USEC = 10_000
_SAMPLE_LIMIT = 32767

STREAM_INDICATOR = "indtone"
STREAM_DTMF = "dtmf"
STREAM_NOTES = "ringtone"
STREAM_NOTIFICATION = "notiftone"

PROP_STREAM_RESTORE = "module-stream-restore.id"
PROP_MEDIA_ROLE = "media.role"
ID_KEYPRESS = "x-maemo-key-pressed"
ID_PHONE = "phone"
INPUT_BY_ROLE = "sink-input-by-media-role"

Writer = Callable[["Stream", int], "tuple[list[int], int]"]
DestroyCallback = Callable[["Stream"], None]


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def _wall_clock_usec() -> int:
    return time.time_ns() // 1_000


def _cpu_usec() -> int:
    return time.process_time_ns() // 1_000


def _usec_to_bytes(usec: int, rate: int) -> int:
    return (usec * rate // _USEC_PER_SEC) * _FRAME_SIZE


@dataclass
class StreamSettings:
    """Defaults shared by all streams: sample rate, statistics and buffering."""

    default_rate: int = 48000
    print_statistics: bool = False
    target_buflen: int = 1000  # msec
    min_bufreq: int = 200  # msec

    def set_buffering(self, tlen: int, minreq: int) -> None:
        """Set target buffer length and minimum request, both in msec.

        Both zero selects the server defaults. Otherwise ``tlen`` must be at
        least 20, ``minreq`` at least 10 and at most ``tlen - 10``; invalid
        values raise :class:`ValueError` and leave the settings unchanged.
        """
        if not tlen and not minreq:
            self.target_buflen = 0
            self.min_bufreq = 0
            return
        if tlen < 20 or minreq < 10 or minreq > tlen - 10:
            raise ValueError(f"invalid buffering parameters {tlen} {minreq}")
        self.target_buflen = tlen
        self.min_bufreq = minreq

    def buffer_sizes(self, rate: int) -> tuple[int | None, int | None]:
        """Return ``(minreq, tlength)`` in bytes at ``rate``; ``None`` means server default."""
        minreq = (
            _usec_to_bytes(self.min_bufreq * _USEC_PER_MSEC, rate)
            if self.min_bufreq > 0
            else None
        )
        tlength = (
            _usec_to_bytes(self.target_buflen * _USEC_PER_MSEC, rate)
            if self.target_buflen > 0
            else None
        )
        return minreq, tlength


@dataclass
class StreamStatistics:
    """Timing figures collected while statistics are enabled (microseconds)."""

    firstwr: int = 0
    wrtime: int = 0
    wrcnt: int = 0
    minbuf: int | None = None
    maxbuf: int = 0
    mingap: int | None = None
    maxgap: int = 0
    sumgap: int = 0
    mincalc: int | None = None
    maxcalc: int = 0
    sumcalc: int = 0
    cpucalc: int = 0
    underflows: int = 0
    late: int = 0


def _min_of(current: int | None, value: int) -> int:
    return value if current is None else min(current, value)


@dataclass(eq=False)
class Stream:
    """A mono 16 bit stream whose samples come from ``writer``.

    ``writer(stream, count)`` returns ``count`` samples and the stream time,
    in microseconds, after them. ``on_destroy(stream)`` runs once when the
    stream is destroyed, before it is detached from its server.
    """

    server: Any = field(repr=False)
    id: int
    name: str
    rate: int
    writer: Writer = field(repr=False)
    on_destroy: DestroyCallback | None = field(default=None, repr=False)
    data: Any = field(default=None, repr=False)
    properties: dict[str, str] | None = None
    sink: str | None = None
    start: int = 0
    settings: StreamSettings = field(default_factory=StreamSettings, repr=False)
    negotiated_minreq: int | None = None
    clock: Callable[[], int] = field(default=_wall_clock_usec, repr=False)
    time: int = 0
    end: int = 0
    flush: bool = True
    killed: bool = False
    bcnt: int = 0
    stat: StreamStatistics = field(default_factory=StreamStatistics, repr=False)
    buffer: list[int] | None = field(default=None, repr=False)
    buffer_cpu: int = 0
    bufsize: int | None = field(init=False, default=None)
    tlength: int | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        if not self.rate:
            self.rate = self.settings.default_rate
        self.bufsize, self.tlength = self.settings.buffer_sizes(self.rate)
        if self.settings.print_statistics:
            self.stat.wrtime = self.start

    def set_timeout(self, timeout: int) -> None:
        """End the stream ``timeout`` microseconds of stream time from now; 0 never ends it."""
        self.end = 0 if timeout == 0 else (self.time + timeout) & _UINT32_MASK

    def clean_buffer(self, now: int) -> None:
        """Silence what is left of the write-ahead buffer at wall-clock time ``now``.

        The part not yet played is ramped down over 10 ms and zeroed after
        that; when less than the ramp remains it is simply zeroed.
        """
        if self.buffer is None:
            return
        elapsed = max(0, now - self.start)
        played = ((elapsed * self.rate // _USEC_PER_SEC) * 2) & _UINT32_MASK
        dcnt = _RAMP_DOWN_USEC * self.rate // _USEC_PER_SEC

        offs = played - self.bcnt if played >= self.bcnt else 0
        buflen = len(self.buffer) * _FRAME_SIZE
        if offs >= buflen:
            return

        first = offs // _FRAME_SIZE
        remaining = buflen - offs
        if remaining < dcnt * _FRAME_SIZE:
            self.buffer[first:] = [0] * (len(self.buffer) - first)
            return

        for i, j in enumerate(range(first, first + dcnt)):
            sample = _trunc_div(self.buffer[j] * (dcnt - i - 1), dcnt)
            self.buffer[j] = max(-_SAMPLE_LIMIT, min(_SAMPLE_LIMIT, sample))
        tail = first + dcnt
        self.buffer[tail:] = [0] * (len(self.buffer) - tail)

    def _write_samples(self, count: int) -> tuple[list[int], int]:
        stats = self.settings.print_statistics
        cpu_begin = _cpu_usec() if stats else 0
        samples, self.time = self.writer(self, count)
        cpu_end = _cpu_usec() if stats else 0
        return list(samples), cpu_end - cpu_begin

    def on_write(self, nbytes: int) -> bytes:
        """Produce the bytes to play when the server asks for ``nbytes``.

        Gives at least ``nbytes`` (rounded up to whole samples); a filled
        write-ahead buffer may give more. Afterwards the stream is destroyed
        if its timeout has passed, otherwise the next buffer is prepared.
        """
        if self.killed:
            return b""

        stats = self.settings.print_statistics
        write_start = gap = 0
        if stats:
            write_start = self.clock()
            gap = write_start - self.stat.wrtime

        wanted = (nbytes + 1) & ~1
        if self.buffer is None:
            samples, cpu = self._write_samples(wanted // _FRAME_SIZE)
        else:
            held = len(self.buffer) * _FRAME_SIZE
            if nbytes <= held:
                samples, cpu = self.buffer, self.buffer_cpu
            else:
                extra, cpu = self._write_samples((wanted - held) // _FRAME_SIZE)
                samples = self.buffer + extra
                cpu += self.buffer_cpu
            self.buffer = None
            self.buffer_cpu = 0

        buflen = len(samples) * _FRAME_SIZE

        if stats:
            self._record_statistics(write_start, gap, cpu, buflen)

        output = struct.pack(f"<{len(samples)}h", *samples)
        self.bcnt = (self.bcnt + buflen) & _UINT32_MASK

        if self.end and self.time >= self.end:
            self.destroy()
            return output

        if self.bufsize is None and self.negotiated_minreq is not None:
            self.bufsize = self.negotiated_minreq
        if self.bufsize is not None:
            self.buffer, self.buffer_cpu = self._write_samples(
                self.bufsize // _FRAME_SIZE
            )
        return output

    def _record_statistics(self, write_start: int, gap: int, cpu: int, buflen: int) -> None:
        stat = self.stat
        calcend = self.clock()
        calc = calcend - write_start
        period = (calcend - stat.wrtime) // 1000
        stat.wrtime = calcend

        if self.bcnt == 0:
            stat.firstwr = stat.wrtime
            return

        stat.wrcnt += 1
        stat.sumgap += gap
        stat.sumcalc += calc
        stat.cpucalc += cpu
        stat.minbuf = _min_of(stat.minbuf, buflen)
        stat.maxbuf = max(stat.maxbuf, buflen)
        stat.mingap = _min_of(stat.mingap, gap)
        stat.maxgap = max(stat.maxgap, gap)
        stat.mincalc = _min_of(stat.mincalc, calc)
        stat.maxcalc = max(stat.maxcalc, calc)
        if period > self.settings.min_bufreq:
            stat.late += 1

    def destroy(self) -> None:
        """Detach the stream from its server and run its destroy callback.

        Destroying an already destroyed stream does nothing; a stream its
        server does not know raises :class:`LookupError`.
        """
        if self.killed:
            return
        streams = getattr(self.server, "streams", None) or []
        for index, candidate in enumerate(streams):
            if candidate is self:
                break
        else:
            raise LookupError(f"can't find stream '{self.name}'")

        del streams[index]
        self.killed = True
        if self.on_destroy is not None:
            self.on_destroy(self)
        self.server = None
        self.buffer = None
        self.buffer_cpu = 0