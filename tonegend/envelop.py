"""Amplitude envelopes applied to generated tone samples."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

_UINT32_MASK = 0xFFFFFFFF
_RAMP_STEP = 100


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


class EnvelopeKind(IntEnum):
    """Kinds of envelope that can be created."""

    UNKNOWN = 0
    RAMP_LINEAR = 1


@dataclass
class RampDefinition:
    """One linear ramp segment, active strictly between ``start`` and ``end``."""

    k1: int
    k2: int
    start: int
    end: int

    def covers(self, t: int) -> bool:
        return self.start < t < self.end

    def scale(self, sample: int, elapsed: int) -> int:
        return _trunc_div(sample * (elapsed // self.k1), self.k2)


@dataclass
class LinearRamp:
    """A linear ramp-up followed by an optional linear ramp-down."""

    up: RampDefinition
    down: RampDefinition | None = None

    @property
    def kind(self) -> EnvelopeKind:
        return EnvelopeKind.RAMP_LINEAR

    def update(self, length: int, end: int) -> None:
        """Replace the ramp-down with one of ``length`` finishing at ``end``."""
        self.down = RampDefinition(
            k1=_RAMP_STEP,
            k2=length // _RAMP_STEP,
            start=(end - length) & _UINT32_MASK,
            end=end,
        )

    def apply(self, sample: int, t: int) -> int:
        """Scale ``sample`` according to its position ``t`` in the envelope."""
        if self.up.covers(t):
            return self.up.scale(sample, t - self.up.start)
        if self.down is not None and self.down.covers(t):
            return self.down.scale(sample, self.down.end - t)
        return sample


def create_envelope(kind: int, length: int, start: int, end: int) -> LinearRamp | None:
    """Create an envelope of ``kind``; unknown kinds give ``None``."""
    if kind != EnvelopeKind.RAMP_LINEAR:
        return None
    up = RampDefinition(
        k1=_RAMP_STEP,
        k2=length // _RAMP_STEP,
        start=start,
        end=start + length,
    )
    ramp = LinearRamp(up=up)
    if end >= start + length * 2:
        ramp.update(length, end)
    return ramp


def apply_envelope(envelope: LinearRamp | None, sample: int, t: int) -> int:
    """Apply ``envelope`` to ``sample``; without an envelope the sample is unchanged."""
    if envelope is None:
        return sample
    return envelope.apply(sample, t)