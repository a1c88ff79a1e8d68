"""Signals sent by the tone generator on the telephony tones bus object."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

TELEPHONY_TONES_PATH = "/com/Nokia/Telephony/Tones"
TELEPHONY_TONES_SERVICE = "com.Nokia.Telephony.Tones"


class SignalError(RuntimeError):
    """A signal could not be built or sent."""


@dataclass(frozen=True)
class SignalMessage:
    """One bus signal: object path, interface, member name and arguments."""

    path: str
    interface: str
    name: str
    args: tuple[Any, ...] = ()


@dataclass
class SignalBus:
    """Sends signals through ``transport`` and keeps those that were sent.

    ``transport(message)`` returns true when the message was accepted.
    Without a transport every message is accepted.
    """

    transport: Callable[[SignalMessage], bool] | None = None
    sent: list[SignalMessage] = field(default_factory=list)

    def send_signal(self, interface: str | None, name: str, *args: Any) -> SignalMessage:
        """Send signal ``name`` with ``args``; the interface defaults to the tones service."""
        if not name:
            raise SignalError("signal name is required")
        message = SignalMessage(
            path=TELEPHONY_TONES_PATH,
            interface=interface if interface is not None else TELEPHONY_TONES_SERVICE,
            name=name,
            args=tuple(args),
        )
        if self.transport is not None and not self.transport(message):
            raise SignalError(f"failed to send signal '{name}'")
        self.sent.append(message)
        return message