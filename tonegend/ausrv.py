"""Connection to the audio server and the streams opened on it."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .stream import DestroyCallback, Stream, StreamSettings, Writer

log = logging.getLogger(__name__)

DEFAULT_SERVER = "default Pulse Audio"
CONNECT_DELAY = 10  # seconds
CLIENT_NAME = "ngf-tonegen-plugin"
DEFAULT_STREAM_NAME = "generated tone"

_USEC_PER_SEC = 1_000_000


def _wall_clock_usec() -> int:
    return time.time_ns() // 1_000


class ContextState(Enum):
    """States the connection to the audio server goes through."""

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    AUTHORIZING = "authorizing"
    SETTING_NAME = "setting_name"
    READY = "ready"
    FAILED = "failed"
    TERMINATED = "terminated"


class StreamCreationError(RuntimeError):
    """A stream could not be created on the audio server."""


@dataclass(eq=False)
class AudioServer:
    """Tracks the server connection, reconnects after failures and owns the streams.

    ``connector(address)`` starts a connection attempt; ``address`` is ``None``
    for the default server. The result of the attempt is reported back
    through :meth:`context_state_changed`. After a failure a retry is
    scheduled ``CONNECT_DELAY`` seconds later (``retry_at``, in microseconds
    of ``clock``); the host calls :meth:`retry_connect` when it is due.
    """

    server: str | None = None
    connector: Callable[[str | None], None] | None = field(default=None, repr=False)
    settings: StreamSettings = field(default_factory=StreamSettings, repr=False)
    clock: Callable[[], int] = field(default=_wall_clock_usec, repr=False)
    connected: bool = False
    state: ContextState = ContextState.UNCONNECTED
    retry_at: int | None = None
    connect_attempts: int = 0
    nextid: int = 0
    streams: list[Stream] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if self.server is None:
            self.server = DEFAULT_SERVER

    @property
    def address(self) -> str | None:
        """The server address to connect to; ``None`` selects the default server."""
        return None if self.server == DEFAULT_SERVER else self.server

    def _set_connection_status(self, connected: bool) -> None:
        if self.connected != connected:
            self.connected = connected
            log.debug(
                "%s '%s' server",
                "Connected to" if connected else "Disconnected from",
                self.server,
            )

    def _cancel_timer(self) -> None:
        self.retry_at = None

    def _restart_timer(self, secs: int) -> None:
        self.retry_at = self.clock() + secs * _USEC_PER_SEC

    def connect(self) -> None:
        """Start a fresh connection attempt, dropping any pending retry."""
        self._cancel_timer()
        self.state = ContextState.UNCONNECTED
        self.connect_attempts += 1
        log.debug("Trying to connect to %s...", self.server)
        if self.connector is not None:
            self.connector(self.address)

    def context_state_changed(self, state: ContextState) -> None:
        """React to a new connection state reported by the audio server."""
        self.state = state
        if state in (
            ContextState.CONNECTING,
            ContextState.AUTHORIZING,
            ContextState.SETTING_NAME,
        ):
            self._set_connection_status(False)
        elif state is ContextState.READY:
            self._set_connection_status(True)
            self._cancel_timer()
            log.debug("audio server connection established")
        else:
            if state is not ContextState.TERMINATED:
                log.error("server connection failure: %s", state.value)
            self._set_connection_status(False)
            self.kill_all_streams()
            self._restart_timer(CONNECT_DELAY)

    def retry_connect(self) -> None:
        """Run the scheduled reconnection; does nothing when none is pending."""
        if self.retry_at is None:
            log.error("retry requested without a pending retry")
            return
        self.retry_at = None
        self.connect()

    def create_stream(
        self,
        name: str | None,
        sink: str | None,
        sample_rate: int,
        writer: Writer,
        on_destroy: DestroyCallback | None,
        properties: Mapping[str, str] | None,
        data: Any,
    ) -> Stream:
        """Open a playback stream; a ``sample_rate`` of 0 uses the default rate."""
        stream_name = name if name is not None else DEFAULT_STREAM_NAME
        if not self.connected:
            raise StreamCreationError(
                f"Can't create stream '{stream_name}': no server connected"
            )
        stream = Stream(
            server=self,
            id=self.nextid,
            name=stream_name,
            rate=sample_rate,
            writer=writer,
            on_destroy=on_destroy,
            data=data,
            properties=dict(properties) if properties is not None else None,
            sink=sink,
            start=self.clock(),
            settings=self.settings,
            clock=self.clock,
        )
        self.nextid += 1
        self.streams.insert(0, stream)
        log.debug("stream '%s' created", stream.name)
        return stream

    def find_stream(self, name: str) -> Stream | None:
        """The most recently created live stream called ``name``, if any."""
        return next((s for s in self.streams if s.name == name), None)

    def kill_all_streams(self) -> None:
        """Kill every stream at once, running their destroy callbacks."""
        while self.streams:
            stream = self.streams.pop(0)
            stream.killed = True
            if stream.on_destroy is not None:
                stream.on_destroy(stream)
            stream.server = None
            stream.buffer = None
            stream.buffer_cpu = 0