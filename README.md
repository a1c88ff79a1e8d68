# tonegend

A tone generator for telephony feedback. It synthesises DTMF keys and
call-progress indicator tones (dial, busy, congestion, radio acknowledge,
radio not available, error, call waiting and ringing) as mono signed
16-bit little-endian PCM, following the CEPT, ANSI, Japanese and AT&T
tone standards.

The package has no dependencies beyond the standard library.

## Modules

- `tonegend.envelop` – linear ramp-up / ramp-down envelopes
  (`EnvelopeKind`, `RampDefinition`, `LinearRamp`, `create_envelope`,
  `apply_envelope`).
- `tonegend.tone` – fixed-point sine oscillators, tone chaining and mixing
  (`ToneType`, `Backend`, `SineGenerator`, `Tone`, `is_chainable`,
  `create_tone`, `destroy_tone`, `render_tones`, `destroy_all_tones`).
- `tonegend.properties` – parsing of `key=value,key=value` stream property
  strings (`parse_properties`, `merge_properties`, `PropertyError`).
- `tonegend.stream` – streams with a write-ahead buffer, timeouts and
  optional timing statistics (`Stream`, `StreamSettings`,
  `StreamStatistics`).
- `tonegend.ausrv` – the audio server connection state, reconnect timer
  and the streams opened on it (`AudioServer`, `ContextState`,
  `StreamCreationError`).
- `tonegend.indicator` – call-progress tones per standard
  (`IndicatorPlayer`, `IndicatorStandard`).
- `tonegend.dtmf` – DTMF keys and the `Mute` signal sent while they play
  (`DtmfPlayer`, `DtmfTone`).
- `tonegend.dbusif` – signals on the telephony tones object
  (`SignalBus`, `SignalMessage`, `SignalError`).
- `tonegend.ngfif` – dispatch of requests by their `tonegen.type`
  property to registered start/stop methods (`RequestDispatcher`,
  `EventHandler`, `ToneContext`).
- `tonegend.transform` – filtering and renaming of request properties
  (`TransformConfig`, `TransformError`).

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Render a DTMF key into PCM bytes:

```python
from tonegend.ausrv import AudioServer, ContextState
from tonegend.dtmf import DtmfPlayer, DtmfTone

server = AudioServer()
server.connect()
server.context_state_changed(ContextState.READY)   # streams need a ready server

player = DtmfPlayer(server)
stream = player.play(DtmfTone.DIGIT_5, 80, 100_000)  # volume 0-100, duration in usec
pcm = stream.on_write(9600)                          # at least 9600 bytes of samples

DtmfTone.DIGIT_5.frequencies()                       # (770, 1336)
```

Play a busy tone by the ANSI standard:

```python
from tonegend.indicator import IndicatorPlayer, IndicatorStandard
from tonegend.tone import ToneType

indicator = IndicatorPlayer(server, standard=IndicatorStandard.ANSI)
stream = indicator.play(ToneType.BUSY, 100, 0)   # 0: play until the timeout
indicator.stop(True)                             # destroy the indicator stream
```

Parse stream properties:

```python
from tonegend.properties import parse_properties

parse_properties("media.role=phone,module-stream-restore.id=x-maemo-key-pressed")
# {'media.role': 'phone', 'module-stream-restore.id': 'x-maemo-key-pressed'}
```

Filter request properties:

```python
from tonegend.transform import TransformConfig

config = TransformConfig.from_params({
    "allow": "sound.filename tonegen.type",
    "general_tone_search_path": "/usr/share/sounds",
})
config.transform({"tonegen.type": "dtmf", "other": 1}, {}, {})
# {'tonegen.type': 'dtmf'}
```

## What the package does not do

- It does not talk to a sound server. `AudioServer` only tracks the
  connection state you report through `context_state_changed`, calls an
  optional `connector` callback, and keeps the retry time in `retry_at`;
  your host calls `retry_connect` when it is due. The PCM bytes come from
  `Stream.on_write` and it is up to you to play them.
- It does not put signals on a real message bus. `SignalBus` records the
  messages it sends and passes them to an optional `transport` callback.
- It has no ready-made request handlers and no command-line program.
  `RequestDispatcher` routes requests only to the start and stop methods
  you register with it, and there is no mapping of event codes or dBm0
  power levels to tones and volumes.