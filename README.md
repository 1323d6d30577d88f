# trunkctl

Building blocks for a DMR tier III trunking controller. The package holds
the controller's state and rules: logical channels, paced transmit queues,
talkgroup routing, slot and source rewriting, settings with their
configuration file, radio id lookup and the RC4 authentication
challenge. It needs nothing beyond the standard library.

## Modules

### `trunkctl.logger`

`Logger(path=None, console_log=False)` prints every message with a
timestamp. Messages of level `CRITICAL` and `FATAL` go to stderr, and all
others go to stdout. Every message is also appended to a log file. The
default file is `~/.config/trunkctl/trunkctl.log`. A new file starts with a
`[Log start]` line.

- `log(level, message)` writes the line and returns it, for example
  `[5/Mar/2024 14:02:11.123] [Info] text`.
- `add_listener(callback)` registers a callable. It receives every
  formatted line while console-only mode is off.
- `set_console_log(value)` switches console-only mode.
- `close()` closes the file. The logger can also be used as a context
  manager.

`LogLevel` has the members `INFO`, `DEBUG`, `WARNING`, `CRITICAL` and
`FATAL`.

### `trunkctl.rc4`

These functions implement the RC4-based MS authentication of
ETSI TS 102 361-4:

- `ksa(key)` returns the RC4 state permutation.
- `prga(state, data)` XORs `data` with the keystream. It works on a copy
  of `state`.
- `challenge_response(key, challenge)` returns the 24-bit response. It is
  taken from keystream bytes 256–258 of the RC4 stream keyed with the
  3-byte challenge followed by the key.
- `get_challenge_response(key)` picks a random challenge, capped at
  `0xFFFCDF`, and returns `(challenge, response)`.

### `trunkctl.idlookup`

`DMRIdLookup(path=None)` reads a file of comma- or tab-separated
`id,callsign,name` lines. The default file is
`~/.config/trunkctl/DMRIds.dat`, and a missing file is created. Lines with
fewer than three fields are skipped.

- `lookup(dmr_id)` returns `"id - callsign - name"`, or the id as text when
  it is unknown. Id 0 gives `"0"`.
- `get_callsign(dmr_id)` returns the callsign, or the id as text when it is
  unknown. Id 0 gives `"NO CALL"`.
- `len()` and `in` are also supported.

### `trunkctl.rewrite`

- `DMRFrame` is a dataclass for one burst. Its fields are slot, source,
  destination, FLCO, data type, stream id, RSSI, BER, payload, and the
  `control` and `dummy` flags.
- `DataType` and `FLCO` hold the data type and opcode values.
- `DMRRewrite(settings, registered_ms)` applies the rewriting rules:
  - `rewrite_slot(frame)` puts private (`FLCO.USER_USER`) calls on slot 2
    for the whole stream until its terminator. Other frames follow
    `settings.slot_rewrite_table`.
  - `rewrite_source(frame)` replaces the source id of a registered radio
    with 1.
  - Both methods return whether a rule applied.

### `trunkctl.router`

`GatewayRouter(settings, logger=None).find_route(frame)` returns the gateway
id for the frame's destination talkgroup from
`settings.talkgroup_routing_table`. It returns `None` when there is no
route.

### `trunkctl.cfgformat`

This module reads and writes the configuration file format.

- Settings are written `name = value;`.
- Values can be integers (decimal or `0x` hex, with an optional `L`
  suffix), floats, booleans and double-quoted strings.
- `{ }` groups map to `dict`, `( )` lists map to `list`, and `[ ]` arrays
  of one scalar type map to `tuple`.
- `#`, `//` and `/* */` comments are accepted.

The functions are `loads(text)`, `dumps(data)`, `load(path)` and
`dump(data, path)`. Malformed text raises `ConfigParseError`, which has
`line` and `message` attributes.

### `trunkctl.settings`

`Settings(logger=None, config_dir=None)` holds every controller setting
with its default. The default directory is `~/.config/trunkctl`. The
constructor creates `trunkctl.cfg` in that directory if it is missing. An
existing `trunkctl.cfg` in the parent directory is moved into it.

`read_config()` loads the file:
- Missing settings take their read defaults.
- It reads these tables: talkgroup routing, slot rewrite, logical/physical
  channels, adjacent sites, service ids, call priorities, call diverts and
  authentication keys.
- It raises `ConfigError` on a parse or I/O error, on a wrongly typed
  value, on `channel_number` outside 1–7, or on `gateway_number` outside
  1–30.

`save_config()` writes all settings back. Table entries are sorted by key.

### `trunkctl.queues`

`RFQueue` and `NetQueue` release at most one frame every `tx_time`
nanoseconds. The default is 58 ms, about two timeslots. The clock can be
injected.

`RFQueue` paces every frame when overflow prevention is on. Otherwise it
paces only CSBK, voice LC header and data frames. Control frames skip the
pacing. Dummy frames use up a transmit slot but are not returned.

Both queues offer:
- `put` (`RFQueue.put` takes an optional `first`)
- `RFQueue.put_many`
- `get`, which returns `None` when nothing may be sent yet
- `clear`
- `len()`

### `trunkctl.channel`

`LogicalChannel(settings, logger, channel_id, physical_channel, slot, ...)`
is one timeslot of a physical channel. It covers:

- Allocation and release: `allocate`, `deallocate`, `update`.
- Idle and last-frame timers, which run on daemon threads. Call `close()`
  to cancel them.
- RF and network queues: `put_rf_queue`, `put_rf_queue_multi`,
  `get_rf_queue`, `put_net_queue`, `get_net_queue`, `clear_rf_queue`,
  `clear_net_queue`.
- Per-stream RSSI/BER statistics: `update_stats`.
- Display text: `set_text`.
- GPS information: `set_gps_info`.

`channel_params()` returns the packed channel parameters and the colour
code used in channel grants. The frequencies and logical channel number
come from `settings.logical_physical_channels`, or from the fixed channel
plan when that setting is on.

Listeners are registered with:
- `add_deallocated_listener` (the channel went idle)
- `add_update_listener` (the displayed state changed)
- `add_call_stats_listener` (a stream ended, with its source, destination,
  RSSI, BER and a private-call flag)

The optional `group_id_converter` turns group destination ids into the
form used in statistics. It defaults to no change.

`CallType` and `CallState` hold the call kinds and call states.

## What the package does not do

The package has no network transport to a repeater or to gateways and no
call controller that drives the channels. It has no graphical or console
interface and no command to start. It does not decode DMR bursts: it does
no embedded-data or EMB regeneration, and it decodes no talker alias or
position from voice frames. Packet data messages are not handled either.
`DMRFrame` carries metadata that the caller fills in.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
from pathlib import Path

from trunkctl.logger import Logger, LogLevel
from trunkctl.settings import Settings
from trunkctl.router import GatewayRouter
from trunkctl.rewrite import DMRFrame

logger = Logger(Path("trunk.log"), console_log=True)
settings = Settings(logger, Path("config"))
settings.read_config()
settings.talkgroup_routing_table[226] = 1

router = GatewayRouter(settings, logger)
gateway = router.find_route(DMRFrame(src_id=2260001, dst_id=226))
if gateway is not None:
    logger.log(LogLevel.INFO, f"talkgroup 226 routed to gateway {gateway}")

settings.save_config()
logger.close()
```

An authentication challenge for a 16-byte key:

```python
from trunkctl.rc4 import challenge_response, get_challenge_response

key = bytes(16)
challenge, response = get_challenge_response(key)
assert challenge_response(key, challenge) == response
```