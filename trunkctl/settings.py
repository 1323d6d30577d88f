"""Persistent controller settings stored in a structured configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from trunkctl import cfgformat
from trunkctl.logger import Logger, LogLevel

CONFIG_FILE_NAME = "trunkctl.cfg"
NEW_FILE_HEADER = "// Automatically generated\n"

_UINT32_MAX = 2**32 - 1
_UINT64_MASK = 2**64 - 1

# Values used by read_config when a setting is missing from the file.
_INT_READ_DEFAULTS: dict[str, int] = {
    "control_port": 4939,
    "mmdvm_listen_port": 44550,
    "mmdvm_send_port": 44560,
    "gateway_listen_port": 44660,
    "gateway_send_port": 44670,
    "headless_mode": 0,
    "window_width": 1400,
    "window_height": 700,
    "channel_number": 4,
    "gateway_number": 1,
    "control_channel_physical_id": 0,
    "control_channel_slot": 1,
    "gateway_enabled": 1,
    "announce_priority": 0,
    "payload_channel_idle_timeout": 5,
    "system_identity_code": 1,
    "freq_base": 430000000,
    "freq_separation": 25000,
    "freq_duplexsplit": 8000000,
    "use_absolute_channel_grants": 0,
    "use_fixed_channel_plan": 0,
    "announce_system_message": 1,
    "prevent_mmdvm_overflows": 1,
    "receive_tg_attach": 0,
    "registration_required": 1,
    "authentication_required": 0,
    "transmit_subscribed_tg_only": 0,
    "announce_system_freqs_interval": 120,
    "announce_adjacent_bs_interval": 30,
    "announce_late_entry_interval": 1,
    "channel_disable_bitmask": 0,
}

_STR_READ_DEFAULTS: dict[str, str] = {
    "udp_local_address": "127.0.0.1",
    "mmdvm_remote_address": "127.0.0.1",
    "gateway_remote_address": "127.0.0.1",
    "system_announcement_message": "DMR tier III trunked radio site",
}

# Order in which scalar settings are written back to the file.
_SAVE_ORDER = (
    ("control_port", int),
    ("mmdvm_listen_port", int),
    ("mmdvm_send_port", int),
    ("gateway_listen_port", int),
    ("gateway_send_port", int),
    ("window_width", int),
    ("window_height", int),
    ("headless_mode", int),
    ("channel_number", int),
    ("gateway_number", int),
    ("udp_local_address", str),
    ("mmdvm_remote_address", str),
    ("gateway_remote_address", str),
    ("control_channel_physical_id", int),
    ("control_channel_slot", int),
    ("gateway_enabled", int),
    ("announce_priority", int),
    ("system_announcement_message", str),
    ("payload_channel_idle_timeout", int),
    ("system_identity_code", int),
    ("freq_base", int),
    ("freq_separation", int),
    ("freq_duplexsplit", int),
    ("use_absolute_channel_grants", int),
    ("use_fixed_channel_plan", int),
    ("announce_system_message", int),
    ("prevent_mmdvm_overflows", int),
    ("receive_tg_attach", int),
    ("registration_required", int),
    ("authentication_required", int),
    ("transmit_subscribed_tg_only", int),
    ("announce_system_freqs_interval", int),
    ("announce_adjacent_bs_interval", int),
    ("announce_late_entry_interval", int),
    ("channel_disable_bitmask", int),
)

_CHANNEL_KEYS = ("channel_id", "logical_channel", "tx_freq", "rx_freq", "colour_code")
_SITE_KEYS = ("system_id", "logical_channel", "tx_freq", "rx_freq", "colour_code")

DEFAULT_SERVICE_IDS = {"help": 1000001, "signal_report": 1000003, "location": 1048677, "dgna": 1000002}
DEFAULT_CALL_PRIORITIES = {112: 3, 226: 2, 9: 1}


def default_config_dir() -> Path:
    """Directory holding the configuration file when none is given."""
    return Path.home() / ".config" / "trunkctl"


class ConfigError(RuntimeError):
    """Raised when the configuration cannot be read, validated or written."""


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _uint(entry: dict[str, Any], key: str) -> int | None:
    value = entry.get(key)
    if _is_int(value) and 0 <= value <= _UINT32_MAX:
        return value
    return None


def _int64(entry: dict[str, Any], key: str) -> int | None:
    value = entry.get(key)
    return value & _UINT64_MASK if _is_int(value) else None


def _string(entry: dict[str, Any], key: str) -> str | None:
    value = entry.get(key)
    return value if isinstance(value, str) else None


class Settings:
    """All controller settings, with defaults, loaded from and saved to a file."""

    def __init__(self, logger: Logger | None = None, config_dir: str | Path | None = None) -> None:
        self._logger = logger
        self.config_dir = Path(config_dir) if config_dir is not None else default_config_dir()
        self.config_path = self.setup_config()

        self.window_width = 1024
        self.window_height = 800
        self.headless_mode = 0
        self.control_port = 4939
        self.mmdvm_listen_port = 44550
        self.mmdvm_send_port = 44560
        self.gateway_listen_port = 44660
        self.gateway_send_port = 44670
        self.channel_number = 1
        self.gateway_number = 1
        self.udp_local_address = "127.0.0.1"
        self.mmdvm_remote_address = "127.0.0.1"
        self.gateway_remote_address = "127.0.0.1"
        self.system_announcement_message = ""
        self.control_channel_physical_id = 0
        self.control_channel_slot = 1
        self.gateway_enabled = 1
        self.announce_priority = 0
        self.payload_channel_idle_timeout = 5
        self.system_identity_code = 1
        self.freq_base = 430000000
        self.freq_separation = 12500
        self.freq_duplexsplit = 8000000
        self.use_absolute_channel_grants = 0
        self.use_fixed_channel_plan = 0
        self.announce_system_message = 1
        self.prevent_mmdvm_overflows = 1
        self.receive_tg_attach = 0
        # Some functions, such as private calls, need registration.
        self.registration_required = 1
        self.authentication_required = 0
        self.transmit_subscribed_tg_only = 0
        self.announce_system_freqs_interval = 120
        self.announce_adjacent_bs_interval = 30
        self.announce_late_entry_interval = 1
        self.channel_disable_bitmask = 0

        self.talkgroup_routing_table: dict[int, int] = {}
        self.slot_rewrite_table: dict[int, int] = {}
        self.logical_physical_channels: list[dict[str, int]] = []
        self.adjacent_sites: list[dict[str, int]] = []
        self.service_ids: dict[str, int] = {"help": 1, "signal_report": 2, "location": 1048677}
        self.call_priorities: dict[int, int] = {}
        self.call_diverts: dict[int, int] = {}
        # Keys are 32 hex characters, i.e. 16 bytes.
        self.auth_keys: dict[int, str] = {}

    def _fatal(self, message: str) -> ConfigError:
        if self._logger is not None:
            self._logger.log(LogLevel.FATAL, message)
        return ConfigError(message)

    def setup_config(self) -> Path:
        """Create the config directory and file if needed; return the file path."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        new_file = self.config_dir / CONFIG_FILE_NAME
        old_file = self.config_dir.parent / CONFIG_FILE_NAME
        if old_file.is_file() and old_file != new_file:
            old_file.replace(new_file)
        if not new_file.exists():
            new_file.write_text(NEW_FILE_HEADER, encoding="utf-8")
        return new_file

    def _entries(self, cfg: dict[str, Any], name: str) -> Iterator[dict[str, Any]] | None:
        if name not in cfg:
            return None
        value = cfg[name]
        items = value.values() if isinstance(value, dict) else value
        if not isinstance(items, (list, tuple, type({}.values()))):
            return iter(())
        return (item for item in items if isinstance(item, dict))

    def read_config(self) -> None:
        """Load settings from the config file, using defaults for missing ones."""
        try:
            cfg = cfgformat.load(self.config_path)
        except cfgformat.ConfigParseError as exc:
            raise self._fatal(
                f"Configuration parse error at {self.config_path}: {exc.line} - {exc.message}"
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise self._fatal("I/O error while reading configuration file.") from exc

        for name, default in _INT_READ_DEFAULTS.items():
            if name in cfg:
                value = cfg[name]
                if not _is_int(value):
                    raise self._fatal(f"Setting {name} must be an integer.")
                setattr(self, name, value)
            else:
                setattr(self, name, default)
            if name == "channel_number" and not 1 <= self.channel_number <= 7:
                raise self._fatal("Number of channels needs to be at least 1 and at most 7.")
            if name == "gateway_number" and not 1 <= self.gateway_number <= 30:
                raise self._fatal("Number of gateways needs to be at least 1 and at most 30.")

        for name, default in _STR_READ_DEFAULTS.items():
            if name in cfg:
                value = cfg[name]
                if not isinstance(value, str):
                    raise self._fatal(f"Setting {name} must be a string.")
                setattr(self, name, value)
            else:
                setattr(self, name, default)

        self._read_pairs(cfg, "talkgroup_routing", "tg_id", "gateway_id", self.talkgroup_routing_table)
        self._read_pairs(cfg, "slot_rewrite", "tg_id", "slot_no", self.slot_rewrite_table)
        self._read_channels(cfg, "logical_physical_channels", _CHANNEL_KEYS, self.logical_physical_channels)
        self._read_channels(cfg, "adjacent_sites", _SITE_KEYS, self.adjacent_sites)

        services = self._entries(cfg, "service_ids")
        if services is None:
            self.service_ids = dict(DEFAULT_SERVICE_IDS)
        else:
            for entry in services:
                service_name = _string(entry, "service_name")
                service_id = _uint(entry, "id")
                if service_name is None or service_id is None:
                    continue
                self.service_ids[service_name] = service_id

        if not self._read_pairs(cfg, "call_priorities", "id", "priority", self.call_priorities):
            self.call_priorities = dict(DEFAULT_CALL_PRIORITIES)
        self._read_pairs(cfg, "call_diverts", "id", "divert", self.call_diverts)

        keys = self._entries(cfg, "auth_keys")
        for entry in keys or ():
            radio_id = _uint(entry, "id")
            key = _string(entry, "key")
            if radio_id is None or key is None:
                continue
            self.auth_keys[radio_id] = key

    def _read_pairs(
        self, cfg: dict[str, Any], name: str, key_field: str, value_field: str, table: dict[int, int]
    ) -> bool:
        entries = self._entries(cfg, name)
        if entries is None:
            return False
        for entry in entries:
            key = _uint(entry, key_field)
            value = _uint(entry, value_field)
            if key is None or value is None:
                continue
            table[key] = value
        return True

    def _read_channels(
        self, cfg: dict[str, Any], name: str, fields: tuple[str, ...], target: list[dict[str, int]]
    ) -> None:
        for entry in self._entries(cfg, name) or ():
            values = {field: _int64(entry, field) for field in fields}
            if any(value is None for value in values.values()):
                continue
            target.append(values)  # type: ignore[arg-type]

    def _as_config(self) -> dict[str, Any]:
        root: dict[str, Any] = {name: kind(getattr(self, name)) for name, kind in _SAVE_ORDER}
        root["talkgroup_routing"] = [
            {"tg_id": int(tg), "gateway_id": int(gw)}
            for tg, gw in sorted(self.talkgroup_routing_table.items())
        ]
        root["slot_rewrite"] = [
            {"tg_id": int(tg), "slot_no": int(slot)}
            for tg, slot in sorted(self.slot_rewrite_table.items())
        ]
        root["logical_physical_channels"] = [
            {field: int(channel.get(field, 0)) for field in _CHANNEL_KEYS}
            for channel in self.logical_physical_channels
        ]
        root["adjacent_sites"] = [
            {field: int(site.get(field, 0)) for field in _SITE_KEYS}
            for site in self.adjacent_sites
        ]
        root["service_ids"] = [
            {"service_name": str(name), "id": int(service_id)}
            for name, service_id in sorted(self.service_ids.items())
        ]
        root["call_priorities"] = [
            {"id": int(radio_id), "priority": int(priority)}
            for radio_id, priority in sorted(self.call_priorities.items())
        ]
        root["call_diverts"] = [
            {"id": int(radio_id), "divert": int(divert)}
            for radio_id, divert in sorted(self.call_diverts.items())
        ]
        root["auth_keys"] = [
            {"id": int(radio_id), "key": str(key)}
            for radio_id, key in sorted(self.auth_keys.items())
        ]
        return root

    def save_config(self) -> None:
        """Write all settings to the config file."""
        data = self._as_config()
        try:
            cfgformat.dump(data, self.config_path)
        except OSError as exc:
            raise self._fatal(
                f"I/O error while writing configuration file: {self.config_path}"
            ) from exc