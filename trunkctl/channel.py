"""Logical channel state: allocation, timers, transmit queues and call statistics."""

from __future__ import annotations

import threading
from dataclasses import replace
from enum import IntEnum
from typing import Any, Callable, Iterable

from trunkctl.logger import LogLevel
from trunkctl.queues import TX_TIME, NetQueue, RFQueue
from trunkctl.rewrite import FLCO, DataType, DMRFrame


class CallType(IntEnum):
    """Kind of call carried by a channel."""

    MS = 0
    GROUP = 1
    INDIV_PACKET = 2
    GROUP_PACKET = 3


class CallState(IntEnum):
    """Progress of the call on a channel."""

    LC = 0
    SYNC = 1
    NONE = 2


class _OneShotTimer:
    """Restartable single-shot timer running its callback on a daemon thread."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self._callback = callback
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.interval, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def stop(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._callback()


def _identity(value: int) -> int:
    return value


def _format_number(value: float) -> str:
    return f"{value:g}"


class LogicalChannel:
    """One timeslot of a physical channel, as seen by the trunking controller.

    Listeners registered with the add_*_listener methods are told when the
    channel is marked idle, when its displayed state changes and when the
    statistics of a finished call stream are ready.
    """

    def __init__(
        self,
        settings: Any,
        logger: Any,
        channel_id: int,
        physical_channel: int,
        slot: int,
        control_channel: bool = False,
        gui_enabled: bool = False,
        group_id_converter: Callable[[int], int] | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self.channel_id = channel_id
        self._physical_channel = physical_channel
        self._slot = slot
        self._control_channel = bool(control_channel)
        self._gui_enabled = bool(gui_enabled)
        self._convert_group_id = group_id_converter or _identity
        self._lock = threading.RLock()

        self._busy = False
        self._frame_timeout = False
        self._call_in_progress = False
        self._disabled = False
        self._local_call = False
        self._state = CallState.NONE
        self._call_type = int(CallType.GROUP)
        self._source_address = 0
        self._destination_address = 0
        self._text = ""
        self._gps_info = ""
        self._talker_alias_received = False
        self._ta_df = 0
        self._ta_dl = 0
        self._ta_data = bytearray()
        self._rx_freq = 0
        self._tx_freq = 0
        self._colour_code = 1
        self._lcn = physical_channel + 1

        self._stream_id = 0
        self._data_frames = 0
        self._rssi_accumulator = 0.0
        self._ber_accumulator = 0.0
        self._rssi = 0.0
        self._ber = 0.0
        self._stats_src_id = 0
        self._stats_dst_id = 0

        self._deallocated_listeners: list[Callable[[int], None]] = []
        self._update_listeners: list[Callable[[], None]] = []
        self._call_stats_listeners: list[Callable[[int, int, float, float, bool], None]] = []

        self._rf_queue = RFQueue(prevent_overflows=bool(settings.prevent_mmdvm_overflows))
        self._net_queue = NetQueue()

        self._timeout_timer = _OneShotTimer(
            float(settings.payload_channel_idle_timeout), self.set_channel_idle
        )
        self._last_frame_timer = _OneShotTimer(4 * TX_TIME / 1e9, self.notify_last_frame)

        channel = next(
            (
                entry
                for entry in settings.logical_physical_channels
                if entry.get("channel_id") == physical_channel + 1
            ),
            None,
        )
        if channel is not None and len(channel) >= 5:
            self._rx_freq = channel.get("rx_freq", 0)
            self._tx_freq = channel.get("tx_freq", 0)
            self._colour_code = channel.get("colour_code", 0)
            if not settings.use_fixed_channel_plan:
                self._lcn = channel.get("logical_channel", 0)
            else:
                self._lcn = (
                    (channel.get("tx_freq", 0) - settings.freq_base) // settings.freq_separation + 1
                )
        else:
            self._log(
                LogLevel.WARNING,
                f"Could not find settings for logical channel {self._lcn} in"
                " the config file (section logical_physical_channels)",
            )

    # -- listeners -------------------------------------------------------

    def add_deallocated_listener(self, callback: Callable[[int], None]) -> None:
        """Call callback with the channel id when the channel goes idle."""
        self._deallocated_listeners.append(callback)

    def add_update_listener(self, callback: Callable[[], None]) -> None:
        """Call callback whenever the displayed state changes."""
        self._update_listeners.append(callback)

    def add_call_stats_listener(
        self, callback: Callable[[int, int, float, float, bool], None]
    ) -> None:
        """Call callback(src, dst, rssi, ber, private_call) when a stream ends."""
        self._call_stats_listeners.append(callback)

    def _emit_update(self) -> None:
        for callback in list(self._update_listeners):
            callback()

    def _emit_call_stats(self) -> None:
        private = self._call_type == CallType.MS
        args = (self._stats_src_id, self._stats_dst_id, self._rssi, self._ber, private)
        for callback in list(self._call_stats_listeners):
            callback(*args)

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger is not None:
            self._logger.log(level, message)

    # -- read-only state -------------------------------------------------

    @property
    def is_control_channel(self) -> bool:
        return self._control_channel

    @property
    def physical_channel(self) -> int:
        return self._physical_channel

    @property
    def logical_channel(self) -> int:
        with self._lock:
            return self._lcn

    @property
    def slot(self) -> int:
        return self._slot

    @property
    def timeout(self) -> bool:
        with self._lock:
            return self._frame_timeout

    @property
    def call_in_progress(self) -> bool:
        with self._lock:
            return self._call_in_progress

    @property
    def state(self) -> CallState:
        with self._lock:
            return self._state

    @property
    def ber(self) -> float:
        with self._lock:
            return self._ber

    @property
    def rssi(self) -> float:
        with self._lock:
            return self._rssi

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    @property
    def gps_info(self) -> str:
        with self._lock:
            return self._gps_info

    # -- mutable state ---------------------------------------------------

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    @busy.setter
    def busy(self, value: bool) -> None:
        with self._lock:
            self._busy = bool(value)

    @property
    def disabled(self) -> bool:
        with self._lock:
            return self._disabled

    @disabled.setter
    def disabled(self, value: bool) -> None:
        with self._lock:
            self._disabled = bool(value)
            self._frame_timeout = False
        self._log(
            LogLevel.INFO,
            f"State of channel {self._physical_channel}, slot {self._slot} changed to "
            f"{'disabled' if value else 'enabled'}",
        )

    @property
    def local_call(self) -> bool:
        with self._lock:
            return self._local_call

    @local_call.setter
    def local_call(self, value: bool) -> None:
        with self._lock:
            self._local_call = bool(value)

    @property
    def source(self) -> int:
        with self._lock:
            return self._source_address

    @source.setter
    def source(self, value: int) -> None:
        with self._lock:
            self._source_address = value

    @property
    def destination(self) -> int:
        with self._lock:
            return self._destination_address

    @destination.setter
    def destination(self, value: int) -> None:
        with self._lock:
            self._destination_address = value

    @property
    def call_type(self) -> int:
        with self._lock:
            return self._call_type

    @call_type.setter
    def call_type(self, value: int) -> None:
        with self._lock:
            self._call_type = value

    # -- channel parameters ----------------------------------------------

    def channel_params(self) -> tuple[int, int]:
        """Packed channel parameters and colour code for channel grants."""
        tx_khz = self._tx_freq % 1_000_000 // 125
        rx_khz = self._rx_freq % 1_000_000 // 125
        tx_mhz = self._tx_freq // 1_000_000
        rx_mhz = self._rx_freq // 1_000_000
        params = rx_khz | (rx_mhz << 13) | (tx_khz << 23) | (tx_mhz << 36) | (self._lcn << 46)
        return params & 0xFFFFFFFFFFFFFFFF, self._colour_code & 0xFF

    # -- allocation ------------------------------------------------------

    def _reset_talker_alias(self) -> None:
        self._talker_alias_received = False
        self._ta_df = 0
        self._ta_dl = 0
        self._ta_data.clear()

    def allocate(
        self,
        src_id: int,
        dst_id: int,
        call_type: int = CallType.GROUP,
        local: bool = False,
    ) -> None:
        """Assign the channel to a call."""
        with self._lock:
            self._source_address = src_id
            self._destination_address = dst_id
            self._call_type = int(call_type)
            self._text = ""
            self._gps_info = ""
            self._reset_talker_alias()
            self._busy = True
            self._frame_timeout = False
            self._call_in_progress = False
            self._local_call = bool(local)
            self._data_frames = 0
        self._timeout_timer.start()
        if self._gui_enabled:
            self._last_frame_timer.start()
        self._log(
            LogLevel.DEBUG,
            f"Allocated physical channel {self._physical_channel}, logical channel {self._lcn}, "
            f"slot {self._slot} to destination {dst_id} and source {src_id}",
        )

    def deallocate(self) -> None:
        """Free the channel and report statistics of the last stream."""
        with self._lock:
            self._busy = False
            self._frame_timeout = False
            self._call_in_progress = False
            self._local_call = False
            self._state = CallState.NONE
            self._text = ""
            self._gps_info = ""
            self._reset_talker_alias()
        self._timeout_timer.stop()
        self._last_frame_timer.stop()
        self.update_stats(None, end_call=True)
        self._log(
            LogLevel.DEBUG,
            f"Deallocated physical channel {self._physical_channel}, slot {self._slot} "
            f"from destination {self._destination_address}",
        )

    def update(self, src_id: int, dst_id: int, call_type: int = CallType.GROUP) -> None:
        """Record the current talker and destination and restart the idle timer."""
        with self._lock:
            self._source_address = src_id
            self._call_in_progress = True
            self._destination_address = dst_id
            self._call_type = int(call_type)
        self.start_timeout_timer()
        self._log(
            LogLevel.DEBUG,
            f"Updated physical channel {self._physical_channel}, slot {self._slot} "
            f"to destination {dst_id} and source {src_id}",
        )

    # -- statistics ------------------------------------------------------

    def update_stats(self, frame: DMRFrame | None = None, end_call: bool = False) -> None:
        """Accumulate signal statistics of a frame, or close them at call end."""
        notify_stats = False
        notify_update = False
        with self._lock:
            if end_call:
                if self._data_frames > 0:
                    self._rssi = self._rssi_accumulator / self._data_frames
                    self._ber = self._ber_accumulator / self._data_frames
                    notify_stats = True
                    snapshot = self._stats_snapshot()
                self._stream_id = 0
                self._data_frames = 0
                self._rssi_accumulator = 0.0
                self._ber_accumulator = 0.0
            else:
                if frame is None:
                    raise ValueError("a frame is needed unless end_call is set")
                old_stream_id = self._stream_id
                if frame.stream_id != old_stream_id:
                    self._stream_id = frame.stream_id
                    if old_stream_id != 0 and self._data_frames > 0:
                        self._rssi = self._rssi_accumulator / self._data_frames
                        self._ber = self._ber_accumulator / self._data_frames
                        notify_stats = True
                        snapshot = self._stats_snapshot()
                    self._rssi_accumulator = float(frame.rssi) * -1.0
                    self._ber_accumulator = float(frame.ber) / 1.41
                    self._data_frames = 1
                    self._stats_dst_id = frame.dst_id
                    self._stats_src_id = frame.src_id
                else:
                    self._rssi_accumulator += float(frame.rssi) * -1.0
                    self._ber_accumulator += float(frame.ber) / 1.41
                    self._data_frames += 1
                    self._rssi = self._rssi_accumulator / self._data_frames
                    self._ber = self._ber_accumulator / self._data_frames
                    notify_update = self._data_frames % 10 == 0
        if notify_stats:
            src, dst, rssi, ber, private = snapshot
            for callback in list(self._call_stats_listeners):
                callback(src, dst, rssi, ber, private)
        if notify_update:
            self._emit_update()

    def _stats_snapshot(self) -> tuple[int, int, float, float, bool]:
        return (
            self._stats_src_id,
            self._stats_dst_id,
            self._rssi,
            self._ber,
            self._call_type == CallType.MS,
        )

    # -- queues ----------------------------------------------------------

    def _track_frame(self, frame: DMRFrame) -> None:
        """Reset per-call decoded data at the start and end of a voice call."""
        if frame.data_type in (DataType.VOICE_LC_HEADER, DataType.TERMINATOR_WITH_LC):
            with self._lock:
                self._gps_info = ""
                self._reset_talker_alias()

    def put_rf_queue(self, frame: DMRFrame, first: bool = False) -> None:
        """Queue a frame for the repeater; the caller's frame gets a base-10 group id."""
        self.start_last_frame_timer()
        self._track_frame(frame)
        self._rf_queue.put(replace(frame), first)
        with self._lock:
            self._call_in_progress = True
        if frame.flco != FLCO.USER_USER:
            frame.dst_id = self._convert_group_id(frame.dst_id)
        self.update_stats(frame)

    def put_rf_queue_multi(self, frames: Iterable[DMRFrame], first: bool = False) -> None:
        """Queue several frames for the repeater, keeping their order."""
        items = list(frames)
        self.start_last_frame_timer()
        for frame in items:
            self._track_frame(frame)
        self._rf_queue.put_many([replace(frame) for frame in items], first)
        with self._lock:
            self._call_in_progress = True
        for frame in items:
            stats_frame = frame
            if frame.flco != FLCO.USER_USER:
                stats_frame = replace(frame, dst_id=self._convert_group_id(frame.dst_id))
            self.update_stats(stats_frame)

    def get_rf_queue(self) -> DMRFrame | None:
        """Next frame for the repeater, or None when none may be sent now."""
        self._rf_queue.prevent_overflows = bool(self._settings.prevent_mmdvm_overflows)
        return self._rf_queue.get()

    def put_net_queue(self, frame: DMRFrame) -> None:
        """Queue a frame for the network."""
        self.start_last_frame_timer()
        with self._lock:
            self._call_in_progress = True
        self._track_frame(frame)
        self._net_queue.put(replace(frame))
        self.update_stats(frame)

    def get_net_queue(self) -> DMRFrame | None:
        """Next frame for the network, or None when none may be sent now."""
        return self._net_queue.get()

    def clear_rf_queue(self) -> None:
        """Drop all frames waiting for the repeater."""
        self._rf_queue.clear()

    def clear_net_queue(self) -> None:
        """Drop all frames waiting for the network."""
        self._net_queue.clear()

    @property
    def rf_queue_size(self) -> int:
        return len(self._rf_queue)

    @property
    def net_queue_size(self) -> int:
        return len(self._net_queue)

    # -- timers ----------------------------------------------------------

    def start_timeout_timer(self) -> None:
        """(Re)start the idle timer that frees the channel."""
        self._timeout_timer.start()

    def stop_timeout_timer(self) -> None:
        """Stop the idle timer."""
        self._timeout_timer.stop()

    def start_last_frame_timer(self) -> None:
        """Clear the frame timeout and, with a GUI, restart its timer."""
        with self._lock:
            self._frame_timeout = False
        if self._gui_enabled:
            self._last_frame_timer.start()

    def stop_last_frame_timer(self) -> None:
        """Stop the last-frame timer."""
        self._last_frame_timer.stop()

    def set_channel_idle(self) -> None:
        """Mark the channel free and tell the deallocation listeners."""
        with self._lock:
            self._busy = False
            self._frame_timeout = False
        for callback in list(self._deallocated_listeners):
            callback(self.channel_id)
        self._log(
            LogLevel.DEBUG,
            f"Physical channel {self._physical_channel}, slot {self._slot} to destination "
            f"{self._destination_address} and source {self._source_address} "
            "is marked as idle and deallocated",
        )

    def notify_last_frame(self) -> None:
        """Flag that no frame has arrived for a while."""
        with self._lock:
            self._frame_timeout = True
        self._emit_update()

    def close(self) -> None:
        """Cancel pending timers."""
        self._timeout_timer.stop()
        self._last_frame_timer.stop()

    # -- display data ----------------------------------------------------

    def set_text(self, text: str, control_channel: bool = True) -> None:
        """Set the channel's display text; empty text is ignored."""
        if not text:
            return
        with self._lock:
            if control_channel:
                self._text = text
            else:
                if self._ta_df == 3:
                    encoding = "(UTF-16)"
                elif self._ta_df == 0:
                    encoding = "(ISO 7)"
                else:
                    encoding = "(ISO 8)"
                self._text = f"{text} {encoding}"
        self._emit_update()

    def set_gps_info(self, longitude: float, latitude: float, error: str) -> None:
        """Record a position reported in the call."""
        with self._lock:
            self._gps_info = (
                f"Longitude: {_format_number(longitude)}, "
                f"Latitude: {_format_number(latitude)}, Error: {error}"
            )
            info = self._gps_info
        self._emit_update()
        self._log(
            LogLevel.DEBUG,
            f"GPS Info received from {self.source} to {self.destination}: {info}",
        )