"""DMR frame model and slot/source rewriting rules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Collection

DMR_FRAME_LENGTH_BYTES = 33


class DataType(IntEnum):
    """Slot type data type of a DMR burst."""

    VOICE_PI_HEADER = 0x00
    VOICE_LC_HEADER = 0x01
    TERMINATOR_WITH_LC = 0x02
    CSBK = 0x03
    MBC_HEADER = 0x04
    MBC_CONTINUATION = 0x05
    DATA_HEADER = 0x06
    RATE_12_DATA = 0x07
    RATE_34_DATA = 0x08
    IDLE = 0x09
    RATE_1_DATA = 0x0A
    VOICE_SYNC = 0xF0
    VOICE = 0xF1


class FLCO(IntEnum):
    """Full link control opcode."""

    GROUP = 0x00
    USER_USER = 0x03
    TALKER_ALIAS_HEADER = 0x04
    TALKER_ALIAS_BLOCK1 = 0x05
    TALKER_ALIAS_BLOCK2 = 0x06
    TALKER_ALIAS_BLOCK3 = 0x07
    GPS_INFO = 0x08


@dataclass
class DMRFrame:
    """One DMR burst together with its routing metadata."""

    slot_no: int = 1
    src_id: int = 0
    dst_id: int = 0
    flco: FLCO = FLCO.GROUP
    data_type: DataType = DataType.VOICE
    stream_id: int = 0
    n: int = 0
    seq_no: int = 0
    rssi: int = 0
    ber: int = 0
    data: bytes = bytes(DMR_FRAME_LENGTH_BYTES)
    control: bool = False
    dummy: bool = False


class DMRRewrite:
    """Rewrites the network slot and source id of frames.

    Private calls always go to slot 2, for the whole stream until its
    terminator; other calls follow the settings' slot rewrite table.
    """

    def __init__(self, settings: Any, registered_ms: Collection[int]) -> None:
        self._settings = settings
        self._registered_ms = registered_ms
        self._private_call_stream_ids: list[int] = []

    def rewrite_slot(self, frame: DMRFrame) -> bool:
        """Set the frame's slot if a rule applies; return whether one did."""
        stream_id = frame.stream_id
        is_terminator = frame.data_type == DataType.TERMINATOR_WITH_LC
        if stream_id in self._private_call_stream_ids and not is_terminator:
            frame.slot_no = 2
            return True
        if frame.flco == FLCO.USER_USER:
            if is_terminator:
                self._private_call_stream_ids = [
                    sid for sid in self._private_call_stream_ids if sid != stream_id
                ]
            elif stream_id not in self._private_call_stream_ids:
                self._private_call_stream_ids.append(stream_id)
            frame.slot_no = 2
            return True
        table = self._settings.slot_rewrite_table
        if frame.dst_id in table:
            frame.slot_no = table[frame.dst_id]
            return True
        return False

    def rewrite_source(self, frame: DMRFrame) -> bool:
        """Replace the source id of registered radios with 1."""
        if self._registered_ms and frame.src_id in self._registered_ms:
            frame.src_id = 1
            return True
        return False