"""Paced transmit queues for the RF and network sides of a logical channel."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Iterable

from trunkctl.rewrite import DataType, DMRFrame

# Spacing between transmitted frames in nanoseconds; about two timeslots.
TX_TIME = 58_000_000

# Frames of these types are always paced on the RF side, even when overflow
# prevention is off.
_PACED_TYPES = frozenset(
    {
        DataType.CSBK,
        DataType.VOICE_LC_HEADER,
        DataType.RATE_12_DATA,
        DataType.RATE_1_DATA,
        DataType.RATE_34_DATA,
    }
)

Clock = Callable[[], int]


class RFQueue:
    """Frames waiting to be sent to the repeater, released at most once per tx_time.

    Control frames are never sent over the air, so they skip the pacing and do
    not restart it. Dummy frames take a transmit slot but are not handed out.
    """

    def __init__(
        self,
        prevent_overflows: bool = True,
        tx_time: int = TX_TIME,
        clock: Clock = time.monotonic_ns,
    ) -> None:
        self.prevent_overflows = bool(prevent_overflows)
        self.tx_time = tx_time
        self._clock = clock
        self._frames: deque[DMRFrame] = deque()
        self._lock = threading.Lock()
        self._last_tx = clock()

    def put(self, frame: DMRFrame, first: bool = False) -> None:
        """Queue a frame at the back, or at the front when first is true."""
        with self._lock:
            if first:
                self._frames.appendleft(frame)
            else:
                self._frames.append(frame)

    def put_many(self, frames: Iterable[DMRFrame], first: bool = False) -> None:
        """Queue several frames, keeping their order, at the back or the front."""
        items = list(frames)
        with self._lock:
            if first:
                self._frames.extendleft(reversed(items))
            else:
                self._frames.extend(items)

    def get(self) -> DMRFrame | None:
        """Next frame that may be sent now, or None when there is none yet."""
        with self._lock:
            if not self._frames:
                return None
            head = self._frames[0]
            if self.prevent_overflows or head.data_type in _PACED_TYPES:
                if head.control:
                    return self._frames.popleft()
                if self._clock() - self._last_tx < self.tx_time:
                    return None
            frame = self._frames.popleft()
            if frame.control:
                return frame
            self._last_tx = self._clock()
            if frame.dummy:
                return None
            return frame

    def clear(self) -> None:
        """Drop every queued frame."""
        with self._lock:
            self._frames.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)


class NetQueue:
    """Frames waiting to be sent to the network, released at most once per tx_time."""

    def __init__(self, tx_time: int = TX_TIME, clock: Clock = time.monotonic_ns) -> None:
        self.tx_time = tx_time
        self._clock = clock
        self._frames: deque[DMRFrame] = deque()
        self._lock = threading.Lock()
        self._last_tx = clock()

    def put(self, frame: DMRFrame) -> None:
        """Queue a frame at the back."""
        with self._lock:
            self._frames.append(frame)

    def get(self) -> DMRFrame | None:
        """Next frame that may be sent now, or None when there is none yet."""
        with self._lock:
            if not self._frames:
                return None
            if self._clock() - self._last_tx < self.tx_time:
                return None
            frame = self._frames.popleft()
            self._last_tx = self._clock()
            if frame.dummy:
                return None
            return frame

    def clear(self) -> None:
        """Drop every queued frame."""
        with self._lock:
            self._frames.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)