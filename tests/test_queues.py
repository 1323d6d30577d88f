import pytest

from trunkctl.queues import TX_TIME, NetQueue, RFQueue
from trunkctl.rewrite import DataType, DMRFrame


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000_000_000

    def __call__(self) -> int:
        return self.now

    def advance(self, amount: int = TX_TIME) -> None:
        self.now += amount


@pytest.fixture
def clock():
    return FakeClock()


def frame(stream_id, **kwargs):
    return DMRFrame(stream_id=stream_id, **kwargs)


def test_default_pacing_is_two_timeslots(clock):
    queue = NetQueue(clock=clock)
    queue.put(frame(7))
    clock.advance(57_999_999)
    assert queue.get() is None
    clock.advance(1)
    assert queue.get().stream_id == 7


def test_custom_tx_time_controls_pacing(clock):
    queue = NetQueue(tx_time=10, clock=clock)
    queue.put(frame(1))
    queue.put(frame(2))
    clock.advance(9)
    assert queue.get() is None
    clock.advance(1)
    assert queue.get().stream_id == 1
    clock.advance(10)
    assert queue.get().stream_id == 2


def test_net_queue_empty_returns_none(clock):
    queue = NetQueue(clock=clock)
    clock.advance()
    assert queue.get() is None
    assert len(queue) == 0


def test_net_queue_paces_frames(clock):
    queue = NetQueue(clock=clock)
    queue.put(frame(1))
    queue.put(frame(2))
    assert queue.get() is None
    assert len(queue) == 2
    clock.advance()
    assert queue.get().stream_id == 1
    assert queue.get() is None
    clock.advance(TX_TIME - 1)
    assert queue.get() is None
    clock.advance(1)
    assert queue.get().stream_id == 2
    assert len(queue) == 0


def test_net_queue_dummy_is_consumed(clock):
    queue = NetQueue(clock=clock)
    queue.put(frame(1, dummy=True))
    queue.put(frame(2))
    clock.advance()
    assert queue.get() is None
    assert len(queue) == 1
    clock.advance()
    assert queue.get().stream_id == 2


def test_net_queue_clear(clock):
    queue = NetQueue(clock=clock)
    queue.put(frame(1))
    queue.put(frame(2))
    queue.clear()
    clock.advance()
    assert len(queue) == 0
    assert queue.get() is None


def test_rf_queue_empty_returns_none(clock):
    queue = RFQueue(clock=clock)
    assert queue.get() is None


def test_rf_queue_paced_when_preventing_overflows(clock):
    queue = RFQueue(prevent_overflows=True, clock=clock)
    queue.put(frame(1))
    queue.put(frame(2))
    assert queue.get() is None
    clock.advance()
    assert queue.get().stream_id == 1
    assert queue.get() is None
    clock.advance()
    assert queue.get().stream_id == 2


def test_rf_queue_voice_unpaced_without_overflow_prevention(clock):
    queue = RFQueue(prevent_overflows=False, clock=clock)
    queue.put(frame(1, data_type=DataType.VOICE))
    queue.put(frame(2, data_type=DataType.VOICE))
    assert queue.get().stream_id == 1
    assert queue.get().stream_id == 2
    assert len(queue) == 0


@pytest.mark.parametrize(
    "data_type",
    [
        DataType.CSBK,
        DataType.VOICE_LC_HEADER,
        DataType.RATE_12_DATA,
        DataType.RATE_1_DATA,
        DataType.RATE_34_DATA,
    ],
)
def test_rf_queue_control_types_always_paced(clock, data_type):
    queue = RFQueue(prevent_overflows=False, clock=clock)
    queue.put(frame(1, data_type=data_type))
    assert queue.get() is None
    clock.advance()
    assert queue.get().stream_id == 1


def test_rf_queue_control_frame_skips_pacing_and_keeps_timer(clock):
    queue = RFQueue(prevent_overflows=True, clock=clock)
    clock.advance()
    queue.put(frame(1))
    assert queue.get().stream_id == 1
    queue.put(frame(2, control=True))
    queue.put(frame(3))
    assert queue.get().stream_id == 2
    # the control frame did not restart pacing, the last real frame did
    assert queue.get() is None
    clock.advance()
    assert queue.get().stream_id == 3


def test_rf_queue_dummy_consumed_and_restarts_pacing(clock):
    queue = RFQueue(prevent_overflows=True, clock=clock)
    queue.put(frame(1, dummy=True))
    queue.put(frame(2))
    clock.advance()
    assert queue.get() is None
    assert len(queue) == 1
    assert queue.get() is None
    clock.advance()
    assert queue.get().stream_id == 2


def test_rf_queue_put_first_prepends(clock):
    queue = RFQueue(prevent_overflows=False, clock=clock)
    queue.put(frame(1))
    queue.put(frame(2), first=True)
    assert [queue.get().stream_id, queue.get().stream_id] == [2, 1]


def test_rf_queue_put_many_keeps_order(clock):
    queue = RFQueue(prevent_overflows=False, clock=clock)
    queue.put(frame(9))
    queue.put_many([frame(1), frame(2), frame(3)], first=True)
    queue.put_many([frame(4), frame(5)])
    order = [queue.get().stream_id for _ in range(6)]
    assert order == [1, 2, 3, 9, 4, 5]
    assert len(queue) == 0


def test_rf_queue_clear(clock):
    queue = RFQueue(clock=clock)
    queue.put_many([frame(1), frame(2)])
    assert len(queue) == 2
    queue.clear()
    clock.advance()
    assert len(queue) == 0
    assert queue.get() is None