import asyncio

import pytest

from core.pipeline import PosePipeline
from core.sampler import Sampler, SamplerState
from utils.data_structures import PoseState
from utils.exceptions import ConfigurationError, RecordingError

from conftest import make_skeleton


class StateBox:
    """Holds a published pose state the way the scheduler does"""

    def __init__(self, state=None):
        self.state = state or PoseState.invalid(None, "no_detection")

    def __call__(self):
        return self.state


@pytest.fixture
def valid_state():
    return PosePipeline().process(100.0, make_skeleton(left_deg=32.0, right_deg=38.0))


def test_full_window_produces_exact_record_count(valid_state):
    sampler = Sampler(StateBox(valid_state))
    assert sampler.target_count == 200

    sampler.start("S01", now_ms=5000.0)
    while sampler.is_recording:
        sampler.tick()

    records = sampler.records
    assert len(records) == 200
    assert sampler.stop_reason == "completed"
    assert sampler.progress == 1.0
    assert [r.sample_index for r in records] == list(range(200))
    assert records[0].time_offset_ms == 0.0
    assert records[-1].time_offset_ms == 1990.0
    assert records[1].timestamp_ms == 5010.0
    assert all(r.subject_id == "S01" for r in records)
    assert all(r.valid for r in records)
    assert records[0].avg_angle == pytest.approx(35.0)
    assert set(records[0].landmarks) == {
        "left_shoulder", "right_shoulder", "left_hip", "right_hip", "left_knee", "right_knee"
    }


def test_tick_after_completion_is_noop(valid_state):
    sampler = Sampler(StateBox(valid_state), config={"interval_ms": 10, "duration_ms": 30})
    sampler.start("S01")
    for _ in range(3):
        sampler.tick()
    assert sampler.state is SamplerState.STOPPED
    assert sampler.tick() is None
    assert len(sampler.records) == 3


def test_invalid_state_produces_null_record():
    box = StateBox(PoseState.invalid(40.0, "low_visibility"))
    sampler = Sampler(box, config={"interval_ms": 10, "duration_ms": 20})
    sampler.start("S02")
    record = sampler.tick()
    assert not record.valid
    assert record.quality == "low_visibility"
    assert record.left_angle is None
    assert record.right_angle is None
    assert record.avg_angle is None
    assert record.midline is None
    assert record.landmarks is None
    assert record.pose_timestamp_ms == 40.0


def test_stale_state_is_recorded_with_its_own_timestamp(valid_state):
    sampler = Sampler(StateBox(valid_state), config={"interval_ms": 10, "duration_ms": 50})
    sampler.start("S03", now_ms=1000.0)
    first = sampler.tick()
    second = sampler.tick()
    assert first.pose_timestamp_ms == second.pose_timestamp_ms == 100.0
    assert second.timestamp_ms == 1010.0


def test_double_start_rejected(valid_state):
    sampler = Sampler(StateBox(valid_state))
    sampler.start("S01")
    sampler.tick()
    with pytest.raises(RecordingError):
        sampler.start("S02")
    assert sampler.subject_id == "S01"
    assert sampler.sample_count == 1


def test_cancel_keeps_partial_records(valid_state):
    sampler = Sampler(StateBox(valid_state))
    sampler.start("S01")
    for _ in range(5):
        sampler.tick()
    sampler.cancel()
    assert sampler.state is SamplerState.STOPPED
    assert sampler.stop_reason == "cancelled"
    assert len(sampler.records) == 5
    assert sampler.progress == pytest.approx(5 / 200)


def test_restart_clears_previous_records(valid_state):
    sampler = Sampler(StateBox(valid_state), config={"interval_ms": 10, "duration_ms": 20})
    sampler.start("S01")
    sampler.tick()
    sampler.tick()
    sampler.start("S02")
    assert sampler.records == ()
    assert sampler.sample_count == 0
    assert sampler.tick().sample_index == 0


def test_records_follow_state_changes(valid_state):
    box = StateBox()
    sampler = Sampler(box, config={"interval_ms": 10, "duration_ms": 30})
    sampler.start("S04")
    assert not sampler.tick().valid
    box.state = valid_state
    assert sampler.tick().valid
    box.state = PoseState.invalid(120.0, "no_detection")
    assert not sampler.tick().valid


@pytest.mark.parametrize("config", [
    {"interval_ms": 0, "duration_ms": 2000},
    {"interval_ms": 10, "duration_ms": 5},
])
def test_invalid_window_rejected(config):
    with pytest.raises(ConfigurationError):
        Sampler(StateBox(), config=config)


async def test_run_completes_window(valid_state):
    sampler = Sampler(StateBox(valid_state), config={"interval_ms": 5, "duration_ms": 50})
    sampler.start("S05")
    await asyncio.wait_for(sampler.run(), timeout=2.0)
    assert len(sampler.records) == 10
    assert sampler.stop_reason == "completed"


async def test_run_stops_on_cancel(valid_state):
    sampler = Sampler(StateBox(valid_state), config={"interval_ms": 5, "duration_ms": 5000})
    sampler.start("S06")
    task = asyncio.create_task(sampler.run())
    await asyncio.sleep(0.03)
    sampler.cancel()
    await asyncio.wait_for(task, timeout=1.0)
    assert 0 < len(sampler.records) < sampler.target_count
    assert sampler.stop_reason == "cancelled"


async def test_run_loop_of_cancelled_window_exits_when_next_window_starts(valid_state):
    sampler = Sampler(StateBox(valid_state), config={"interval_ms": 5, "duration_ms": 5000})
    sampler.start("S07")
    old = asyncio.create_task(sampler.run())
    await asyncio.sleep(0.02)
    sampler.cancel()
    sampler.start("S08")

    await asyncio.wait_for(old, timeout=1.0)
    assert sampler.is_recording
    assert sampler.subject_id == "S08"
    assert sampler.sample_count == 0
