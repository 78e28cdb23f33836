import json

import pandas as pd
import pytest

from analysis.metrics_exporter import RecordExporter
from core.pipeline import PosePipeline
from core.sampler import Sampler
from utils.data_structures import PoseState
from utils.exceptions import ExportError

from conftest import make_skeleton


def _recording(states):
    """Record one sample per given pose state"""
    states = list(states)
    current = {"state": states[0]}
    sampler = Sampler(lambda: current["state"],
                      config={"interval_ms": 10, "duration_ms": 10 * len(states)})
    sampler.start("P01", now_ms=1000.0)
    for state in states:
        current["state"] = state
        sampler.tick()
    return sampler.records


@pytest.fixture
def records():
    pipeline = PosePipeline()
    valid = pipeline.process(123.456789, make_skeleton(left_deg=33.333333, right_deg=41.111111))
    invalid = PoseState.invalid(140.0, "low_visibility")
    return _recording([valid, invalid, valid])


@pytest.fixture
def exporter():
    return RecordExporter()


def test_record_dict_precision(exporter, records):
    data = exporter.record_to_dict(records[0])
    assert data["subjectId"] == "P01"
    assert data["sampleIndex"] == 0
    assert data["timeOffsetMs"] == 0.0
    assert data["timestamp"] == 1000.0
    assert data["poseTimestamp"] == 123.5
    assert data["valid"] is True
    assert data["quality"] == "ok"
    assert data["leftAngle"] == 33.33
    assert data["rightAngle"] == 41.11
    assert data["avgAngle"] == 37.22
    assert data["midline"]["S_mid"] == {"x": 0.5, "y": 0.3, "z": -0.1}
    assert data["midline"]["H_mid"] == {"x": 0.5, "y": 0.6, "z": 0.0}
    knee = data["leftKnee"]
    assert set(knee) == {"x", "y", "z", "v"}
    assert knee["x"] == round(knee["x"], 5)
    assert knee["v"] == 0.9


def test_invalid_record_has_nulls(exporter, records):
    data = exporter.record_to_dict(records[1])
    assert data["valid"] is False
    assert data["quality"] == "low_visibility"
    assert data["sampleIndex"] == 1
    assert data["timeOffsetMs"] == 10.0
    for key in ("avgAngle", "leftAngle", "rightAngle", "midline",
                "leftShoulder", "rightShoulder", "leftHip", "rightHip", "leftKnee", "rightKnee"):
        assert data[key] is None


def test_json_export_is_a_record_array(exporter, records, tmp_path):
    path = exporter.export_to_json(records, str(tmp_path / "out" / "export.json"))
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert isinstance(data, list)
    assert len(data) == 3
    assert [item["sampleIndex"] for item in data] == [0, 1, 2]


def test_load_json_restores_records(exporter, records, tmp_path):
    path = exporter.export_to_json(records, str(tmp_path / "export.json"))
    loaded = exporter.load_json(path)
    assert len(loaded) == len(records)
    for written, restored in zip(records, loaded):
        assert restored.sample_index == written.sample_index
        assert restored.valid == written.valid
        assert restored.quality == written.quality
        if written.valid:
            assert restored.avg_angle == pytest.approx(written.avg_angle, abs=0.005)
            assert restored.landmarks["right_hip"].x == pytest.approx(
                written.landmarks["right_hip"].x, abs=5e-6)
            assert restored.midline.hip_mid == pytest.approx(written.midline.hip_mid, abs=5e-6)
        else:
            assert restored.avg_angle is None
            assert restored.landmarks is None


def test_load_json_rejects_non_list(exporter, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"records": []}), encoding="utf-8")
    with pytest.raises(ExportError):
        exporter.load_json(str(path))


def test_load_json_missing_file(exporter, tmp_path):
    with pytest.raises(ExportError):
        exporter.load_json(str(tmp_path / "missing.json"))


def test_empty_export_rejected(exporter, tmp_path):
    with pytest.raises(ExportError):
        exporter.export_to_json([], str(tmp_path / "empty.json"))
    with pytest.raises(ExportError):
        exporter.export_to_csv([], str(tmp_path / "empty.csv"))


def test_csv_export_flattens_landmarks(exporter, records, tmp_path):
    path = exporter.export_to_csv(records, str(tmp_path / "export.csv"))
    df = pd.read_csv(path)
    assert len(df) == 3
    for column in ("subjectId", "avgAngle", "leftHip_x", "rightKnee_v", "midline_S_mid_y"):
        assert column in df.columns
    assert df["avgAngle"].isna().tolist() == [False, True, False]


def test_csv_export_has_only_leaf_columns(exporter, records, tmp_path):
    path = exporter.export_to_csv(records, str(tmp_path / "mixed.csv"))
    df = pd.read_csv(path)
    for bare in ("midline", "leftShoulder", "rightShoulder", "leftHip", "rightHip", "leftKnee", "rightKnee"):
        assert bare not in df.columns
    assert df["leftHip_x"].isna().tolist() == [False, True, False]


def test_csv_export_of_invalid_only_recording_keeps_columns(exporter, tmp_path):
    records = _recording([PoseState.invalid(10.0, "no_detection")] * 2)
    path = exporter.export_to_csv(records, str(tmp_path / "invalid.csv"))
    df = pd.read_csv(path)
    assert "rightKnee_v" in df.columns
    assert "midline_H_mid_z" in df.columns
    assert "rightKnee" not in df.columns
    assert df["rightKnee_v"].isna().all()
