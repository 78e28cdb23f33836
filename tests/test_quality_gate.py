import pytest

from analysis.quality_gate import QualityGate
from utils.data_structures import Landmark, MEDIAPIPE_POSE_LAYOUT

from conftest import make_skeleton


@pytest.fixture
def gate():
    return QualityGate()


def _joints(**overrides):
    return MEDIAPIPE_POSE_LAYOUT.extract(make_skeleton(**overrides))


def test_plausible_skeleton_passes(gate):
    report = gate.evaluate(_joints())
    assert report.passed
    assert report.reason == "ok"


def test_no_detection(gate):
    assert gate.evaluate(None).reason == "no_detection"
    assert gate.evaluate({}).reason == "no_detection"


def test_missing_joint(gate):
    joints = _joints()
    del joints["right_knee"]
    assert gate.evaluate(joints).reason == "missing_landmarks"


@pytest.mark.parametrize("visibility", [1.0, 0.2])
def test_coincident_shoulders_rejected(gate, visibility):
    joints = _joints(
        visibility=visibility,
        left_shoulder=Landmark(0.5, 0.3, 0.0, visibility),
        right_shoulder=Landmark(0.5, 0.3, 0.0, visibility),
    )
    report = gate.evaluate(joints)
    assert not report.passed


def test_coincident_shoulders_reason(gate):
    joints = _joints(
        left_shoulder=Landmark(0.5, 0.3, 0.0, 1.0),
        right_shoulder=Landmark(0.5, 0.3, 0.0, 1.0),
    )
    assert gate.evaluate(joints).reason == "degenerate_shoulders"


def test_low_visibility_rejected(gate):
    joints = _joints(left_knee=Landmark(0.3, 0.8, 0.0, 0.1))
    assert gate.evaluate(joints).reason == "low_visibility"


def test_visibility_at_threshold_passes():
    gate = QualityGate({
        "visibility_threshold": 0.5,
        "min_shoulder_width": 0.02,
        "min_hip_width": 0.02,
        "min_torso_length": 0.05,
    })
    assert gate.evaluate(_joints(visibility=0.5)).passed


def test_coincident_hips_rejected(gate):
    joints = _joints(
        left_hip=Landmark(0.5, 0.6, 0.0, 0.9),
        right_hip=Landmark(0.5, 0.6, 0.0, 0.9),
    )
    assert gate.evaluate(joints).reason == "degenerate_hips"


def test_collapsed_torso_rejected(gate):
    joints = _joints(
        left_hip=Landmark(0.40, 0.31, 0.0, 0.9),
        right_hip=Landmark(0.60, 0.31, 0.0, 0.9),
    )
    assert gate.evaluate(joints).reason == "degenerate_torso"


def test_non_finite_coordinates_rejected(gate):
    joints = _joints(left_hip=Landmark(float("nan"), 0.6, 0.0, 0.9))
    assert gate.evaluate(joints).reason == "non_finite"
