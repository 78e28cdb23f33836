import json
import sys

import pytest

import analyze_video
from core.session import TrackingSession
from utils.exceptions import DetectorInitError

from conftest import FakeDetector, FakeSource


@pytest.fixture
def fake_session(monkeypatch):
    def create(backend=None, **kwargs):
        return TrackingSession(FakeDetector(), **kwargs)

    def open_video(self, video_path):
        source = FakeSource([i * 1000.0 / 30 for i in range(90)])
        self.attach(source)
        return source

    monkeypatch.setattr(TrackingSession, "create", staticmethod(create))
    monkeypatch.setattr(TrackingSession, "open_video", open_video)


async def test_analyze_writes_json_and_csv(fake_session, tmp_path):
    json_path = await analyze_video.analyze(
        "clip.mp4", "P01", 0.0,
        output=str(tmp_path / "out.json"), csv_output=str(tmp_path / "out.csv"),
    )
    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)
    assert len(data) == 200
    assert (tmp_path / "out.csv").exists()


def test_main_exit_codes(monkeypatch, fake_session, tmp_path):
    monkeypatch.setattr(sys, "argv", ["analyze_video", "clip.mp4", "-s", "P01", "-o", str(tmp_path / "a.json")])
    assert analyze_video.main() == 0

    monkeypatch.setattr(sys, "argv", ["analyze_video", "clip.mp4", "-s", "bad code"])
    assert analyze_video.main() == 1

    def fail(backend=None, **kwargs):
        raise DetectorInitError("no model")

    monkeypatch.setattr(TrackingSession, "create", staticmethod(fail))
    monkeypatch.setattr(sys, "argv", ["analyze_video", "clip.mp4", "-s", "P01"])
    assert analyze_video.main() == 2
