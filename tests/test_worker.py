import csv
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from landing_tracker import run
from landing_tracker.altitude_source import ConstantAltitude
from landing_tracker.capture import BaseCapture, SyntheticCapture
from landing_tracker.config import SourceConfig, TrackerConfig
from landing_tracker.output import CsvPoseOutput, MemoryOutput
from landing_tracker.worker import TrackerWorker


def _config(tmp_path, calib_path, **kw):
    cfg = TrackerConfig(
        node_name="worker",
        calibration_path=str(calib_path),
        session_root=str(tmp_path / "sessions"),
        max_frames=3,
        source=SourceConfig(type="synthetic", fps=0, marker_px=100),
    )
    return cfg.apply_overrides(**kw)


def test_worker_synthetic_session(tmp_path, calib_yaml):
    sink = MemoryOutput()
    cfg = _config(tmp_path, calib_yaml)
    worker = TrackerWorker(cfg, outputs=[sink], altitude_source=ConstantAltitude(2.0, rate_hz=50))
    summary = worker.run()

    assert summary.frames_published == 3
    assert summary.frames_dropped == 0
    assert summary.markers_detected == 3
    assert summary.poses_solved == 3
    assert summary.pose_enabled

    session = Path(summary.session_path)
    assert (session / "config.json").exists()
    assert Path(summary.log_path).exists()
    assert len(list((session / "annotated").glob("*.jpg"))) == 3

    with (session / "poses.csv").open(newline="") as fh:
        rows = list(csv.DictReader(fh))
    assert len(rows) == 3
    assert {r["status"] for r in rows} == {"ok"}
    assert {r["marker_id"] for r in rows} == {"0"}
    assert len(sink.results) == 3


def test_worker_without_calibration_still_publishes(tmp_path):
    cfg = _config(tmp_path, tmp_path / "missing.yml", save_annotated=False)
    worker = TrackerWorker(
        cfg,
        capture=SyntheticCapture(0, 320, 240, marker_px=80),
        altitude_source=ConstantAltitude(1.0),
    )
    summary = worker.run()
    assert summary.frames_published == 3
    assert summary.poses_solved == 0
    assert not summary.pose_enabled

    session = Path(summary.session_path)
    with (session / "poses.csv").open(newline="") as fh:
        rows = list(csv.DictReader(fh))
    assert {r["status"] for r in rows} == {"skip"}


def test_worker_stop_ends_run(tmp_path, calib_yaml):
    cfg = _config(tmp_path, calib_yaml, max_frames=None, duration_sec=5.0)
    worker = TrackerWorker(cfg, altitude_source=ConstantAltitude(1.0))
    worker.stop()
    summary = worker.run()
    assert summary.frames_published == 0


def test_run_cli_synthetic(tmp_path, calib_yaml, monkeypatch, capsys):
    argv = [
        "--calib", str(calib_yaml),
        "--out", str(tmp_path / "cli"),
        "--max-frames", "2",
        "--source", "synthetic",
        "--altitude", "2.0",
        "--node-name", "clinode",
    ]
    assert run.main(argv) == 0
    out = capsys.readouterr().out
    assert "SessionSummary" in out
    sessions = list((tmp_path / "cli").glob("clinode_session_*"))
    assert sessions
    assert (sessions[0] / "poses.csv").exists()


class BrokenCapture(BaseCapture):
    def start(self):
        raise RuntimeError("camera unplugged")

    def next_message(self):
        return None

    def stop(self):
        pass


class CoreLoggingCapture(SyntheticCapture):
    def next_message(self):
        logging.getLogger("target_pipeline.capture_check").warning("core message seq=%d", self.seq + 1)
        return super().next_message()


def _file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def test_failed_capture_start_releases_session_resources(tmp_path, calib_yaml):
    cfg = _config(tmp_path, calib_yaml, node_name="broken")
    alt = ConstantAltitude(1.0, rate_hz=50)
    worker = TrackerWorker(cfg, capture=BrokenCapture(), altitude_source=alt)

    with patch.object(CsvPoseOutput, "close", autospec=True, side_effect=CsvPoseOutput.close) as close:
        with pytest.raises(RuntimeError, match="camera unplugged"):
            worker.run()

    assert close.call_count == 1
    assert alt._thread is None
    assert _file_handlers(worker.logger) == []
    assert _file_handlers(logging.getLogger("target_pipeline")) == []


def test_session_log_includes_core_library_records(tmp_path, calib_yaml):
    cfg = _config(tmp_path, calib_yaml, node_name="corelog", save_annotated=False)
    worker = TrackerWorker(
        cfg,
        capture=CoreLoggingCapture(0, 640, 480, marker_px=100),
        altitude_source=ConstantAltitude(2.0),
    )
    summary = worker.run()

    text = Path(summary.log_path).read_text(encoding="utf-8")
    assert "core message seq=1" in text
    assert "[corelog]" in text
    assert _file_handlers(logging.getLogger("target_pipeline")) == []
