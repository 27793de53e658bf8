import json
from pathlib import Path

import pytest

from landing_tracker.config import TrackerConfig, load_config


def test_load_config_json(tmp_path: Path):
    cfg_path = tmp_path / "tracker.json"
    cfg_path.write_text(
        json.dumps(
            {
                "node_name": "downcam",
                "calibration_path": "calib/usb_cam_calib.yml",
                "aruco_dict": "DICT_4X4_250",
                "default_altitude_m": 1.5,
                "max_frames": 10,
                "source": {"type": "usb", "device": "2", "fps": 30},
                "altitude": {"type": "constant", "value": 3.0},
            }
        ),
        encoding="utf-8",
    )

    cfg = load_config(cfg_path)
    assert cfg.node_name == "downcam"
    assert cfg.default_altitude_m == 1.5
    assert cfg.max_frames == 10
    assert cfg.source.type == "usb"
    assert cfg.source.device == 2
    assert cfg.source.fps == 30
    assert cfg.altitude.value == 3.0

    cfg.apply_overrides(node_name="other", max_frames=None)
    assert cfg.node_name == "other"
    assert cfg.max_frames == 10


def test_load_config_yaml(tmp_path: Path):
    cfg_path = tmp_path / "tracker.yml"
    cfg_path.write_text(
        "node_name: yamlnode\n"
        "pnp_method: ippe_square\n"
        "altitude:\n"
        "  type: csv\n"
        "  path: alt.csv\n",
        encoding="utf-8",
    )
    cfg = load_config(cfg_path)
    assert cfg.node_name == "yamlnode"
    assert cfg.pnp_method == "ippe_square"
    assert cfg.altitude.type == "csv"
    assert cfg.altitude.path == "alt.csv"
    assert cfg.source.type == "synthetic"


def test_config_defaults():
    cfg = TrackerConfig()
    assert cfg.aruco_dict == "4x4_250"
    assert cfg.default_altitude_m > 0
    assert cfg.image_topic == "/image_raw"
    assert cfg.output_topic == "/image_proc"


@pytest.mark.parametrize(
    "raw",
    [
        {"source": {"type": "carrier_pigeon"}},
        {"altitude": {"type": "csv"}},
        {"default_altitude_m": 0},
        {"source": "usb"},
        {"source": {"type": "synthetic", "width": 320, "height": 240, "marker_px": 300}},
        {"source": {"marker_px": 0}},
        {"altitude": {"type": "constant", "rate_hz": 0}},
    ],
)
def test_invalid_config_rejected(tmp_path, raw):
    cfg_path = tmp_path / "bad.json"
    cfg_path.write_text(json.dumps(raw), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(cfg_path)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.json")
