from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional


@dataclass
class SourceConfig:
    """Where image frames come from."""

    type: str = "synthetic"  # "synthetic", "usb", "video", "images"
    device: int | str = 0
    path: Optional[str] = None  # video file or image directory
    fps: int = 15
    width: int = 640
    height: int = 480
    # Synthetic source only
    marker_id: int = 0
    marker_px: int = 100

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AltitudeConfig:
    """Where ground-clearance samples come from."""

    type: str = "constant"  # "constant", "csv"
    value: float = 1.0
    path: Optional[str] = None
    rate_hz: float = 10.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TrackerConfig:
    node_name: str = "aruco_tracker_node"
    calibration_path: str = "usb_cam_calib.yml"
    aruco_dict: str = "4x4_250"
    pnp_method: str = "iterative"
    default_altitude_m: float = 1.0
    image_topic: str = "/image_raw"
    distance_topic: str = "/fmu/out/distance_sensor"
    output_topic: str = "/image_proc"
    session_root: str = "data/sessions"
    duration_sec: Optional[float] = None
    max_frames: Optional[int] = None
    save_annotated: bool = True
    write_poses: bool = True
    draw_header: bool = True
    source: SourceConfig = field(default_factory=SourceConfig)
    altitude: AltitudeConfig = field(default_factory=AltitudeConfig)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "TrackerConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def _optional(value: Any, cast):
    return None if value is None else cast(value)


def _load_source(raw: dict[str, Any]) -> SourceConfig:
    src = SourceConfig()
    src.type = str(raw.get("type", src.type)).lower()
    device = raw.get("device", src.device)
    if isinstance(device, str) and device.isdigit():
        device = int(device)
    src.device = device
    src.path = _optional(raw.get("path", src.path), str)
    src.fps = int(raw.get("fps", src.fps))
    src.width = int(raw.get("width", src.width))
    src.height = int(raw.get("height", src.height))
    src.marker_id = int(raw.get("marker_id", src.marker_id))
    src.marker_px = int(raw.get("marker_px", src.marker_px))
    if src.type not in {"synthetic", "usb", "video", "images"}:
        raise ValueError(f"Unknown source type: {src.type}")
    if src.type == "synthetic" and not 0 < src.marker_px <= min(src.width, src.height):
        raise ValueError("source.marker_px must be positive and fit inside the frame")
    return src


def _load_altitude(raw: dict[str, Any]) -> AltitudeConfig:
    alt = AltitudeConfig()
    alt.type = str(raw.get("type", alt.type)).lower()
    alt.value = float(raw.get("value", alt.value))
    alt.path = _optional(raw.get("path", alt.path), str)
    alt.rate_hz = float(raw.get("rate_hz", alt.rate_hz))
    if alt.type not in {"constant", "csv"}:
        raise ValueError(f"Unknown altitude source type: {alt.type}")
    if alt.type == "csv" and not alt.path:
        raise ValueError("altitude.path is required for a csv altitude source")
    if alt.type == "constant" and alt.rate_hz <= 0:
        raise ValueError("altitude.rate_hz must be positive")
    return alt


def load_config(path: str | Path) -> TrackerConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = TrackerConfig()
    cfg.node_name = str(raw.get("node_name", cfg.node_name))
    cfg.calibration_path = str(raw.get("calibration_path", cfg.calibration_path))
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.pnp_method = str(raw.get("pnp_method", cfg.pnp_method))
    cfg.default_altitude_m = float(raw.get("default_altitude_m", cfg.default_altitude_m))
    if cfg.default_altitude_m <= 0:
        raise ValueError("default_altitude_m must be positive")
    cfg.image_topic = str(raw.get("image_topic", cfg.image_topic))
    cfg.distance_topic = str(raw.get("distance_topic", cfg.distance_topic))
    cfg.output_topic = str(raw.get("output_topic", cfg.output_topic))
    cfg.session_root = str(raw.get("session_root", cfg.session_root))
    cfg.duration_sec = _optional(raw.get("duration_sec", cfg.duration_sec), float)
    cfg.max_frames = _optional(raw.get("max_frames", cfg.max_frames), int)
    cfg.save_annotated = bool(raw.get("save_annotated", cfg.save_annotated))
    cfg.write_poses = bool(raw.get("write_poses", cfg.write_poses))
    cfg.draw_header = bool(raw.get("draw_header", cfg.draw_header))

    src_raw = raw.get("source")
    if src_raw is not None:
        if not isinstance(src_raw, dict):
            raise ValueError("source must be a mapping")
        cfg.source = _load_source(src_raw)

    alt_raw = raw.get("altitude")
    if alt_raw is not None:
        if not isinstance(alt_raw, dict):
            raise ValueError("altitude must be a mapping")
        cfg.altitude = _load_altitude(alt_raw)

    return cfg
