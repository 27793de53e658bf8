import cv2
import numpy as np
import pytest

from landing_tracker.capture import render_marker
from target_pipeline.services.calib import CalibrationData
from target_pipeline.tp_types import DetectedMarker, Header, ImageMessage

FX = 500.0
CX = 320.0
CY = 240.0


def camera_matrix(fx=FX, cx=CX, cy=CY):
    return np.array([[fx, 0.0, cx], [0.0, fx, cy], [0.0, 0.0, 1.0]], dtype=np.float64)


def square_corners(cx, cy, side):
    """Upright square in image coordinates, TL, TR, BR, BL."""
    h = side / 2.0
    return np.array(
        [[cx - h, cy - h], [cx + h, cy - h], [cx + h, cy + h], [cx - h, cy + h]],
        dtype=np.float32,
    )


def marker_scene(placements, width=640, height=480, dict_name="4x4_250"):
    """White BGR image with markers pasted at (marker_id, x0, y0, side_px)."""
    canvas = np.full((height, width), 255, dtype=np.uint8)
    for marker_id, x0, y0, side in placements:
        canvas[y0:y0 + side, x0:x0 + side] = render_marker(dict_name, marker_id, side)
    return cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)


def image_msg(image, seq=1, encoding="bgr8"):
    return ImageMessage(Header(seq, 1000.0 + seq), encoding, image)


class FixedDetector:
    """Detector stand-in returning pre-set markers for every frame."""

    def __init__(self, markers):
        self.markers = markers
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        return [DetectedMarker(m.marker_id, m.corners.copy()) for m in self.markers]


@pytest.fixture
def calibration():
    return CalibrationData(camera_matrix(), np.zeros((5, 1)), (640, 480))


@pytest.fixture
def calib_yaml(tmp_path):
    path = tmp_path / "usb_cam_calib.yml"
    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_WRITE)
    fs.write("image_width", 640)
    fs.write("image_height", 480)
    fs.write("camera_matrix", camera_matrix().astype(np.float32))
    fs.write("distortion_coefficients", np.zeros((1, 5), dtype=np.float64))
    fs.release()
    return path


@pytest.fixture
def blank_image():
    return np.full((480, 640, 3), 255, dtype=np.uint8)
