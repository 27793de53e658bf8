from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from ..errors import CalibrationIncomplete, CalibrationUnavailable

# Keys tried in order; the first non-empty node wins.
MATRIX_KEYS = ("camera_matrix",)
DIST_KEYS = ("distortion_coefficients", "dist_coeffs")


@dataclass(frozen=True)
class CalibrationData:
    camera_matrix: np.ndarray  # (3,3) float64
    dist_coeffs: np.ndarray  # (N,1) float64
    image_size: Optional[Tuple[int, int]] = None

    @property
    def fx(self) -> float:
        return float(self.camera_matrix[0, 0])


def _read_node(fs, keys):
    for key in keys:
        node = fs.getNode(key)
        if node is None or node.empty():
            continue
        try:
            mat = node.mat()
        except cv2.error as exc:
            raise CalibrationIncomplete(f"{key} is not a matrix") from exc
        if mat is not None and mat.size > 0:
            return mat
    return None


def _read_size(fs) -> Optional[Tuple[int, int]]:
    w_node = fs.getNode("image_width")
    h_node = fs.getNode("image_height")
    if w_node is None or h_node is None or w_node.empty() or h_node.empty():
        return None
    return int(w_node.real()), int(h_node.real())


def _load_filestorage(p: Path):
    try:
        fs = cv2.FileStorage(str(p), cv2.FILE_STORAGE_READ)
    # newer OpenCV wraps parse errors in SystemError
    except (cv2.error, SystemError) as exc:
        raise CalibrationUnavailable(f"Failed to open camera calibration file: {p}") from exc
    if not fs.isOpened():
        raise CalibrationUnavailable(f"Failed to open camera calibration file: {p}")
    try:
        K = _read_node(fs, MATRIX_KEYS)
        dist = _read_node(fs, DIST_KEYS)
        size = _read_size(fs)
    except cv2.error as exc:
        raise CalibrationIncomplete(f"Malformed camera calibration file: {p}") from exc
    finally:
        fs.release()
    return K, dist, size


def _load_npz(p: Path):
    try:
        data = np.load(str(p))
    except (OSError, ValueError) as exc:
        raise CalibrationUnavailable(f"Failed to open camera calibration file: {p}") from exc
    if not isinstance(data, np.lib.npyio.NpzFile):
        raise CalibrationUnavailable(f"Not an .npz archive: {p}")
    with data:
        K = data["camera_matrix"] if "camera_matrix" in data.files else None
        dist = None
        for key in DIST_KEYS:
            if key in data.files:
                dist = data[key]
                break
        size = None
        if "image_width" in data.files and "image_height" in data.files:
            size = (int(data["image_width"]), int(data["image_height"]))
    return K, dist, size


def load_calibration(path: str | Path) -> CalibrationData:
    """Load intrinsics and distortion from an OpenCV YAML/XML file or a .npz archive.

    Raises CalibrationUnavailable when the source cannot be opened and
    CalibrationIncomplete when either the matrix or the distortion terms
    are missing. The matrix is always returned as float64.
    """
    p = Path(path)
    if not p.is_file():
        raise CalibrationUnavailable(f"Calibration file not found: {p}")

    if p.suffix.lower() == ".npz":
        K, dist, size = _load_npz(p)
    else:
        K, dist, size = _load_filestorage(p)

    if K is None or np.size(K) == 0 or dist is None or np.size(dist) == 0:
        raise CalibrationIncomplete(f"Failed to load camera parameters correctly from {p}")

    K = np.asarray(K, dtype=np.float64)
    if K.shape != (3, 3):
        raise CalibrationIncomplete(f"camera_matrix must be 3x3, got {K.shape}")
    dist = np.asarray(dist, dtype=np.float64).reshape(-1, 1)
    return CalibrationData(K, dist, size)
