import cv2
import numpy as np

from ..tp_types import Frame, DetectedMarker

DEFAULT_DICT = "4x4_250"

_DICT_NAMES = [
    f"{n}x{n}_{count}" for n in (4, 5, 6, 7) for count in (50, 100, 250, 1000)
] + ["aruco_original"]


def _dict_code(key: str) -> int:
    return getattr(cv2.aruco, "DICT_" + key.upper())


def normalize_dict_name(name: str) -> str:
    key = (name or "").strip().lower()
    if key.startswith("dict_"):
        key = key[5:]
    return key


def get_dict(name: str):
    """
    Resolve a predefined ArUco dictionary by name ("4x4_250", "DICT_6X6_50", ...).
    Raises ValueError for names outside the predefined set.
    Works on OpenCV 4.7+ (getPredefinedDictionary) and older (Dictionary_get).
    """
    key = normalize_dict_name(name)
    if key not in _DICT_NAMES:
        raise ValueError(f"Unknown ArUco dictionary: {name!r}")
    code = _dict_code(key)

    if hasattr(cv2.aruco, "getPredefinedDictionary"):           # OpenCV >= 4.7
        return cv2.aruco.getPredefinedDictionary(code)
    return cv2.aruco.Dictionary_get(code)                        # Older OpenCV


def _make_params():
    """Create detector parameters across OpenCV versions."""
    if hasattr(cv2.aruco, "DetectorParameters_create"):
        return cv2.aruco.DetectorParameters_create()
    return cv2.aruco.DetectorParameters()


class ArucoDetect:
    """
    Strategy: detect ArUco markers of one fixed dictionary in a frame.
    Returns a list[DetectedMarker]; corners are (4,2) float32 in TL, TR, BR, BL order.
    Ordering between markers follows OpenCV and carries no meaning.
    """
    def __init__(self, dict_name: str = DEFAULT_DICT):
        self.dict_name = normalize_dict_name(dict_name)
        self.dictionary = get_dict(dict_name)
        self.params = _make_params()
        self._detector = None
        # Prefer the newer ArucoDetector API if present
        if hasattr(cv2.aruco, "ArucoDetector"):
            self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params)

    def detect(self, f: Frame) -> list[DetectedMarker]:
        if self._detector is not None:
            corners, ids, _rej = self._detector.detectMarkers(f.image)
        else:
            corners, ids, _rej = cv2.aruco.detectMarkers(
                f.image, self.dictionary, parameters=self.params
            )

        markers: list[DetectedMarker] = []
        if ids is not None and len(ids) > 0:
            for i, mid in enumerate(ids.flatten()):
                pts = np.asarray(corners[i], dtype=np.float32).reshape(4, 2)
                markers.append(DetectedMarker(int(mid), pts))
        return markers
