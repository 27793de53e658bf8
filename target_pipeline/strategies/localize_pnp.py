import logging

import cv2, numpy as np

from ..errors import PoseSolveFailure
from ..services.calib import CalibrationData
from ..tp_types import DetectedMarker, EstimatedPose, Outcome

logger = logging.getLogger(__name__)

PNP_METHODS = {
    "iterative": cv2.SOLVEPNP_ITERATIVE,
    "ippe": cv2.SOLVEPNP_IPPE,
    "ippe_square": cv2.SOLVEPNP_IPPE_SQUARE,
    "sqpnp": cv2.SOLVEPNP_SQPNP,
    "epnp": cv2.SOLVEPNP_EPNP,
}


def marker_object_points(marker_size: float) -> np.ndarray:
    """Square of side marker_size centred on the origin, z=0, in detector corner order."""
    h = marker_size / 2.0
    return np.array(
        [
            [-h,  h, 0.0],  # top left
            [ h,  h, 0.0],  # top right
            [ h, -h, 0.0],  # bottom right
            [-h, -h, 0.0],  # bottom left
        ],
        dtype=np.float32,
    )


class PnPLocalize:
    def __init__(self, calibration: CalibrationData, method: str = "iterative"):
        key = (method or "").strip().lower()
        if key not in PNP_METHODS:
            raise ValueError(f"Unknown PnP method: {method!r}")
        self.calibration = calibration
        self.method = key
        self._flag = PNP_METHODS[key]

    @property
    def K(self) -> np.ndarray:
        return self.calibration.camera_matrix

    @property
    def dist(self) -> np.ndarray:
        return self.calibration.dist_coeffs

    def _solve(self, marker: DetectedMarker, marker_size: float) -> EstimatedPose:
        obj = marker_object_points(marker_size)
        img = np.asarray(marker.corners, dtype=np.float32).reshape(4, 1, 2)
        try:
            ok, rvec, tvec = cv2.solvePnP(obj, img, self.K, self.dist, flags=self._flag)
        except cv2.error as exc:
            raise PoseSolveFailure(f"solvePnP error for marker {marker.marker_id}: {exc}") from exc
        if not ok:
            raise PoseSolveFailure(f"solvePnP did not converge for marker {marker.marker_id}")
        rvec = np.asarray(rvec, dtype=np.float64).reshape(3, 1)
        tvec = np.asarray(tvec, dtype=np.float64).reshape(3, 1)
        if not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
            raise PoseSolveFailure(f"non-finite pose for marker {marker.marker_id}")
        return EstimatedPose(rvec, tvec)

    def solve(self, marker: DetectedMarker, marker_size: float) -> Outcome[EstimatedPose]:
        try:
            return Outcome.ok(self._solve(marker, marker_size))
        except PoseSolveFailure as exc:
            logger.warning("%s", exc)
            return Outcome.skip(str(exc), exc)
