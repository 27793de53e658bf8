import logging
from typing import Optional

import cv2
import numpy as np

from ..services.calib import CalibrationData
from ..tp_types import Header, MarkerResult

logger = logging.getLogger(__name__)


class MarkerAnnotator:
    """Draws marker outlines, IDs and solved pose axes onto a BGR8 image in place."""

    def __init__(self, draw_header: bool = True):
        self.draw_header = draw_header

    def draw(
        self,
        image: np.ndarray,
        header: Header,
        markers: list[MarkerResult],
        calibration: Optional[CalibrationData],
        altitude: float,
    ) -> np.ndarray:
        if not markers:
            return image

        if self.draw_header:
            h, w = image.shape[:2]
            txt = f"#{header.seq} alt={altitude:.2f}m {w}x{h}"
            cv2.putText(
                image,
                txt,
                (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.8,
                (255, 255, 255),
                2,
                cv2.LINE_AA,
            )

        ids = np.array([m.marker_id for m in markers], dtype=np.int32).reshape(-1, 1)
        corners = [np.asarray(m.corners, dtype=np.float32).reshape(1, 4, 2) for m in markers]
        cv2.aruco.drawDetectedMarkers(image, corners, ids)

        if calibration is None:
            return image
        for m in markers:
            if m.pose is None:
                continue
            try:
                cv2.drawFrameAxes(
                    image,
                    calibration.camera_matrix,
                    calibration.dist_coeffs,
                    m.pose.rvec,
                    m.pose.tvec,
                    m.marker_size,
                )
            except cv2.error as exc:
                logger.warning("axis overlay failed for marker %d: %s", m.marker_id, exc)
        return image
