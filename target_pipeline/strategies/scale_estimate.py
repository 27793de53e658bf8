"""Marker size from pixel footprint and ground clearance.

Pinhole relation with the marker plane assumed parallel to the image plane
at the measured altitude:

    marker_size = (pixel_width / fx) * distance

Only valid when the vehicle is roughly level over the target; tilt is not
corrected.
"""
import logging

import numpy as np

from ..services.altitude import AltitudeSample
from ..tp_types import DetectedMarker, Outcome

logger = logging.getLogger(__name__)


def pixel_width(corners) -> float:
    """Length of the top edge (TL -> TR) in pixels."""
    pts = np.asarray(corners, dtype=np.float64).reshape(4, 2)
    return float(np.linalg.norm(pts[0] - pts[1]))


def estimate_marker_size(
    marker: DetectedMarker, altitude: AltitudeSample, focal_length_x: float
) -> Outcome[float]:
    width = pixel_width(marker.corners)
    with np.errstate(divide="ignore", invalid="ignore"):
        size = (np.float64(width) / np.float64(focal_length_x)) * np.float64(altitude.distance)

    if not np.isfinite(size):
        logger.debug("marker %d: non-finite size (width=%.3f fx=%r)", marker.marker_id, width, focal_length_x)
        return Outcome.skip(f"non-finite marker size (width={width:.3f}px, fx={focal_length_x})")
    if size <= 0:
        logger.debug("marker %d: degenerate size %.6f", marker.marker_id, size)
        return Outcome.skip(f"degenerate marker size {float(size):.6f}")
    return Outcome.ok(float(size))
