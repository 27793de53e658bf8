"""Per-frame orchestration.

    Decode -> Detect -> (per marker: EstimateScale -> SolvePose) -> Annotate

Every stage returns an Outcome. A SKIP on one marker is recorded on that
marker's result and the loop moves on; only a decode failure drops the
frame. Nothing survives from one frame to the next.
"""
from __future__ import annotations

import logging
from typing import Optional

from .errors import DecodeFailure
from .services.altitude import AltitudeSample, AltitudeState
from .services.calib import CalibrationData
from .strategies.annotate import MarkerAnnotator
from .strategies.decode import decode_image
from .strategies.detect_aruco import ArucoDetect
from .strategies.localize_pnp import PnPLocalize
from .strategies.scale_estimate import estimate_marker_size
from .tp_types import (
    DetectedMarker,
    Frame,
    FrameResult,
    ImageMessage,
    MarkerResult,
    Outcome,
    Status,
)

logger = logging.getLogger(__name__)


def decode_stage(msg: ImageMessage) -> Outcome[Frame]:
    try:
        return Outcome.ok(decode_image(msg))
    except DecodeFailure as exc:
        return Outcome.drop(f"decode failed: {exc}", exc)


class MarkerPipeline:
    def __init__(
        self,
        detector: ArucoDetect,
        localizer: Optional[PnPLocalize],
        annotator: MarkerAnnotator,
        altitude: AltitudeState,
        calibration: Optional[CalibrationData] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.detector = detector
        self.localizer = localizer
        self.annotator = annotator
        self.altitude = altitude
        self.calibration = calibration
        self.log = log or logger

    @property
    def pose_enabled(self) -> bool:
        return self.calibration is not None and self.localizer is not None

    def _process_marker(self, marker: DetectedMarker, altitude: AltitudeSample) -> MarkerResult:
        result = MarkerResult(marker.marker_id, marker.corners)
        if not self.pose_enabled:
            result.status = Status.SKIP
            result.reason = "no calibration"
            return result

        size = estimate_marker_size(marker, altitude, self.calibration.fx)
        if not size.is_ok:
            result.status, result.reason = size.status, size.reason
            return result
        result.marker_size = size.value
        self.log.info("marker %d size %.4f m", marker.marker_id, size.value)

        pose = self.localizer.solve(marker, size.value)
        if not pose.is_ok:
            result.status, result.reason = pose.status, pose.reason
            return result
        result.pose = pose.value
        return result

    def process(self, msg: ImageMessage) -> Outcome[FrameResult]:
        decoded = decode_stage(msg)
        if not decoded.is_ok:
            self.log.warning("frame %d dropped: %s", msg.header.seq, decoded.reason)
            return Outcome.drop(decoded.reason, decoded.error)
        frame = decoded.value

        markers = self.detector.detect(frame)
        altitude = self.altitude.current()

        results = [self._process_marker(m, altitude) for m in markers]

        image = self.annotator.draw(
            frame.image, frame.header, results, self.calibration, altitude.distance
        )
        out = FrameResult(frame.header, image, altitude.distance, results)
        if results:
            self.log.info(
                "frame=%d markers=%d solved=%d alt=%.3f",
                frame.header.seq,
                len(results),
                len(out.solved),
                altitude.distance,
            )
        return Outcome.ok(out)
