from __future__ import annotations

import logging
import threading
from typing import Optional

from target_pipeline.errors import CalibrationError
from target_pipeline.factory import StrategyFactory
from target_pipeline.pipeline import MarkerPipeline
from target_pipeline.services.altitude import AltitudeSample, AltitudeState
from target_pipeline.services.calib import CalibrationData, load_calibration
from target_pipeline.tp_types import FrameResult, ImageMessage

from .config import TrackerConfig
from .logging_utils import setup_logger
from .output import OutputSink


class TrackerNode:
    """Image and distance-sensor callbacks wired to the marker pipeline.

    Each callback is serialized against itself; the two may run concurrently.
    """

    def __init__(
        self,
        config: TrackerConfig,
        outputs: Optional[list[OutputSink]] = None,
        logger: Optional[logging.Logger] = None,
        calibration: Optional[CalibrationData] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.node_name)
        self.outputs = outputs if outputs is not None else []
        self.altitude = AltitudeState(config.default_altitude_m)

        self.calibration = calibration
        if self.calibration is None:
            self.calibration = self._load_calibration()

        det, loc, ann = StrategyFactory.from_config(config, self.calibration)
        self.pipeline = MarkerPipeline(
            det, loc, ann, self.altitude, self.calibration, log=self.logger
        )

        self._image_lock = threading.Lock()
        self._distance_lock = threading.Lock()
        self.frames_published = 0
        self.frames_dropped = 0
        self.markers_detected = 0
        self.poses_solved = 0

        self.logger.info(
            "node ready: dict=%s image=%s distance=%s output=%s",
            config.aruco_dict,
            config.image_topic,
            config.distance_topic,
            config.output_topic,
        )

    def _load_calibration(self) -> Optional[CalibrationData]:
        try:
            calib = load_calibration(self.config.calibration_path)
        except CalibrationError as exc:
            self.logger.error("%s; running in detect-only mode", exc)
            return None
        self.logger.info("calibration loaded: fx=%.2f", calib.fx)
        return calib

    @property
    def pose_enabled(self) -> bool:
        return self.pipeline.pose_enabled

    def on_distance(self, sample: AltitudeSample) -> None:
        with self._distance_lock:
            first = not self.altitude.has_measurement
            if self.altitude.update(sample) and first:
                self.logger.info("first altitude sample: %.3f m", sample.distance)

    def on_image(self, msg: ImageMessage) -> Optional[FrameResult]:
        with self._image_lock:
            outcome = self.pipeline.process(msg)
            if not outcome.is_ok:
                self.frames_dropped += 1
                return None

            result = outcome.value
            self.markers_detected += len(result.markers)
            self.poses_solved += len(result.solved)
            for out in self.outputs:
                try:
                    out.publish(result)
                except Exception as e:
                    self.logger.warning("publish to %s failed: %s", type(out).__name__, e)
            self.frames_published += 1
            return result
