from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from target_pipeline.services.storage import SessionStorage

from .altitude_source import AltitudeSource, build_altitude_source
from .capture import BaseCapture, build_capture
from .config import TrackerConfig
from .logging_utils import add_file_handler, remove_file_handler, setup_logger
from .node import TrackerNode
from .output import AnnotatedImageOutput, CsvPoseOutput, OutputSink


@dataclass
class SessionSummary:
    session_path: str
    frames_published: int
    frames_dropped: int
    markers_detected: int
    poses_solved: int
    log_path: str
    avg_fps: float
    pose_enabled: bool


class TrackerWorker:
    def __init__(
        self,
        config: TrackerConfig,
        logger=None,
        outputs: Optional[list[OutputSink]] = None,
        capture: Optional[BaseCapture] = None,
        altitude_source: Optional[AltitudeSource] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.node_name)
        self.extra_outputs = outputs or []
        self.capture = capture
        self.altitude_source = altitude_source
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def _build_outputs(self, storage: SessionStorage) -> list[OutputSink]:
        outputs: list[OutputSink] = []
        if self.config.save_annotated:
            outputs.append(AnnotatedImageOutput(storage))
        if self.config.write_poses:
            outputs.append(CsvPoseOutput())
        return outputs + list(self.extra_outputs)

    def _done(self, node: TrackerNode, cap: BaseCapture, t0: float) -> bool:
        if self._stop_event.is_set():
            return True
        if self.config.duration_sec and (time.time() - t0) >= self.config.duration_sec:
            return True
        handled = node.frames_published + node.frames_dropped
        if self.config.max_frames and handled >= self.config.max_frames:
            return True
        return cap.exhausted

    def run(self) -> SessionSummary:
        storage = SessionStorage(self.config.session_root, name=f"{self.config.node_name}_session")
        session_path = storage.begin()
        storage.write_manifest(self.config.as_dict())

        log_file = str(Path(storage.logs_dir) / "session.log")
        file_handler = add_file_handler(self.logger, self.config.node_name, log_file)

        outputs: list[OutputSink] = []
        cap: Optional[BaseCapture] = None
        alt_src: Optional[AltitudeSource] = None
        node: Optional[TrackerNode] = None
        t0 = time.time()
        misses = 0
        completed = False

        try:
            for out in self._build_outputs(storage):
                out.open(Path(storage.session_dir))
                outputs.append(out)

            node = TrackerNode(self.config, outputs=outputs, logger=self.logger)
            cap = self.capture or build_capture(self.config.source, self.config.aruco_dict)
            alt_src = self.altitude_source or build_altitude_source(self.config.altitude)

            self.logger.info("session started: %s", session_path)

            alt_src.start(node.on_distance)
            cap.start()
            t0 = time.time()

            while not self._done(node, cap, t0):
                msg = cap.next_message()
                if msg is None:
                    misses += 1
                    continue
                node.on_image(msg)
            completed = True
        finally:
            if cap is not None:
                try:
                    cap.stop()
                except Exception as e:
                    self.logger.warning("capture stop failed: %s", e)
            if alt_src is not None:
                alt_src.stop()
            for out in outputs:
                try:
                    out.close()
                except Exception as e:
                    self.logger.warning("output close failed: %s", e)
            if not completed:
                remove_file_handler(self.logger, file_handler)

        elapsed = max(1e-6, time.time() - t0)
        avg = node.frames_published / elapsed
        self.logger.info(
            "summary frames=%d dropped=%d markers=%d poses=%d avg_fps=%.2f misses=%d",
            node.frames_published,
            node.frames_dropped,
            node.markers_detected,
            node.poses_solved,
            avg,
            misses,
        )
        remove_file_handler(self.logger, file_handler)

        return SessionSummary(
            str(session_path),
            node.frames_published,
            node.frames_dropped,
            node.markers_detected,
            node.poses_solved,
            log_file,
            avg,
            node.pose_enabled,
        )
