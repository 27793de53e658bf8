from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from target_pipeline.services.csv_writer import CsvWriter
from target_pipeline.services.storage import SessionStorage
from target_pipeline.tp_types import FrameResult


class OutputSink(ABC):
    @abstractmethod
    def open(self, session_dir: Path) -> None: ...

    @abstractmethod
    def publish(self, result: FrameResult) -> None: ...

    @abstractmethod
    def close(self) -> None: ...


class AnnotatedImageOutput(OutputSink):
    """Stands in for the processed-image topic: writes every output frame to disk."""

    def __init__(self, storage: SessionStorage):
        self.storage = storage

    def open(self, session_dir: Path) -> None:
        return None

    def publish(self, result: FrameResult) -> None:
        self.storage.save_annotated(result.header.seq, result.image)

    def close(self) -> None:
        return None


class CsvPoseOutput(OutputSink):
    """One row per detected marker, solved or not."""

    def __init__(self, filename: str = "poses.csv"):
        self.filename = filename
        self.path: Optional[Path] = None
        self._writer: Optional[CsvWriter] = None

    def open(self, session_dir: Path) -> None:
        self.path = session_dir / self.filename
        self._writer = CsvWriter(str(self.path))
        self._writer.open()

    def publish(self, result: FrameResult) -> None:
        if self._writer is None:
            return
        for m in result.markers:
            self._writer.append(
                result.header.stamp,
                result.header.seq,
                m.marker_id,
                m.marker_size,
                result.altitude,
                m.pose.rvec if m.pose is not None else None,
                m.pose.tvec if m.pose is not None else None,
                m.status.value,
            )

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None


class MemoryOutput(OutputSink):
    def __init__(self):
        self.results: list[FrameResult] = []

    def open(self, session_dir: Path) -> None:
        return None

    def publish(self, result: FrameResult) -> None:
        self.results.append(result)

    def close(self) -> None:
        return None

