"""Background feeds for the distance-sensor stream."""
from __future__ import annotations

import csv
import logging
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from target_pipeline.services.altitude import AltitudeSample

logger = logging.getLogger(__name__)

DistanceCallback = Callable[[AltitudeSample], None]


class AltitudeSource(ABC):
    """Runs on its own thread and pushes samples into a callback."""

    def __init__(self, rate_hz: float = 10.0):
        self.period = 1.0 / rate_hz if rate_hz > 0 else 0.0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @abstractmethod
    def samples(self):
        """Yield (delay_sec, AltitudeSample) pairs."""

    def _run(self, callback: DistanceCallback) -> None:
        for delay, sample in self.samples():
            if self._stop_event.wait(delay):
                return
            callback(sample)
        logger.debug("altitude source exhausted")

    def start(self, callback: DistanceCallback) -> None:
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, args=(callback,), name="altitude-source", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


class ConstantAltitude(AltitudeSource):
    def __init__(self, value: float, rate_hz: float = 10.0):
        if rate_hz <= 0:
            raise ValueError("constant altitude rate_hz must be positive")
        super().__init__(rate_hz)
        self.value = value

    def samples(self):
        first = True
        while not self._stop_event.is_set():
            yield (0.0 if first else self.period), AltitudeSample(self.value, time.time())
            first = False


class CsvAltitudeReplay(AltitudeSource):
    """Replays a `t,distance` CSV, honouring the recorded spacing between rows."""

    def __init__(self, path: str | Path):
        super().__init__(0.0)
        self.path = Path(path)
        self.rows = self._read(self.path)

    @staticmethod
    def _read(path: Path) -> list[tuple[float, float]]:
        if not path.exists():
            raise FileNotFoundError(f"Altitude log not found: {path}")
        rows = []
        with path.open("r", newline="", encoding="utf-8") as fh:
            for rec in csv.DictReader(fh):
                rows.append((float(rec["t"]), float(rec["distance"])))
        return rows

    def samples(self):
        prev_t = None
        for t, distance in self.rows:
            delay = 0.0 if prev_t is None else max(0.0, t - prev_t)
            prev_t = t
            yield delay, AltitudeSample(distance, t)


def build_altitude_source(cfg) -> AltitudeSource:
    if cfg.type == "csv":
        return CsvAltitudeReplay(cfg.path)
    return ConstantAltitude(cfg.value, cfg.rate_hz)
