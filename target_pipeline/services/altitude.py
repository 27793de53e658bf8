from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_ALTITUDE_M = 1.0


@dataclass(frozen=True)
class AltitudeSample:
    distance: float
    stamp: Optional[float] = None
    # Sensor range, when the message carries one (PX4 distance_sensor does).
    min_distance: Optional[float] = None
    max_distance: Optional[float] = None


class AltitudeState:
    """Latest ground-clearance reading, shared between the sensor and image callbacks.

    The writer never waits on the reader beyond a scalar swap; the image path
    reads whatever value is current and tolerates it being slightly stale.
    """

    def __init__(self, default: float = DEFAULT_ALTITUDE_M):
        if not (math.isfinite(default) and default > 0):
            raise ValueError("default altitude must be a positive finite number")
        self._lock = threading.Lock()
        self._sample = AltitudeSample(float(default))
        self._received = False

    @property
    def has_measurement(self) -> bool:
        return self._received

    def update(self, sample: AltitudeSample) -> bool:
        d = sample.distance
        if d is None or not math.isfinite(d) or d < 0:
            logger.debug("rejected altitude sample %r", d)
            return False
        if sample.min_distance is not None and d < sample.min_distance:
            logger.debug("altitude %.3f below sensor minimum %.3f", d, sample.min_distance)
            return False
        if sample.max_distance is not None and d > sample.max_distance:
            logger.debug("altitude %.3f above sensor maximum %.3f", d, sample.max_distance)
            return False
        with self._lock:
            self._sample = sample
            self._received = True
        return True

    def current(self) -> AltitudeSample:
        with self._lock:
            return self._sample
