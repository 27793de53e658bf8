from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import cv2
import numpy as np

from target_pipeline.strategies.detect_aruco import get_dict
from target_pipeline.tp_types import Header, ImageMessage

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png"}


class BaseCapture(ABC):
    """Produces image messages the way a camera topic would deliver them."""

    def __init__(self, frame_id: str = "camera"):
        self.frame_id = frame_id
        self.seq = 0

    def _header(self) -> Header:
        self.seq += 1
        return Header(self.seq, time.time(), self.frame_id)

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def next_message(self) -> Optional[ImageMessage]: ...

    @abstractmethod
    def stop(self) -> None: ...

    @property
    def exhausted(self) -> bool:
        return False


class USBCapture(BaseCapture):
    def __init__(self, device: int | str, fps: int, width: int, height: int):
        super().__init__()
        self.device = device
        self.fps = fps
        self.width = width
        self.height = height
        self.cap: Any = None

    def start(self) -> None:
        if isinstance(self.device, int):
            self.cap = cv2.VideoCapture(self.device, cv2.CAP_V4L2)
        else:
            match = re.match(r"^/dev/video(\d+)$", str(self.device))
            if match:
                self.cap = cv2.VideoCapture(int(match.group(1)), cv2.CAP_V4L2)
            else:
                self.cap = cv2.VideoCapture(str(self.device))

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open camera: {self.device}")

    def next_message(self) -> Optional[ImageMessage]:
        ok, img = self.cap.read()
        if not ok:
            return None
        return ImageMessage(self._header(), "bgr8", img)

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()


class VideoFileCapture(BaseCapture):
    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self.cap: Any = None
        self._done = False

    def start(self) -> None:
        self.cap = cv2.VideoCapture(self.path)
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open video: {self.path}")

    def next_message(self) -> Optional[ImageMessage]:
        ok, img = self.cap.read()
        if not ok:
            self._done = True
            return None
        return ImageMessage(self._header(), "bgr8", img)

    @property
    def exhausted(self) -> bool:
        return self._done

    def stop(self) -> None:
        if self.cap is not None:
            self.cap.release()


class ImageDirCapture(BaseCapture):
    """Replays image files in name order as compressed messages."""

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self._files: list[Path] = []

    def start(self) -> None:
        if not self.path.is_dir():
            raise RuntimeError(f"Image directory not found: {self.path}")
        self._files = sorted(p for p in self.path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)

    def next_message(self) -> Optional[ImageMessage]:
        if not self._files:
            return None
        p = self._files.pop(0)
        encoding = "png" if p.suffix.lower() == ".png" else "jpeg"
        return ImageMessage(self._header(), encoding, p.read_bytes())

    @property
    def exhausted(self) -> bool:
        return not self._files

    def stop(self) -> None:
        self._files = []


def render_marker(dict_name: str, marker_id: int, side_px: int) -> np.ndarray:
    dictionary = get_dict(dict_name)
    if hasattr(cv2.aruco, "generateImageMarker"):               # OpenCV >= 4.7
        return cv2.aruco.generateImageMarker(dictionary, marker_id, side_px)
    return cv2.aruco.drawMarker(dictionary, marker_id, side_px)


class SyntheticCapture(BaseCapture):
    """One upright marker centred on a white background, paced at fps."""

    def __init__(
        self,
        fps: int,
        width: int,
        height: int,
        dict_name: str = "4x4_250",
        marker_id: int = 0,
        marker_px: int = 100,
    ):
        if not 0 < marker_px <= min(width, height):
            raise ValueError(f"marker_px {marker_px} does not fit a {width}x{height} frame")
        super().__init__()
        self.fps = fps
        self.width = width
        self.height = height
        self._last = 0.0
        marker = render_marker(dict_name, marker_id, marker_px)
        canvas = np.full((height, width), 255, dtype=np.uint8)
        y0 = (height - marker_px) // 2
        x0 = (width - marker_px) // 2
        canvas[y0:y0 + marker_px, x0:x0 + marker_px] = marker
        self._image = cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)

    def start(self) -> None:
        self._last = time.time()

    def next_message(self) -> Optional[ImageMessage]:
        if self.fps > 0:
            wait = max(0.0, (1.0 / self.fps) - (time.time() - self._last))
            if wait > 0:
                time.sleep(wait)
        self._last = time.time()
        return ImageMessage(self._header(), "bgr8", self._image.copy())

    def stop(self) -> None:
        return None


def build_capture(source, dict_name: str = "4x4_250") -> BaseCapture:
    if source.type == "usb":
        return USBCapture(source.device, source.fps, source.width, source.height)
    if source.type == "video":
        return VideoFileCapture(source.path)
    if source.type == "images":
        return ImageDirCapture(source.path)
    return SyntheticCapture(
        source.fps,
        source.width,
        source.height,
        dict_name=dict_name,
        marker_id=source.marker_id,
        marker_px=source.marker_px,
    )
