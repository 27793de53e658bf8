from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Header:
    seq: int
    stamp: float
    frame_id: str = "camera"


@dataclass
class ImageMessage:
    header: Header
    encoding: str
    data: Any  # ndarray for raw encodings, bytes for compressed ones


@dataclass
class Frame:
    header: Header
    image: Any  # BGR8 ndarray


@dataclass
class DetectedMarker:
    marker_id: int
    corners: Any  # (4,2) float32 ndarray, TL, TR, BR, BL


@dataclass
class EstimatedPose:
    rvec: Any
    tvec: Any


class Status(Enum):
    OK = "ok"
    SKIP = "skip"
    DROP = "drop"


@dataclass
class Outcome(Generic[T]):
    """Tagged result of a single pipeline stage."""

    status: Status
    value: Optional[T] = None
    reason: str = ""
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(Status.OK, value)

    @classmethod
    def skip(cls, reason: str, error: Optional[Exception] = None) -> "Outcome[T]":
        return cls(Status.SKIP, None, reason, error)

    @classmethod
    def drop(cls, reason: str, error: Optional[Exception] = None) -> "Outcome[T]":
        return cls(Status.DROP, None, reason, error)

    @property
    def is_ok(self) -> bool:
        return self.status is Status.OK


@dataclass
class MarkerResult:
    marker_id: int
    corners: Any
    marker_size: Optional[float] = None
    pose: Optional[EstimatedPose] = None
    status: Status = Status.OK
    reason: str = ""


@dataclass
class FrameResult:
    header: Header
    image: Any  # annotated BGR8 ndarray
    altitude: float
    markers: list[MarkerResult] = field(default_factory=list)
    encoding: str = "bgr8"

    @property
    def solved(self) -> list[MarkerResult]:
        return [m for m in self.markers if m.pose is not None]
