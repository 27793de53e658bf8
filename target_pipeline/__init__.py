"""Altitude-scaled ArUco landing-target pose pipeline."""

from .pipeline import MarkerPipeline
from .tp_types import FrameResult, ImageMessage, Outcome, Status

__all__ = ["FrameResult", "ImageMessage", "MarkerPipeline", "Outcome", "Status"]
