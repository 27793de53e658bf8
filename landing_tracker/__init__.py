"""ArUco landing-target tracker service."""

from .config import TrackerConfig
from .node import TrackerNode
from .worker import TrackerWorker

__all__ = ["TrackerConfig", "TrackerNode", "TrackerWorker"]
