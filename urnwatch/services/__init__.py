"""Service modules"""
from .valuer import PositionValuer
from .health import CollateralHealthComputer
from .pipeline import DataSnapshotPipeline, SnapshotWorker
from .monitor import Monitor

__all__ = [
    "PositionValuer",
    "CollateralHealthComputer",
    "DataSnapshotPipeline",
    "SnapshotWorker",
    "Monitor",
]
