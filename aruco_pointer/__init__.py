"""Pivot-calibrated tip tracking and distance measurement for an ArUco pointer."""

from .config import CalibrationConfig, PointerConfig
from .pivot import PivotSolver
from .state_machine import CalibrationState, CalibrationStateMachine
from .worker import PointerWorker

__all__ = [
    "CalibrationConfig",
    "CalibrationState",
    "CalibrationStateMachine",
    "PivotSolver",
    "PointerConfig",
    "PointerWorker",
]
