"""Auto-start, sample collection, solve and measurement lifecycle.

One handler per state. ``step`` is called once per frame with the pose of the
first detected marker (or ``None`` when no marker was found) and returns a
``FrameResult`` describing what the presentation layer should show.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from pointer_pipeline.pp_types import CalibrationSample, Pose

from .config import CalibrationConfig
from .errors import DegenerateGeometryError
from .measurement import MeasurementSession
from .pivot import PivotSolver
from .sample_filter import REJECT_ANGLE, SampleFilter
from .tracker import tip_position
from .transforms import rotation_matrix


class CalibrationState(str, Enum):
    IDLE = "idle"
    AUTO_COUNTDOWN = "auto_countdown"
    COLLECTING = "collecting"
    READY = "ready"


MODE_TEXT = {
    CalibrationState.IDLE: "Idle",
    CalibrationState.AUTO_COUNTDOWN: "Auto start",
    CalibrationState.COLLECTING: "Calibrating",
    CalibrationState.READY: "Measuring",
}

FAILED_HINT = "Calibration failed, rotate around more axes"


@dataclass
class FrameResult:
    state: CalibrationState
    status_text: str
    detail_text: str = ""
    tip: Optional[np.ndarray] = None
    start_point: Optional[np.ndarray] = None
    distance_cm: Optional[float] = None
    samples_collected: int = 0
    quota: int = 0
    countdown_remaining: Optional[float] = None
    admitted: bool = False
    error: Optional[str] = None

    @property
    def mode_text(self) -> str:
        return MODE_TEXT[self.state]

    @property
    def distance_text(self) -> str:
        if self.state is not CalibrationState.READY:
            return "---"
        if self.distance_cm is None:
            return "--- cm"
        return f"{self.distance_cm:.1f} cm"


class CalibrationStateMachine:
    def __init__(
        self,
        config: Optional[CalibrationConfig] = None,
        solver: Optional[PivotSolver] = None,
        sample_filter: Optional[SampleFilter] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or CalibrationConfig()
        self.solver = solver or PivotSolver(self.config.min_singular_ratio)
        self.filter = sample_filter or SampleFilter(
            self.config.min_spacing_s, self.config.rotation_diversity
        )
        self.logger = logger or logging.getLogger("aruco_pointer")
        self.measurement = MeasurementSession()

        self._handlers = {
            CalibrationState.IDLE: self._on_idle,
            CalibrationState.AUTO_COUNTDOWN: self._on_countdown,
            CalibrationState.COLLECTING: self._on_collecting,
            CalibrationState.READY: self._on_ready,
        }
        self.reset()

    # --- read-only views ---

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def offset(self) -> Optional[np.ndarray]:
        return None if self._offset is None else self._offset.copy()

    @property
    def samples(self) -> tuple[CalibrationSample, ...]:
        return tuple(self._samples)

    @property
    def has_auto_calibrated(self) -> bool:
        return self._has_auto_calibrated

    @property
    def current_tip(self) -> Optional[np.ndarray]:
        return self._current_tip

    @property
    def last_rmse(self) -> Optional[float]:
        return self._rmse

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    # --- commands ---

    def reset(self) -> None:
        self._state = CalibrationState.IDLE
        self._samples: list[CalibrationSample] = []
        self._last_admitted: Optional[Pose] = None
        self._last_admitted_at: Optional[float] = None
        self._detection_start: Optional[float] = None
        self._offset: Optional[np.ndarray] = None
        self._rmse: Optional[float] = None
        self._has_auto_calibrated = False
        self._hold_auto_start = False
        self._current_tip: Optional[np.ndarray] = None
        self._last_error: Optional[str] = None
        self.measurement.clear()

    def mark(self) -> bool:
        """Set or clear the measurement start point. Returns False if ignored."""
        if self._state is not CalibrationState.READY or self._current_tip is None:
            return False
        self.measurement.toggle_start(self._current_tip)
        return True

    def cancel_countdown(self) -> bool:
        if self._state is not CalibrationState.AUTO_COUNTDOWN:
            return False
        self._transition(CalibrationState.IDLE)
        self._detection_start = None
        # stay idle until the marker leaves the view once
        self._hold_auto_start = True
        return True

    # --- per frame ---

    def step(self, pose: Optional[Pose], now: float) -> FrameResult:
        return self._handlers[self._state](pose, now)

    def _transition(self, new_state: CalibrationState) -> None:
        if new_state is not self._state:
            self.logger.info("state %s -> %s", self._state.value, new_state.value)
            self._state = new_state

    def _result(self, status: str, detail: str = "", **kwargs) -> FrameResult:
        kwargs.setdefault("samples_collected", len(self._samples))
        kwargs.setdefault("quota", self.config.quota)
        if self._state in (CalibrationState.IDLE, CalibrationState.AUTO_COUNTDOWN):
            kwargs.setdefault("error", self._last_error)
        return FrameResult(self._state, status, detail, **kwargs)

    def _failure_hint(self, default: str = "") -> str:
        return FAILED_HINT if self._last_error is not None else default

    def _on_idle(self, pose: Optional[Pose], now: float) -> FrameResult:
        if pose is None:
            self._hold_auto_start = False
            return self._result("No marker", self._failure_hint())
        if self._hold_auto_start:
            return self._result("Countdown cancelled", "Move the marker out of view to restart")
        self._detection_start = now
        self._transition(CalibrationState.AUTO_COUNTDOWN)
        return self._on_countdown(pose, now)

    def _on_countdown(self, pose: Optional[Pose], now: float) -> FrameResult:
        if pose is None:
            self._detection_start = None
            self._transition(CalibrationState.IDLE)
            return self._result("No marker", self._failure_hint())

        remaining = self.config.countdown_s - (now - self._detection_start)
        if remaining > 0:
            return self._result(
                f"Starting in {remaining:.1f} s",
                self._failure_hint("Get ready"),
                countdown_remaining=remaining,
            )

        self._samples.clear()
        self._last_admitted = None
        self._last_admitted_at = None
        self._transition(CalibrationState.COLLECTING)
        return self._on_collecting(pose, now)

    def _on_collecting(self, pose: Optional[Pose], now: float) -> FrameResult:
        status = f"Samples: {len(self._samples)}/{self.config.quota}"
        if pose is None:
            return self._result(status, "No marker")

        rejected = self.filter.reason(pose, self._last_admitted, self._last_admitted_at, now)
        if rejected is not None:
            hint = "Change the angle" if rejected == REJECT_ANGLE else "Hold..."
            return self._result(status, hint)

        self._samples.append(CalibrationSample(rotation_matrix(pose.rvec), pose.tvec))
        self._last_admitted = pose
        self._last_admitted_at = now
        self.logger.debug("sample %d/%d admitted", len(self._samples), self.config.quota)

        if len(self._samples) < self.config.quota:
            status = f"Samples: {len(self._samples)}/{self.config.quota}"
            return self._result(status, "OK!", admitted=True)

        return self._finish_calibration(pose, now)

    def _finish_calibration(self, pose: Pose, now: float) -> FrameResult:
        samples = self._samples
        self._samples = []
        self._last_admitted = None
        self._last_admitted_at = None
        try:
            result = self.solver.solve(samples)
        except (DegenerateGeometryError, ValueError, np.linalg.LinAlgError) as exc:
            self.logger.warning("calibration failed: %s", exc)
            self._detection_start = None
            self._has_auto_calibrated = False
            self._last_error = str(exc)
            self._transition(CalibrationState.IDLE)
            return self._result("Calibration failed", FAILED_HINT, admitted=True)

        self._offset = result.offset
        self._rmse = result.rmse
        self._has_auto_calibrated = True
        self._last_error = None
        self.logger.info(
            "calibrated offset=[%.4f %.4f %.4f] m rmse=%.2f mm",
            *result.offset,
            result.rmse * 1000.0,
        )
        self._transition(CalibrationState.READY)
        ready = self._on_ready(pose, now)
        ready.admitted = True
        return ready

    def _on_ready(self, pose: Optional[Pose], now: float) -> FrameResult:
        start = self.measurement.start_point
        if pose is None:
            self._current_tip = None
            return self._result("No marker", start_point=start)

        tip = tip_position(pose, self._offset)
        self._current_tip = tip
        if start is None:
            return self._result("Press Enter to set the start point", tip=tip)
        return self._result(
            "Measuring...",
            tip=tip,
            start_point=start,
            distance_cm=self.measurement.distance_cm(tip),
        )
