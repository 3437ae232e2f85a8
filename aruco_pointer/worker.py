from __future__ import annotations

import time
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from pointer_pipeline.pp_types import Detection, Pose

from .channel import Command, CommandInbox, LatestValue
from .config import PointerConfig
from .errors import AcquisitionFailure, TransientFrameError
from .logging_utils import add_file_handler, parse_level, setup_logger
from .pose_source import PoseReading, PoseSource
from .state_machine import CalibrationState, CalibrationStateMachine, FrameResult
from .tracker import TipTracker


@dataclass
class SessionSummary:
    frames_processed: int
    errors: int
    avg_fps: float
    final_state: str
    calibrated: bool
    log_path: Optional[str] = None


@dataclass
class PointerSnapshot:
    """Everything the presentation side needs for one frame."""

    frame_idx: int
    state: CalibrationState
    mode_text: str
    status_text: str
    detail_text: str
    distance_text: str
    tip: Optional[np.ndarray] = None
    tip_px: Optional[tuple[float, float]] = None
    start_px: Optional[tuple[float, float]] = None
    distance_cm: Optional[float] = None
    samples_collected: int = 0
    quota: int = 0
    countdown_remaining: Optional[float] = None
    pose: Optional[Pose] = None
    detections: list[Detection] = field(default_factory=list)
    image: Any = None
    error: Optional[str] = None


class PointerWorker:
    def __init__(
        self,
        config: PointerConfig,
        logger=None,
        source: Optional[PoseSource] = None,
        machine: Optional[CalibrationStateMachine] = None,
        keep_images: Optional[bool] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.session_name, parse_level(config.log_level))
        self.source = source
        self.machine = machine or CalibrationStateMachine(config.calibration, logger=self.logger)
        self.keep_images = (not config.headless) if keep_images is None else keep_images
        self._stop_event = threading.Event()
        self._snapshots: LatestValue[PointerSnapshot] = LatestValue()
        self._inbox = CommandInbox()

    # --- called from the presentation side ---

    def stop(self) -> None:
        self._stop_event.set()

    def reset(self) -> None:
        self._inbox.post(Command.RESET)

    def mark_or_clear(self) -> None:
        self._inbox.post(Command.MARK)

    def cancel_countdown(self) -> None:
        self._inbox.post(Command.CANCEL_COUNTDOWN)

    def latest(self) -> tuple[Optional[PointerSnapshot], int]:
        return self._snapshots.get()

    # --- worker side ---

    def _build_source(self) -> PoseSource:
        if self.source is not None:
            return self.source
        return PoseSource.from_config(self.config)

    def _apply_commands(self) -> None:
        for cmd in self._inbox.drain():
            if cmd is Command.RESET:
                self.machine.reset()
                self.logger.info("calibration reset")
            elif cmd is Command.CANCEL_COUNTDOWN:
                if self.machine.cancel_countdown():
                    self.logger.info("auto-start countdown cancelled")
            elif cmd is Command.MARK:
                if not self.machine.mark():
                    self.logger.info("mark ignored: no tip position available")
                elif self.machine.measurement.has_start:
                    self.logger.info("start point set")
                else:
                    self.logger.info("start point cleared")

    def _snapshot(
        self, reading: PoseReading, result: FrameResult, tracker: TipTracker
    ) -> PointerSnapshot:
        tip_px = tracker.project(result.tip) if result.tip is not None else None
        start_px = None
        if result.start_point is not None:
            start_px = tracker.project(result.start_point)
        image = None
        if self.keep_images and reading.image is not None:
            image = reading.image.copy()
        return PointerSnapshot(
            frame_idx=reading.frame_idx,
            state=result.state,
            mode_text=result.mode_text,
            status_text=result.status_text,
            detail_text=result.detail_text,
            distance_text=result.distance_text,
            tip=result.tip,
            tip_px=tip_px,
            start_px=start_px,
            distance_cm=result.distance_cm,
            samples_collected=result.samples_collected,
            quota=result.quota,
            countdown_remaining=result.countdown_remaining,
            pose=reading.pose,
            detections=list(reading.detections),
            image=image,
            error=result.error,
        )

    def run(self) -> SessionSummary:
        log_path = self.config.log_file
        file_handler = None
        if log_path:
            file_handler = add_file_handler(self.logger, self.config.session_name, log_path)
        try:
            return self._run(log_path)
        finally:
            if file_handler is not None:
                self.logger.removeHandler(file_handler)
                file_handler.close()

    def _run(self, log_path: Optional[str]) -> SessionSummary:
        source = self._build_source()
        self.logger.info("config: %s", self.config.as_dict())
        try:
            source.start()
        except AcquisitionFailure as exc:
            self.logger.error("cannot open pose source: %s", exc)
            raise

        tracker = TipTracker(source.camera_matrix, source.dist_coeffs)
        self.logger.info("session started")

        t0 = time.time()
        frames = 0
        errors = 0
        idle = self.config.idle_delay_s

        try:
            while not self._stop_event.is_set():
                if self.config.max_frames and frames >= self.config.max_frames:
                    break

                self._apply_commands()
                try:
                    with source.frame() as reading:
                        if reading is None:
                            self._stop_event.wait(idle)
                            continue
                        result = self.machine.step(reading.pose, reading.timestamp)
                        self._snapshots.publish(self._snapshot(reading, result, tracker))
                    self.logger.debug(
                        "frame=%d state=%s marker=%s",
                        reading.frame_idx,
                        result.state.value,
                        reading.marker_detected,
                    )
                    frames += 1
                except TransientFrameError as exc:
                    errors += 1
                    self.logger.warning("frame skipped: %s", exc)
                    self._stop_event.wait(idle)
                except Exception:
                    errors += 1
                    self.logger.exception("frame processing failed")
                    self._stop_event.wait(idle)
        finally:
            try:
                source.stop()
            except Exception as exc:
                self.logger.warning("failed to stop pose source: %s", exc)

        avg = frames / max(1e-6, (time.time() - t0))
        state = self.machine.state
        self.logger.info(
            "summary frames=%d avg_fps=%.2f errors=%d state=%s", frames, avg, errors, state.value
        )
        return SessionSummary(
            frames,
            errors,
            avg,
            state.value,
            state is CalibrationState.READY,
            log_path,
        )
