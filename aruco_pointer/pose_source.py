"""Upstream pose source: camera frames in, first-marker pose out."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import cv2
import numpy as np

from pointer_pipeline.pp_types import Detection, Pose
from pointer_pipeline.services.calib import load_calib
from pointer_pipeline.strategies.capture_usb import USBWebcamCapture
from pointer_pipeline.strategies.detect_aruco import ArucoDetect
from pointer_pipeline.strategies.localize_pnp import PnPLocalize

from .config import PointerConfig
from .errors import AcquisitionFailure, TransientFrameError


@dataclass
class PoseReading:
    frame_idx: int
    timestamp: float
    image: Any
    detections: list[Detection] = field(default_factory=list)
    pose: Optional[Pose] = None

    @property
    def marker_detected(self) -> bool:
        return self.pose is not None


class PoseSource:
    def __init__(self, capture, detector, localizer, camera_matrix, dist_coeffs):
        self.capture = capture
        self.detector = detector
        self.localizer = localizer
        self.camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
        self.dist_coeffs = np.asarray(dist_coeffs, dtype=np.float64).reshape(-1, 1)

    @classmethod
    def from_config(cls, config: PointerConfig) -> "PoseSource":
        if config.calibration_path:
            K, dist, _ = load_calib(config.calibration_path)
        else:
            K = config.intrinsics.camera_matrix()
            dist = config.intrinsics.distortion()
        cap = USBWebcamCapture(
            device_index=config.device,
            requested_fps=config.fps,
            w=config.width,
            h=config.height,
        )
        det = ArucoDetect(config.aruco_dict)
        loc = PnPLocalize(K, dist, config.marker_length_m)
        return cls(cap, det, loc, K, dist)

    def start(self) -> None:
        try:
            self.capture.start()
        except (RuntimeError, cv2.error) as exc:
            raise AcquisitionFailure(str(exc)) from exc

    def stop(self) -> None:
        self.capture.stop()

    @contextmanager
    def frame(self) -> Iterator[Optional[PoseReading]]:
        """Read, detect and localize one frame.

        Yields None when the camera has no new frame. The frame buffer is
        dropped when the block exits.
        """
        try:
            f = self.capture.next_frame()
        except cv2.error as exc:
            raise TransientFrameError(f"frame read failed: {exc}") from exc
        if f is None:
            yield None
            return

        reading = None
        try:
            try:
                dets = self.detector.detect(f)
                pose = self.localizer.estimate(dets[0]) if dets else None
            except cv2.error as exc:
                raise TransientFrameError(f"frame {f.idx}: {exc}") from exc
            reading = PoseReading(f.idx, f.ts, f.image, dets, pose)
            yield reading
        finally:
            f.image = None
            if reading is not None:
                reading.image = None
