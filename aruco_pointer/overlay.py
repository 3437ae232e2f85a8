from __future__ import annotations

import cv2
import numpy as np

from .state_machine import CalibrationState
from .worker import PointerSnapshot

RED = (0, 0, 255)
LIME = (0, 255, 0)
CYAN = (255, 255, 0)
WHITE = (255, 255, 255)

STATE_COLORS = {
    CalibrationState.IDLE: (160, 160, 160),
    CalibrationState.AUTO_COUNTDOWN: (0, 165, 255),  # orange
    CalibrationState.COLLECTING: (255, 128, 0),
    CalibrationState.READY: (0, 200, 0),
}


def _px(p: tuple[float, float]) -> tuple[int, int]:
    return int(round(p[0])), int(round(p[1]))


def draw_overlay(
    image: np.ndarray,
    snap: PointerSnapshot,
    camera_matrix,
    dist_coeffs,
    axis_length_m: float = 0.1,
) -> np.ndarray:
    """Draw marker, tip and measurement annotations onto a copy of image."""
    draw = image.copy()

    if snap.detections:
        ids = np.array([d.marker_id for d in snap.detections], dtype=np.int32).reshape(-1, 1)
        corners = [np.asarray(d.corners, dtype=np.float32).reshape(1, 4, 2) for d in snap.detections]
        cv2.aruco.drawDetectedMarkers(draw, corners, ids)

    # axes only until the tip is known
    if snap.pose is not None and snap.state is not CalibrationState.READY:
        cv2.drawFrameAxes(
            draw, camera_matrix, dist_coeffs, snap.pose.rvec, snap.pose.tvec, axis_length_m
        )

    if snap.tip_px is not None:
        cv2.circle(draw, _px(snap.tip_px), 10, RED, 2)
        if snap.start_px is not None:
            cv2.line(draw, _px(snap.start_px), _px(snap.tip_px), CYAN, 2)
    if snap.start_px is not None:
        cv2.circle(draw, _px(snap.start_px), 5, LIME, -1)

    color = STATE_COLORS[snap.state]
    lines = [
        (f"Mode: {snap.mode_text}", 0.8, color),
        (snap.status_text, 0.6, WHITE),
        (snap.detail_text, 0.6, WHITE),
        (snap.distance_text, 1.0, RED if snap.distance_cm is not None else WHITE),
    ]
    y = 30
    for text, scale, c in lines:
        if text:
            cv2.putText(draw, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, scale, c, 2, cv2.LINE_AA)
        y += int(40 * scale) + 6
    return draw
