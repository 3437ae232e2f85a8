from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from pointer_pipeline.pp_types import Pose, as_vec3

from .transforms import rotation_matrix

# points closer than this to the camera plane are not projected
MIN_DEPTH_M = 1e-6


def tip_position(pose: Pose, offset) -> np.ndarray:
    """Tip in the camera frame: R(pose) @ offset + tvec."""
    return rotation_matrix(pose.rvec) @ as_vec3(offset) + pose.tvec


class TipTracker:
    """Projects camera-frame points (tip, start point) into the image."""

    def __init__(self, camera_matrix, dist_coeffs):
        self.camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
        self.dist_coeffs = np.asarray(dist_coeffs, dtype=np.float64).reshape(-1, 1)
        self._zero = np.zeros((3, 1), dtype=np.float64)

    def project(self, point) -> Optional[tuple[float, float]]:
        """Pixel coordinates of a camera-frame point, or None if not renderable."""
        p = as_vec3(point)
        if not np.all(np.isfinite(p)) or p[2] <= MIN_DEPTH_M:
            return None
        img_pts, _ = cv2.projectPoints(
            p.reshape(1, 1, 3), self._zero, self._zero, self.camera_matrix, self.dist_coeffs
        )
        u, v = img_pts.reshape(2)
        if not (np.isfinite(u) and np.isfinite(v)):
            return None
        return float(u), float(v)
