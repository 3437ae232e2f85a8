"""Rodrigues helpers for marker poses."""

import numpy as np
import cv2


def rotation_matrix(rvec) -> np.ndarray:
    """
    Convert a Rodrigues rotation vector to a 3x3 rotation matrix.

    Args:
        rvec: Rotation vector (3,) or (3,1)

    Returns:
        (3,3) float64 orthonormal matrix
    """
    rvec = np.asarray(rvec, dtype=np.float64).reshape(3, 1)
    R, _ = cv2.Rodrigues(rvec)
    return R


def rvec_distance(a, b) -> float:
    """L2 norm of the difference of two rotation vectors."""
    diff = np.asarray(a, dtype=np.float64).reshape(3) - np.asarray(b, dtype=np.float64).reshape(3)
    return float(np.linalg.norm(diff))
