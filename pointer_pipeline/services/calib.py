from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np


def load_calib(path: str) -> Tuple[np.ndarray, np.ndarray, Optional[tuple[int, int]]]:
    """
    Read camera intrinsics written by cv2.FileStorage (YAML/XML).

    Returns (camera_matrix 3x3, dist_coeffs Nx1, (width, height) or None when
    the file does not record the image size).
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"Calibration not found: {path}")

    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
    try:
        k_node = fs.getNode("camera_matrix")
        d_node = fs.getNode("dist_coeffs")
        if k_node.empty() or d_node.empty():
            raise ValueError(f"{path} must contain camera_matrix and dist_coeffs")
        K = np.asarray(k_node.mat(), dtype=np.float64)
        dist = np.asarray(d_node.mat(), dtype=np.float64).reshape(-1, 1)
        w_node, h_node = fs.getNode("image_width"), fs.getNode("image_height")
        size = None
        if not w_node.empty() and not h_node.empty():
            size = (int(w_node.real()), int(h_node.real()))
    finally:
        fs.release()

    if K.shape != (3, 3):
        raise ValueError(f"camera_matrix in {path} must be 3x3, got {K.shape}")
    return K, dist, size
