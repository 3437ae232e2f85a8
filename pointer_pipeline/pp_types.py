from dataclasses import dataclass
from typing import Any

import numpy as np


def as_vec3(value) -> np.ndarray:
    a = np.array(value, dtype=np.float64).reshape(-1)
    if a.shape != (3,):
        raise ValueError(f"expected 3 components, got {a.shape[0]}")
    return a


@dataclass
class Frame:
    idx: int
    ts: float
    image: Any  # numpy array


@dataclass
class Detection:
    marker_id: int
    corners: Any  # (1,4,2) ndarray


@dataclass(frozen=True, eq=False)
class Pose:
    """Marker pose in the camera frame: Rodrigues rvec and tvec in meters."""
    rvec: np.ndarray
    tvec: np.ndarray

    def __post_init__(self):
        # owns float64 copies of the inputs
        object.__setattr__(self, "rvec", as_vec3(self.rvec))
        object.__setattr__(self, "tvec", as_vec3(self.tvec))


@dataclass(frozen=True, eq=False)
class CalibrationSample:
    rotation: np.ndarray  # (3,3)
    translation: np.ndarray

    def __post_init__(self):
        R = np.array(self.rotation, dtype=np.float64).reshape(3, 3)
        object.__setattr__(self, "rotation", R)
        object.__setattr__(self, "translation", as_vec3(self.translation))
