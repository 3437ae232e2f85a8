"""Pivot calibration: recover the marker-to-tip offset from rotating poses.

For every sample the tip ``g`` stays fixed in the camera frame while the
marker rotates around it::

    R_i @ p + t_i = g

Stacking ``[R_i | -I] @ [p; g] = -t_i`` for all samples gives an
overdetermined 3N x 6 system solved in the least-squares sense.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from pointer_pipeline.pp_types import CalibrationSample

from .errors import DegenerateGeometryError

MIN_SAMPLES = 4


@dataclass(frozen=True, eq=False)
class PivotResult:
    offset: np.ndarray  # p, marker frame
    pivot_point: np.ndarray  # g, camera frame
    rmse: float  # meters
    singular_values: np.ndarray


def build_system(samples: Sequence[CalibrationSample]) -> tuple[np.ndarray, np.ndarray]:
    n = len(samples)
    A = np.zeros((3 * n, 6), dtype=np.float64)
    b = np.zeros(3 * n, dtype=np.float64)
    neg_eye = -np.eye(3)
    for i, s in enumerate(samples):
        rows = slice(3 * i, 3 * i + 3)
        A[rows, :3] = s.rotation
        A[rows, 3:] = neg_eye
        b[rows] = -s.translation
    return A, b


class PivotSolver:
    def __init__(self, min_singular_ratio: float = 1e-3):
        self.min_singular_ratio = min_singular_ratio

    def solve(self, samples: Sequence[CalibrationSample]) -> PivotResult:
        if len(samples) < MIN_SAMPLES:
            raise ValueError(
                f"pivot calibration needs at least {MIN_SAMPLES} samples, got {len(samples)}"
            )

        A, b = build_system(samples)
        # SVD-based; gives the minimum-norm solution if A is rank deficient
        x, _res, _rank, s = np.linalg.lstsq(A, b, rcond=None)

        ratio = float(s[-1] / s[0]) if s[0] > 0 else 0.0
        if ratio < self.min_singular_ratio:
            raise DegenerateGeometryError(
                f"pivot system is ill-conditioned (s_min/s_max={ratio:.2e}); "
                "rotate the pointer around more than one axis",
                singular_values=s,
            )

        resid = (A @ x - b).reshape(-1, 3)
        rmse = float(np.sqrt((resid ** 2).sum(axis=1).mean()))
        return PivotResult(x[:3].copy(), x[3:].copy(), rmse, s)
