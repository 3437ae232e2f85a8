from __future__ import annotations

from typing import Optional

import numpy as np

from pointer_pipeline.pp_types import as_vec3


class MeasurementSession:
    """Start point of a distance measurement, toggled by the user."""

    def __init__(self):
        self.start_point: Optional[np.ndarray] = None

    @property
    def has_start(self) -> bool:
        return self.start_point is not None

    def toggle_start(self, tip) -> None:
        if self.start_point is not None:
            self.start_point = None
        elif tip is not None:
            self.start_point = as_vec3(tip)

    def distance_cm(self, tip) -> Optional[float]:
        if self.start_point is None or tip is None:
            return None
        return float(np.linalg.norm(as_vec3(tip) - self.start_point) * 100.0)

    def clear(self) -> None:
        self.start_point = None
