from __future__ import annotations

from typing import Optional

import numpy as np

from pointer_pipeline.pp_types import Pose

from .transforms import rvec_distance

REJECT_TIME = "time"
REJECT_ANGLE = "angle"
REJECT_INVALID = "invalid"


class SampleFilter:
    """Admission gate for calibration samples.

    A candidate is admitted when enough time has passed since the last
    admitted sample *and* its rotation vector differs enough from that
    sample's. The first candidate of a cycle is always admitted unless its
    pose or timestamp is not finite.
    """

    def __init__(self, min_spacing_s: float = 0.5, rotation_diversity: float = 0.3):
        self.min_spacing_s = min_spacing_s
        self.rotation_diversity = rotation_diversity

    def reason(
        self,
        candidate: Pose,
        last_admitted: Optional[Pose],
        last_admitted_at: Optional[float],
        now: float,
    ) -> Optional[str]:
        """Return which gate rejects the candidate, or None when admitted."""
        if not (
            np.isfinite(now)
            and np.all(np.isfinite(candidate.rvec))
            and np.all(np.isfinite(candidate.tvec))
        ):
            return REJECT_INVALID
        # NaN fails every admission test
        if last_admitted_at is not None and not (now - last_admitted_at > self.min_spacing_s):
            return REJECT_TIME
        if last_admitted is not None:
            if not (rvec_distance(candidate.rvec, last_admitted.rvec) > self.rotation_diversity):
                return REJECT_ANGLE
        return None

    def admit(
        self,
        candidate: Pose,
        last_admitted: Optional[Pose],
        last_admitted_at: Optional[float],
        now: float,
    ) -> bool:
        return self.reason(candidate, last_admitted, last_admitted_at, now) is None
