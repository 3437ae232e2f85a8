import cv2, numpy as np
from ..pp_types import Detection, Pose


def marker_object_points(marker_length_m: float) -> np.ndarray:
    """Marker corners in the marker frame, in ArUco corner order (TL, TR, BR, BL)."""
    h = marker_length_m / 2.0
    return np.array(
        [[-h, h, 0.0], [h, h, 0.0], [h, -h, 0.0], [-h, -h, 0.0]],
        dtype=np.float64,
    )


class PnPLocalize:
    def __init__(self, K, dist, marker_length_m: float):
        self.K, self.dist, self.L = K, dist, marker_length_m
        self._obj = marker_object_points(marker_length_m) if marker_length_m > 0 else None

    def estimate(self, det: Detection) -> Pose | None:
        if self._obj is None:
            return None
        img = np.asarray(det.corners, dtype=np.float64).reshape(4, 2)
        ok, rvec, tvec = cv2.solvePnP(
            self._obj, img, self.K, self.dist, flags=cv2.SOLVEPNP_IPPE_SQUARE
        )
        if not ok:
            return None
        return Pose(rvec, tvec)

