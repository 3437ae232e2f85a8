from contextlib import contextmanager
from types import SimpleNamespace

import numpy as np
import pytest

from aruco_pointer.errors import AcquisitionFailure
from aruco_pointer.pose_source import PoseReading
from aruco_pointer.transforms import rotation_matrix
from pointer_pipeline.pp_types import CalibrationSample, Pose

TIP_OFFSET = np.array([0.005, -0.012, -0.11])  # marker frame, meters
TIP_POINT = np.array([0.02, -0.015, 0.32])  # camera frame, meters


def _diverse_rvecs(n, seed=0, min_step=0.4):
    """Random rotation vectors, each differing from the previous by > min_step."""
    rng = np.random.default_rng(seed)
    out = []
    while len(out) < n:
        axis = rng.normal(size=3)
        axis /= np.linalg.norm(axis)
        rvec = axis * rng.uniform(0.2, 1.2)
        if out and np.linalg.norm(rvec - out[-1]) <= min_step:
            continue
        out.append(rvec)
    return out


def _pose_for(rvec, offset=TIP_OFFSET, tip=TIP_POINT):
    """Pose whose marker puts the tip exactly at `tip`."""
    return Pose(rvec, tip - rotation_matrix(rvec) @ offset)


@pytest.fixture
def pivot_scene():
    def make(n=20, seed=0):
        poses = [_pose_for(r) for r in _diverse_rvecs(n, seed)]
        samples = [CalibrationSample(rotation_matrix(p.rvec), p.tvec) for p in poses]
        return SimpleNamespace(offset=TIP_OFFSET, tip=TIP_POINT, poses=poses, samples=samples)

    return make


@pytest.fixture
def pose_for():
    return _pose_for


class FakePoseSource:
    """Scripted pose source. Script items are Pose, None (no marker) or an exception."""

    def __init__(self, script, dt=0.1, fail_start=False):
        self.script = list(script)
        self.dt = dt
        self.fail_start = fail_start
        self.camera_matrix = np.array([[500.0, 0, 320.0], [0, 500.0, 240.0], [0, 0, 1.0]])
        self.dist_coeffs = np.zeros((5, 1))
        self.started = False
        self.stopped = False
        self.on_exhausted = None
        self.released = 0
        self._idx = 0

    def start(self):
        if self.fail_start:
            raise AcquisitionFailure("camera 7 not found")
        self.started = True

    def stop(self):
        self.stopped = True

    @contextmanager
    def frame(self):
        if not self.script:
            if self.on_exhausted is not None:
                self.on_exhausted()
            yield None
            return
        item = self.script.pop(0)
        self._idx += 1
        if isinstance(item, Exception):
            raise item
        reading = PoseReading(
            self._idx, self._idx * self.dt, np.zeros((48, 64, 3), dtype=np.uint8), [], item
        )
        try:
            yield reading
        finally:
            reading.image = None
            self.released += 1


@pytest.fixture
def fake_source():
    return FakePoseSource
