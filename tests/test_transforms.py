import cv2
import numpy as np
import pytest

from aruco_pointer.transforms import rotation_matrix, rvec_distance


def test_rotation_matrix_is_orthonormal():
    R = rotation_matrix(np.array([0.1, 0.2, 0.3]))
    assert R.shape == (3, 3)
    assert R.dtype == np.float64
    assert np.allclose(R @ R.T, np.eye(3), atol=1e-9)
    assert np.linalg.det(R) == pytest.approx(1.0)


def test_rotation_matrix_accepts_column_vector():
    R = rotation_matrix(np.array([[0.0], [0.0], [np.pi / 2]], dtype=np.float32))
    assert np.allclose(R @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-6)


def test_rotation_matrix_round_trips_through_rodrigues():
    rvec = np.array([-0.4, 0.25, 0.9])
    back, _ = cv2.Rodrigues(rotation_matrix(rvec))
    assert np.allclose(back.reshape(3), rvec, atol=1e-9)


def test_rvec_distance():
    assert rvec_distance([0.0, 0.0, 0.0], [0.3, 0.4, 0.0]) == pytest.approx(0.5)
    assert rvec_distance([[1.0], [2.0], [3.0]], [1.0, 2.0, 3.0]) == 0.0
