from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from pointer_pipeline.pp_types import Detection, Frame, Pose
from pointer_pipeline.strategies import capture_usb as capture_mod
from pointer_pipeline.strategies.capture_usb import USBWebcamCapture
from pointer_pipeline.strategies.detect_aruco import ArucoDetect, get_dict
from pointer_pipeline.strategies.localize_pnp import PnPLocalize, marker_object_points

K = np.array([[600.0, 0.0, 320.0], [0.0, 600.0, 240.0], [0.0, 0.0, 1.0]])
NO_DIST = np.zeros((5, 1))


@patch("pointer_pipeline.strategies.capture_usb.time.monotonic", return_value=12.5)
@patch("pointer_pipeline.strategies.capture_usb.cv2.VideoCapture")
def test_usb_capture_reads_frames(mock_cap_class, _mock_clock):
    """USB capture should configure the camera and yield Frame objects."""
    mock_cap = MagicMock()
    mock_cap.isOpened.return_value = True
    mock_cap.read.return_value = (True, np.zeros((4, 4, 3), dtype=np.uint8))
    mock_cap_class.return_value = mock_cap

    capture = USBWebcamCapture(device_index=1, requested_fps=20, w=640, h=480)
    capture.start()
    frame = capture.next_frame()
    capture.stop()

    mock_cap_class.assert_called_once_with(1)
    mock_cap.set.assert_any_call(capture_mod.cv2.CAP_PROP_FRAME_WIDTH, 640)
    mock_cap.set.assert_any_call(capture_mod.cv2.CAP_PROP_FRAME_HEIGHT, 480)
    mock_cap.set.assert_any_call(capture_mod.cv2.CAP_PROP_FPS, 20)
    assert frame.idx == 1
    assert frame.ts == 12.5
    mock_cap.release.assert_called_once()


@patch("pointer_pipeline.strategies.capture_usb.cv2.VideoCapture")
def test_usb_capture_raises_when_not_opened(mock_cap_class):
    mock_cap = MagicMock()
    mock_cap.isOpened.return_value = False
    mock_cap_class.return_value = mock_cap

    with pytest.raises(RuntimeError):
        USBWebcamCapture(device_index=3).start()


@patch("pointer_pipeline.strategies.capture_usb.cv2.VideoCapture")
def test_usb_capture_bad_read_gives_none(mock_cap_class):
    mock_cap = MagicMock()
    mock_cap.isOpened.return_value = True
    mock_cap.read.return_value = (False, None)
    mock_cap_class.return_value = mock_cap

    capture = USBWebcamCapture()
    capture.start()
    assert capture.next_frame() is None
    assert capture.idx == 0


def test_get_dict_accepts_prefixed_names():
    a = get_dict("DICT_5X5_100")
    b = get_dict("5x5_100")
    assert a.bytesList.shape == b.bytesList.shape


def test_aruco_detect_wraps_detector_output():
    detector = ArucoDetect("4x4_50")
    fake_detector = MagicMock()
    fake_detector.detectMarkers.return_value = (
        [np.zeros((1, 4, 2), dtype=np.float32)],
        np.array([[42]], dtype=np.int32),
        [],
    )
    detector._detector = fake_detector
    frame = Frame(1, 0.0, np.zeros((2, 2), dtype=np.uint8))

    results = detector.detect(frame)
    assert len(results) == 1
    assert results[0].marker_id == 42
    fake_detector.detectMarkers.assert_called_once_with(frame.image)


def test_aruco_detect_finds_generated_marker():
    dictionary = get_dict("4x4_50")
    marker = cv2.aruco.generateImageMarker(dictionary, 7, 200)
    image = np.full((400, 400), 255, dtype=np.uint8)
    image[100:300, 100:300] = marker

    dets = ArucoDetect("4x4_50").detect(Frame(1, 0.0, image))
    assert [d.marker_id for d in dets] == [7]
    assert np.asarray(dets[0].corners).reshape(4, 2)[0] == pytest.approx([100, 100], abs=2)


def test_aruco_detect_empty_image():
    assert ArucoDetect().detect(Frame(1, 0.0, np.zeros((100, 100), dtype=np.uint8))) == []


def test_pnp_localize_recovers_pose():
    L = 0.04
    true_rvec = np.array([0.2, -0.3, 0.1])
    true_tvec = np.array([0.01, 0.02, 0.4])
    img, _ = cv2.projectPoints(marker_object_points(L), true_rvec, true_tvec, K, NO_DIST)
    det = Detection(3, img.reshape(1, 4, 2).astype(np.float32))

    pose = PnPLocalize(K, NO_DIST, L).estimate(det)
    assert isinstance(pose, Pose)
    assert pose.tvec == pytest.approx(true_tvec, abs=1e-4)
    assert pose.rvec == pytest.approx(true_rvec, abs=1e-3)


def test_pnp_localize_disabled_for_zero_length():
    localizer = PnPLocalize(K, NO_DIST, 0.0)
    assert localizer.estimate(Detection(1, np.zeros((1, 4, 2)))) is None


def test_marker_object_points_order():
    pts = marker_object_points(0.02)
    assert pts[0] == pytest.approx([-0.01, 0.01, 0.0])
    assert pts[2] == pytest.approx([0.01, -0.01, 0.0])
