import time

import cv2

from ..pp_types import Frame


class USBWebcamCapture:
    """
    Strategy: pull BGR frames from a camera index, a video file or a stream URL.
    Frames are stamped with time.monotonic().
    """

    def __init__(self, device_index=0, requested_fps=30, w=640, h=480):
        self.dev, self.fps, self.w, self.h = device_index, requested_fps, w, h
        self.cap = None
        self.idx = 0

    def start(self):
        self.cap = cv2.VideoCapture(self.dev)
        if self.w and self.h:
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.w)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.h)
        if self.fps:
            self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            raise RuntimeError(f"Failed to open camera: {self.dev}")

    def next_frame(self) -> Frame | None:
        if self.cap is None:
            return None
        ok, img = self.cap.read()
        if not ok or img is None or img.size == 0:
            return None
        self.idx += 1
        return Frame(self.idx, time.monotonic(), img)

    def stop(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None
