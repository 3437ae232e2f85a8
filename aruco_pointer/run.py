import argparse
import signal
import sys
import threading
from typing import Optional

import cv2

from .config import PointerConfig, load_config
from .errors import AcquisitionFailure
from .overlay import draw_overlay
from .pose_source import PoseSource
from .worker import PointerWorker, SessionSummary

WINDOW = "ArUco Pointer"

HELP_TEXT = """\
ArUco Pointer measures distances in space with a marker-tagged pointer.

Step 1: automatic calibration
  - Point the marker at the camera.
  - Sample collection starts automatically after 3 seconds.
  - Keep the pointer tip fixed on one spot and rotate the pointer
    through many different angles.

Step 2: measurement
  - Measurement mode starts automatically once calibration is done.
  - [Enter] sets the start point, press again to clear it.
  - [R] restarts calibration, [C] cancels the auto-start countdown.
  - [H] shows this help, [Q] or [Esc] quits.
"""

KEY_ENTER = (10, 13)
KEY_ESC = 27


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Track a marker-tagged pointer tip and measure distances")
    ap.add_argument("--config", help="Path to JSON/YAML config")

    ap.add_argument("--session-name")
    ap.add_argument("--device")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--calib", help="OpenCV YAML with camera_matrix/dist_coeffs")
    ap.add_argument("--dict")
    ap.add_argument("--marker-length-m", type=float)
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--log-level")
    ap.add_argument("--log-file")
    ap.add_argument("--headless", action="store_true", help="No preview window, log status only")

    return ap


def _apply_args(cfg: PointerConfig, args: argparse.Namespace) -> PointerConfig:
    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)
    cfg.apply_overrides(
        session_name=args.session_name,
        device=device,
        fps=args.fps,
        width=args.width,
        height=args.height,
        calibration_path=args.calib,
        aruco_dict=args.dict,
        marker_length_m=args.marker_length_m,
        max_frames=args.max_frames,
        log_level=args.log_level,
        log_file=args.log_file,
        headless=True if args.headless else None,
    )
    return cfg


class _WorkerThread(threading.Thread):
    def __init__(self, worker: PointerWorker):
        super().__init__(name="pointer-worker", daemon=True)
        self.worker = worker
        self.summary: Optional[SessionSummary] = None
        self.error: Optional[BaseException] = None

    def run(self) -> None:
        try:
            self.summary = self.worker.run()
        except Exception as exc:  # re-raised by main()
            self.error = exc


def _watch_headless(worker: PointerWorker, thread: _WorkerThread) -> None:
    last_status = None
    while thread.is_alive():
        thread.join(0.2)
        snap, _ = worker.latest()
        if snap is None:
            continue
        status = (snap.mode_text, snap.status_text, snap.detail_text, snap.distance_text)
        if status != last_status:
            worker.logger.info("%s | %s | %s | %s", *status)
            last_status = status


def _watch_preview(worker: PointerWorker, source: PoseSource, thread: _WorkerThread) -> None:
    seen = 0
    cv2.namedWindow(WINDOW)
    try:
        while thread.is_alive():
            snap, version = worker.latest()
            if snap is not None and version != seen and snap.image is not None:
                seen = version
                img = draw_overlay(
                    snap.image,
                    snap,
                    source.camera_matrix,
                    source.dist_coeffs,
                    worker.config.axis_length_m,
                )
                cv2.imshow(WINDOW, img)
            key = cv2.waitKey(30) & 0xFF
            if key in KEY_ENTER:
                worker.mark_or_clear()
            elif key in (ord("r"), ord("R")):
                worker.reset()
            elif key in (ord("c"), ord("C")):
                worker.cancel_countdown()
            elif key in (ord("h"), ord("H")):
                print(HELP_TEXT)
            elif key in (ord("q"), ord("Q"), KEY_ESC):
                worker.stop()
    finally:
        cv2.destroyWindow(WINDOW)


def main(argv=None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    cfg = load_config(args.config) if args.config else PointerConfig()
    cfg = _apply_args(cfg, args)

    source = PoseSource.from_config(cfg)
    worker = PointerWorker(cfg, source=source)
    if not cfg.headless:
        print(HELP_TEXT)

    def _handle_signal(_sig, _frame):
        worker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    thread = _WorkerThread(worker)
    thread.start()
    try:
        if cfg.headless:
            _watch_headless(worker, thread)
        else:
            _watch_preview(worker, source, thread)
    finally:
        worker.stop()
        thread.join()

    if isinstance(thread.error, AcquisitionFailure):
        print(f"Camera unavailable: {thread.error}", file=sys.stderr)
        return 1
    if thread.error is not None:
        raise thread.error
    print(thread.summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
