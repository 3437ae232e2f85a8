from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

import numpy as np

from .pivot import MIN_SAMPLES


@dataclass
class CalibrationConfig:
    """Tunables of the pivot-calibration cycle."""

    quota: int = 20  # samples per calibration
    min_spacing_s: float = 0.5
    rotation_diversity: float = 0.3  # L2 distance between rvecs
    countdown_s: float = 3.0
    min_singular_ratio: float = 1e-3  # s_min / s_max below this is degenerate

    def __post_init__(self):
        if self.quota < MIN_SAMPLES:
            raise ValueError(f"calibration.quota must be at least {MIN_SAMPLES}, got {self.quota}")
        if self.min_spacing_s < 0 or self.countdown_s < 0:
            raise ValueError("calibration.min_spacing_s and countdown_s must not be negative")


@dataclass
class CameraIntrinsics:
    fx: float = 506.25
    fy: float = 505.10
    cx: float = 317.89
    cy: float = 244.05
    dist_coeffs: list[float] = field(
        default_factory=lambda: [0.2099, -0.9094, 0.0077, 0.0014, 1.3815]
    )  # k1, k2, p1, p2, k3

    def camera_matrix(self) -> np.ndarray:
        return np.array(
            [[self.fx, 0.0, self.cx], [0.0, self.fy, self.cy], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )

    def distortion(self) -> np.ndarray:
        return np.array(self.dist_coeffs, dtype=np.float64).reshape(-1, 1)


@dataclass
class PointerConfig:
    session_name: str = "pointer"
    device: int | str = 0
    fps: int = 30
    width: int = 640
    height: int = 480
    aruco_dict: str = "4x4_50"
    marker_length_m: float = 0.0145
    calibration_path: Optional[str] = None  # OpenCV YAML, overrides intrinsics
    intrinsics: CameraIntrinsics = field(default_factory=CameraIntrinsics)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    idle_delay_s: float = 0.03
    axis_length_m: float = 0.1
    log_level: str = "INFO"
    log_file: Optional[str] = None
    headless: bool = False
    max_frames: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "PointerConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover - declared dependency
        raise RuntimeError(
            "YAML config requested but PyYAML is not installed. "
            "Install with: pip install pyyaml"
        ) from exc
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def _load_calibration(raw: dict[str, Any]) -> CalibrationConfig:
    d = CalibrationConfig()
    return CalibrationConfig(
        quota=int(raw.get("quota", d.quota)),
        min_spacing_s=float(raw.get("min_spacing_s", d.min_spacing_s)),
        rotation_diversity=float(raw.get("rotation_diversity", d.rotation_diversity)),
        countdown_s=float(raw.get("countdown_s", d.countdown_s)),
        min_singular_ratio=float(raw.get("min_singular_ratio", d.min_singular_ratio)),
    )


def _load_intrinsics(raw: dict[str, Any]) -> CameraIntrinsics:
    i = CameraIntrinsics()
    i.fx = float(raw.get("fx", i.fx))
    i.fy = float(raw.get("fy", i.fy))
    i.cx = float(raw.get("cx", i.cx))
    i.cy = float(raw.get("cy", i.cy))
    dist = raw.get("dist_coeffs", i.dist_coeffs)
    if not isinstance(dist, (list, tuple)):
        raise ValueError("intrinsics.dist_coeffs must be a list of numbers")
    i.dist_coeffs = [float(v) for v in dist]
    return i


def load_config(path: str | Path) -> PointerConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = PointerConfig()
    cfg.session_name = str(raw.get("session_name", cfg.session_name))
    cfg.device = raw.get("device", cfg.device)
    if isinstance(cfg.device, str) and cfg.device.isdigit():
        cfg.device = int(cfg.device)
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.marker_length_m = float(raw.get("marker_length_m", cfg.marker_length_m))
    cfg.calibration_path = raw.get("calibration_path", cfg.calibration_path)
    cfg.idle_delay_s = float(raw.get("idle_delay_s", cfg.idle_delay_s))
    cfg.axis_length_m = float(raw.get("axis_length_m", cfg.axis_length_m))
    cfg.log_level = str(raw.get("log_level", cfg.log_level))
    cfg.log_file = raw.get("log_file", cfg.log_file)
    cfg.headless = bool(raw.get("headless", cfg.headless))
    cfg.max_frames = raw.get("max_frames", cfg.max_frames)
    if cfg.max_frames is not None:
        cfg.max_frames = int(cfg.max_frames)

    intr_raw = raw.get("intrinsics")
    if intr_raw is not None:
        if not isinstance(intr_raw, dict):
            raise ValueError("intrinsics must be a mapping")
        cfg.intrinsics = _load_intrinsics(intr_raw)

    calib_raw = raw.get("calibration")
    if calib_raw is not None:
        if not isinstance(calib_raw, dict):
            raise ValueError("calibration must be a mapping")
        cfg.calibration = _load_calibration(calib_raw)

    return cfg
