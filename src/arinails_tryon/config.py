"""
config.py
=========
Defaults and command-line options shared by the try-on entry points.

Key groups:
- Camera: index, capture size, mirroring, readiness timeout.
- Detector: number of hands, confidences, model complexity, Tasks model path.
- Overlay: nail width/height ratios, landmark debug drawing.
- Designs: API base URL (or a local directory of images), initial selection.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, fields
from typing import Optional, Sequence

from .geometry import NAIL_HEIGHT_RATIO, NAIL_WIDTH_RATIO
from .model_assets import DEFAULT_MODEL_PATH

API_URL_ENV = "ARINAILS_API_URL"
DEFAULT_API_URL = "http://localhost:3000"


@dataclass
class TryOnConfig:
    # Camera
    camera: int = 0
    width: int = 1280
    height: int = 720
    mirror: bool = True
    camera_timeout_s: float = 10.0

    # Detector
    max_hands: int = 2
    model_complexity: int = 1  # 0 fast, 1 accurate
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    min_hand_confidence: float = 0.5
    model_path: str = DEFAULT_MODEL_PATH

    # Overlay
    nail_width_ratio: float = NAIL_WIDTH_RATIO
    nail_height_ratio: float = NAIL_HEIGHT_RATIO
    show_landmarks: bool = False
    failure_warn_threshold: int = 30

    # Designs
    api_url: str = DEFAULT_API_URL
    design_dir: Optional[str] = None
    design_id: Optional[int] = None

    # Logging
    log_level: str = "INFO"


def default_api_url() -> str:
    return os.environ.get(API_URL_ENV, DEFAULT_API_URL)


def add_args(parser: argparse.ArgumentParser, d: TryOnConfig) -> None:
    # Camera
    parser.add_argument("--camera", type=int, default=d.camera, help="Camera index (default: 0)")
    parser.add_argument("--width", type=int, default=d.width, help="Capture width (best effort)")
    parser.add_argument("--height", type=int, default=d.height, help="Capture height (best effort)")
    parser.add_argument(
        "--no-mirror",
        dest="mirror",
        action="store_false",
        help="Disable horizontal mirroring (default is mirrored/selfie mode)",
    )
    parser.add_argument("--camera-timeout", dest="camera_timeout_s", type=float, default=d.camera_timeout_s, help="Seconds to wait for the first camera frame")

    # Detector
    parser.add_argument("--max-hands", type=int, default=d.max_hands, help="Maximum number of hands to detect")
    parser.add_argument("--model-complexity", type=int, choices=[0, 1], default=d.model_complexity, help="MediaPipe model complexity: 0 fast, 1 accurate")
    parser.add_argument("--min-detection-confidence", type=float, default=d.min_detection_confidence)
    parser.add_argument("--min-tracking-confidence", type=float, default=d.min_tracking_confidence)
    parser.add_argument("--min-hand-confidence", type=float, default=d.min_hand_confidence, help="Drop hands whose handedness score is below this")
    parser.add_argument("--model-path", default=d.model_path, help="Where the Tasks hand_landmarker.task model lives (downloaded if missing)")

    # Overlay
    parser.add_argument("--nail-width-ratio", type=float, default=d.nail_width_ratio, help="Overlay width as a fraction of the base-to-first-joint distance")
    parser.add_argument("--nail-height-ratio", type=float, default=d.nail_height_ratio, help="Overlay height as a fraction of the first-joint-to-tip distance")
    parser.add_argument("--show-landmarks", action="store_true", help="Draw the hand skeleton over the video")
    parser.add_argument("--failure-warn-threshold", type=int, default=d.failure_warn_threshold, help="Consecutive failed detections before a warning is logged")

    # Designs
    parser.add_argument("--api-url", default=d.api_url, help=f"Designs API base URL (env {API_URL_ENV})")
    parser.add_argument("--design-dir", default=d.design_dir, help="Use image files from this directory instead of the API")
    parser.add_argument("--design-id", type=int, default=d.design_id, help="Design to select first (default: the first one)")

    parser.add_argument("--log-level", default=d.log_level, choices=["DEBUG", "INFO", "WARNING", "ERROR"])


def config_from_args(args: argparse.Namespace) -> TryOnConfig:
    values = {f.name: getattr(args, f.name) for f in fields(TryOnConfig) if hasattr(args, f.name)}
    return TryOnConfig(**values)


def build_parser(description: str) -> argparse.ArgumentParser:
    d = TryOnConfig(api_url=default_api_url())
    parser = argparse.ArgumentParser(description=description)
    add_args(parser, d)
    return parser


def parse_args(argv: Optional[Sequence[str]] = None, description: str = "Virtual nail try-on") -> TryOnConfig:
    return config_from_args(build_parser(description).parse_args(argv))
