"""
app.py
======
Webcam try-on window.

High-level flow:
1) Parse options, configure logging
2) Load the design list (Designs API or a local directory) and auto-select one
3) Start a TryOnSession (camera + hand landmark model); on failure show the
   reason and wait for `r` (retry) or `q`
4) Show composed frames until `q`/Esc; `n`/`p` cycle designs, `l` toggles landmarks
5) Stop the session on every exit path
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

import cv2

from .camera import VideoCaptureAdapter
from .config import TryOnConfig, parse_args
from .designs import DesignSelection, DesignsClient, designs_from_directory
from .detector import MediaPipeLandmarkProvider
from .drawing import draw_banner, status_screen
from .errors import CameraError, DesignsApiError, DesignLoadError, ModelLoadError
from .renderer import NailOverlayRenderer
from .session import TryOnSession
from .types import CameraStatus, Design, ModelStatus, StatusSignal

logger = logging.getLogger(__name__)

WINDOW_TITLE = "arinails - virtual nail try-on"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format="[%(levelname)s] %(name)s: %(message)s")


def load_designs(config: TryOnConfig) -> List[Design]:
    if config.design_dir:
        return designs_from_directory(config.design_dir)
    return DesignsClient(config.api_url).list_active()


def make_selection(config: TryOnConfig, designs: List[Design]) -> DesignSelection:
    selection = DesignSelection()
    if config.design_id is not None:
        for design in designs:
            if design.id == config.design_id:
                selection.select(design)
                break
        else:
            logger.warning("Design %s not found; selecting the first one", config.design_id)
    selection.set_designs(designs)
    return selection


def make_provider_factory(config: TryOnConfig, static_image_mode: bool = False):
    def factory() -> MediaPipeLandmarkProvider:
        return MediaPipeLandmarkProvider(
            static_image_mode=static_image_mode,
            max_num_hands=config.max_hands,
            model_complexity=config.model_complexity,
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
            min_hand_confidence=config.min_hand_confidence,
            tasks_model_path=config.model_path,
        )

    return factory


def make_session(config: TryOnConfig, selection: DesignSelection) -> TryOnSession:
    camera = VideoCaptureAdapter(
        config.camera,
        (config.width, config.height),
        mirror=config.mirror,
        ready_timeout_s=config.camera_timeout_s,
    )
    renderer = NailOverlayRenderer(
        width_ratio=config.nail_width_ratio,
        height_ratio=config.nail_height_ratio,
        failure_warn_threshold=config.failure_warn_threshold,
        show_landmarks=config.show_landmarks,
    )
    return TryOnSession(camera, make_provider_factory(config), selection, renderer)


def hud_lines(selection: DesignSelection) -> List[str]:
    if not selection.designs:
        return ["No designs available right now"]
    if selection.selected is None:
        return ["Pick a design with n / p"]
    lines = [selection.selected.title]
    if selection.last_error is not None:
        lines.append("Could not load this design")
    elif not selection.ready:
        lines.append("Loading design...")
    else:
        lines.append("Show your hands to the camera")
    lines.append("n/p: design  l: landmarks  q: quit")
    return lines


class SetupScreen:
    """
    Status screen shown while the session starts.

    It follows the session's camera and model status signals, so each step
    (camera opening, model loading, either one failing) is reflected as it happens.
    """

    CAMERA_STARTING = "Starting camera..."
    MODEL_LOADING = "Loading hand detector..."
    RETRY_HINT = "Press r to retry or q to quit"

    def __init__(self, session: TryOnSession, on_change: Optional[Callable[["SetupScreen"], None]] = None) -> None:
        self.message = self.CAMERA_STARTING
        self.error = False
        self._on_change = on_change
        self._unsubscribe = [
            session.camera_status.subscribe(self._on_status),
            session.model_status.subscribe(self._on_status),
        ]

    def _on_status(self, signal: StatusSignal) -> None:
        value = signal.value
        if value in (CameraStatus.ERROR, ModelStatus.ERROR):
            self.message, self.error = signal.message, True
        elif value is CameraStatus.INITIALIZING:
            self.message, self.error = self.CAMERA_STARTING, False
        elif value is ModelStatus.LOADING:
            self.message, self.error = self.MODEL_LOADING, False
        else:
            return
        if self._on_change is not None:
            self._on_change(self)

    def render(self):
        return status_screen(self.message, self.RETRY_HINT if self.error else None, error=self.error)

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []


def show_setup(screen: SetupScreen) -> None:
    cv2.imshow(WINDOW_TITLE, screen.render())
    cv2.waitKey(1)


def wait_for_retry(screen: SetupScreen) -> bool:
    """Show a setup error until the user retries (`r`) or quits. True means retry."""

    frame = screen.render()
    while True:
        cv2.imshow(WINDOW_TITLE, frame)
        key = cv2.waitKey(50) & 0xFF
        if key == ord("r"):
            return True
        if key in (ord("q"), 27):
            return False


def start_with_retry(session: TryOnSession) -> bool:
    screen = SetupScreen(session, on_change=show_setup)
    show_setup(screen)
    try:
        while True:
            try:
                session.start()
                return True
            except (CameraError, ModelLoadError):
                if not wait_for_retry(screen):
                    return False
    finally:
        screen.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = parse_args(argv, description="Webcam virtual nail try-on.")
    configure_logging(config.log_level)

    try:
        designs = load_designs(config)
    except (DesignsApiError, DesignLoadError) as e:
        logger.error("%s", e)
        designs = []

    selection = make_selection(config, designs)
    session = make_session(config, selection)

    def on_frame(frame) -> bool:
        if frame is not None:
            cv2.imshow(WINDOW_TITLE, draw_banner(frame.copy(), hud_lines(selection)))
        key = cv2.waitKey(1) & 0xFF
        if key in (ord("q"), 27):
            return False
        if key == ord("n"):
            selection.select_next()
        elif key == ord("p"):
            selection.select_previous()
        elif key == ord("l"):
            session.renderer.show_landmarks = not session.renderer.show_landmarks
        return True

    try:
        if start_with_retry(session):
            session.run(on_frame)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        session.stop()
        selection.close()
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
