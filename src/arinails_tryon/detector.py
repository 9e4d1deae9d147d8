from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import cv2

from .errors import ModelLoadError
from .model_assets import DEFAULT_MODEL_PATH, ensure_hand_landmarker_task
from .types import NUM_HAND_LANDMARKS, Hand, Landmark

logger = logging.getLogger(__name__)


HAND_CONNECTIONS: List[Tuple[int, int]] = [
    # thumb
    (0, 1),
    (1, 2),
    (2, 3),
    (3, 4),
    # index
    (0, 5),
    (5, 6),
    (6, 7),
    (7, 8),
    # middle
    (5, 9),
    (9, 10),
    (10, 11),
    (11, 12),
    # ring
    (9, 13),
    (13, 14),
    (14, 15),
    (15, 16),
    # pinky
    (13, 17),
    (17, 18),
    (18, 19),
    (19, 20),
    # palm base
    (0, 17),
]


@runtime_checkable
class LandmarkProvider(Protocol):
    """
    Anything that turns a video frame into detected hands.

    `timestamp_ms` must strictly increase between calls on the same provider.
    """

    def detect(self, frame_bgr, timestamp_ms: int) -> List[Hand]:
        ...

    def close(self) -> None:
        ...


@dataclass(frozen=True)
class _SolutionsBackend:
    mp: object
    hands: object


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    landmarker: object
    video_mode: bool


def _try_create_solutions_backend(
    static_image_mode: bool,
    max_num_hands: int,
    model_complexity: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = mp.solutions.hands.Hands(
        static_image_mode=static_image_mode,
        max_num_hands=max_num_hands,
        model_complexity=model_complexity,
        min_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _SolutionsBackend(mp=mp, hands=hands)


def _try_create_tasks_backend(
    model_path: str,
    static_image_mode: bool,
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """
    Backend for MediaPipe distributions that do not include `mp.solutions`.

    Uses the Tasks HandLandmarker API, which needs a `.task` model asset on disk.
    """

    import mediapipe as mp  # type: ignore

    # Import locations can differ slightly across builds.
    try:
        from mediapipe.tasks.python import BaseOptions  # type: ignore
        from mediapipe.tasks.python.vision import HandLandmarker, HandLandmarkerOptions, RunningMode  # type: ignore
    except ImportError:  # pragma: no cover
        from mediapipe.tasks import python as mp_python  # type: ignore

        BaseOptions = mp_python.BaseOptions
        vision = mp_python.vision
        HandLandmarker = vision.HandLandmarker
        HandLandmarkerOptions = vision.HandLandmarkerOptions
        RunningMode = vision.RunningMode

    model_path = ensure_hand_landmarker_task(model_path)

    options = HandLandmarkerOptions(
        base_options=BaseOptions(model_asset_path=model_path),
        running_mode=RunningMode.IMAGE if static_image_mode else RunningMode.VIDEO,
        num_hands=max_num_hands,
        min_hand_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    landmarker = HandLandmarker.create_from_options(options)
    return _TasksBackend(mp=mp, landmarker=landmarker, video_mode=not static_image_mode)


def hand_from_landmarks(landmarks: Sequence, label: Optional[str] = None, score: Optional[float] = None) -> Hand:
    """Build a Hand from any sequence of objects exposing `.x`, `.y` (and optionally `.z`)."""

    return Hand(
        landmarks=[
            Landmark(idx=idx, x=float(lm.x), y=float(lm.y), z=float(getattr(lm, "z", 0.0)))
            for idx, lm in enumerate(landmarks)
        ],
        handedness_label=label,
        handedness_score=score,
    )


class MediaPipeLandmarkProvider:
    """
    Hand landmark provider backed by MediaPipe Hands.

    Input frames are expected as **BGR** images (OpenCV default). Initialization
    failures are raised as ModelLoadError.
    """

    def __init__(
        self,
        static_image_mode: bool = False,
        max_num_hands: int = 2,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        min_hand_confidence: float = 0.0,
        tasks_model_path: str = DEFAULT_MODEL_PATH,
    ) -> None:
        self._static_image_mode = static_image_mode
        self._max_num_hands = max_num_hands
        self._min_hand_confidence = min_hand_confidence
        self._last_timestamp_ms: Optional[int] = None
        self._tasks: Optional[_TasksBackend] = None

        try:
            self._solutions: Optional[_SolutionsBackend] = _try_create_solutions_backend(
                static_image_mode=static_image_mode,
                max_num_hands=max_num_hands,
                model_complexity=model_complexity,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except ImportError as e:
            raise ModelLoadError(f"mediapipe is not installed: {e}") from e
        except Exception as e:
            raise ModelLoadError(f"Could not initialize MediaPipe Hands: {e}") from e

        if self._solutions is None:
            logger.info("mediapipe has no `solutions` module; using the Tasks HandLandmarker")
            try:
                self._tasks = _try_create_tasks_backend(
                    model_path=tasks_model_path,
                    static_image_mode=static_image_mode,
                    max_num_hands=max_num_hands,
                    min_detection_confidence=min_detection_confidence,
                    min_tracking_confidence=min_tracking_confidence,
                )
            except ModelLoadError:
                raise
            except Exception as e:
                raise ModelLoadError(
                    "Could not initialize the MediaPipe Tasks HandLandmarker from "
                    f"{tasks_model_path}: {e}"
                ) from e

    def close(self) -> None:
        solutions, self._solutions = self._solutions, None
        tasks, self._tasks = self._tasks, None
        if solutions is not None:
            solutions.hands.close()
        if tasks is not None:
            tasks.landmarker.close()

    def __enter__(self) -> "MediaPipeLandmarkProvider":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_timestamp(self, timestamp_ms: int) -> None:
        if self._last_timestamp_ms is not None and timestamp_ms <= self._last_timestamp_ms:
            raise ValueError(
                f"timestamp_ms must increase between calls (got {timestamp_ms} after {self._last_timestamp_ms})"
            )
        self._last_timestamp_ms = timestamp_ms

    def detect(self, frame_bgr, timestamp_ms: int) -> List[Hand]:
        self._check_timestamp(timestamp_ms)
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._solutions is not None:
            return self._detect_solutions(frame_rgb)
        if self._tasks is not None:
            return self._detect_tasks(frame_rgb, timestamp_ms)
        return []

    def _detect_solutions(self, frame_rgb) -> List[Hand]:
        results = self._solutions.hands.process(frame_rgb)
        if not results.multi_hand_landmarks:
            return []

        handedness_list = results.multi_handedness or []
        hands: List[Hand] = []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            label: Optional[str] = None
            score: Optional[float] = None
            if i < len(handedness_list) and handedness_list[i].classification:
                c = handedness_list[i].classification[0]
                label = getattr(c, "label", None)
                score = float(getattr(c, "score", 0.0))
            hands.append(hand_from_landmarks(hand_landmarks.landmark, label, score))

        return self._filter(hands)

    def _detect_tasks(self, frame_rgb, timestamp_ms: int) -> List[Hand]:
        mp = self._tasks.mp
        if not hasattr(mp, "Image") or not hasattr(mp, "ImageFormat"):
            raise RuntimeError("Your MediaPipe build does not expose `mp.Image` required for the Tasks API.")

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        if self._tasks.video_mode:
            result = self._tasks.landmarker.detect_for_video(mp_image, int(timestamp_ms))
        else:
            result = self._tasks.landmarker.detect(mp_image)

        hand_landmarks_list = getattr(result, "hand_landmarks", None) or []
        handedness_list = getattr(result, "handedness", None) or []

        hands: List[Hand] = []
        for i, landmarks in enumerate(hand_landmarks_list):
            label = None
            score = None
            if i < len(handedness_list) and handedness_list[i]:
                cat0 = handedness_list[i][0]
                label = getattr(cat0, "category_name", None) or getattr(cat0, "display_name", None)
                score = float(getattr(cat0, "score", 0.0))
            hands.append(hand_from_landmarks(landmarks, label, score))

        return self._filter(hands)

    def _filter(self, hands: List[Hand]) -> List[Hand]:
        kept = [
            h
            for h in hands
            if len(h) == NUM_HAND_LANDMARKS
            and (h.handedness_score is None or h.handedness_score >= self._min_hand_confidence)
        ]
        return kept[: self._max_num_hands]


def draw_landmarks(frame_bgr, hands: List[Hand]):
    """Debug overlay: the 21-point skeleton of each hand."""

    h, w = frame_bgr.shape[:2]
    for hand in hands:
        pts = [(int(round(lm.x * w)), int(round(lm.y * h))) for lm in hand.landmarks]
        for a, b in HAND_CONNECTIONS:
            if a < len(pts) and b < len(pts):
                cv2.line(frame_bgr, pts[a], pts[b], (0, 255, 255), 2, cv2.LINE_AA)
        for pt in pts:
            cv2.circle(frame_bgr, pt, 3, (40, 255, 120), -1, lineType=cv2.LINE_AA)
    return frame_bgr
