from .camera import VideoCaptureAdapter
from .designs import DesignSelection, DesignsClient
from .detector import LandmarkProvider, MediaPipeLandmarkProvider
from .renderer import NailOverlayRenderer
from .session import TryOnSession
from .types import Design, Hand, Landmark, OverlayPlacement

__all__ = [
    "VideoCaptureAdapter",
    "DesignSelection",
    "DesignsClient",
    "LandmarkProvider",
    "MediaPipeLandmarkProvider",
    "NailOverlayRenderer",
    "TryOnSession",
    "Design",
    "Hand",
    "Landmark",
    "OverlayPlacement",
]
