from __future__ import annotations


class TryOnError(Exception):
    """Base class for every error raised by the try-on package."""

    user_message = "Something went wrong with the virtual try-on."

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail


class CameraError(TryOnError):
    user_message = "Could not access the camera."


class CameraPermissionDenied(CameraError):
    user_message = (
        "Camera permission denied. Allow camera access for this application in your "
        "system privacy settings, then retry."
    )


class CameraNotFound(CameraError):
    user_message = "No camera was found. Check that your device has a camera connected."


class CameraBusy(CameraError):
    user_message = "The camera is in use by another application. Close it and retry."


class UnsupportedEnvironment(CameraError):
    user_message = "This environment does not support video capture (OpenCV was built without camera support)."


class CameraTimeout(CameraError):
    user_message = "The camera did not become ready in time. Reconnect it and retry."


class ModelLoadError(TryOnError):
    user_message = "The hand detector could not be loaded."


class DesignLoadError(TryOnError):
    user_message = "The selected design image could not be loaded."


class DesignsApiError(TryOnError):
    user_message = "Could not fetch the list of designs."
