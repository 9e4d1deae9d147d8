from __future__ import annotations

import logging
import os
import ssl
import subprocess
import urllib.request

from .errors import ModelLoadError

logger = logging.getLogger(__name__)


HAND_LANDMARKER_TASK_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"
)
DEFAULT_MODEL_PATH = os.path.join("models", "hand_landmarker.task")


def ssl_context() -> ssl.SSLContext:
    """Default SSL context, using certifi's CA bundle when it is installed."""

    try:
        import certifi

        return ssl.create_default_context(cafile=certifi.where())
    except ImportError:
        return ssl.create_default_context()


def _remove_partial(path: str) -> None:
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        logger.warning("Could not remove partial download %s", path)


def _download_with_urllib(url: str, model_path: str, timeout_s: int) -> None:
    with urllib.request.urlopen(url, context=ssl_context(), timeout=timeout_s) as r, open(model_path, "wb") as f:
        f.write(r.read())


def _download_with_curl(url: str, model_path: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["curl", "-fL", "-o", model_path, url],
        check=False,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def ensure_hand_landmarker_task(model_path: str, *, url: str = HAND_LANDMARKER_TASK_URL, timeout_s: int = 30) -> str:
    """
    Ensure `hand_landmarker.task` exists at `model_path`.

    If missing, downloads it from the MediaPipe model bucket (urllib first, curl as
    fallback). Raises ModelLoadError when neither works.
    """

    if os.path.exists(model_path):
        return model_path

    os.makedirs(os.path.dirname(model_path) or ".", exist_ok=True)
    logger.info("Downloading hand landmarker model to %s", model_path)

    try:
        _download_with_urllib(url, model_path, timeout_s)
        return model_path
    except Exception as e:
        logger.warning("Model download via urllib failed (%s); trying curl", e)
        _remove_partial(model_path)
        first_error = e

    curl_err = ""
    try:
        proc = _download_with_curl(url, model_path)
        if proc.returncode == 0 and os.path.exists(model_path) and os.path.getsize(model_path) > 0:
            return model_path
        curl_err = proc.stderr.strip()
    except OSError as e:
        curl_err = str(e)

    _remove_partial(model_path)

    raise ModelLoadError(
        "Missing MediaPipe Tasks model file and auto-download failed.\n\n"
        f"Expected model at: {model_path}\n"
        f"URL: {url}\n\n"
        "Download it manually:\n"
        f'  mkdir -p "{os.path.dirname(model_path) or "."}"\n'
        f'  curl -L -o "{model_path}" "{url}"\n'
        + (f"\ncurl stderr:\n{curl_err}\n" if curl_err else "")
    ) from first_error
