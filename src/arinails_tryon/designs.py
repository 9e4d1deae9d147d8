from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional

import cv2
import numpy as np

from .errors import DesignLoadError, DesignsApiError
from .model_assets import ssl_context
from .overlay import as_bgra
from .types import Design

logger = logging.getLogger(__name__)


IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp")

ImageLoader = Callable[[str], np.ndarray]


def resolve_image_url(base_url: str, image_url: str) -> str:
    """Join a design's relative image path (as stored by the API) onto the API base URL."""

    if image_url.startswith(("http://", "https://", "file://")):
        return image_url
    return base_url.rstrip("/") + "/" + image_url.lstrip("/")


def _read_source(source: str, timeout_s: float) -> bytes:
    if source.startswith(("http://", "https://")):
        with urllib.request.urlopen(source, context=ssl_context(), timeout=timeout_s) as r:
            return r.read()
    if source.startswith("file://"):
        source = urllib.request.url2pathname(urllib.parse.urlparse(source).path)
    with open(source, "rb") as f:
        return f.read()


def load_design_image(source: str, *, timeout_s: float = 10.0) -> np.ndarray:
    """
    Fetch and decode a design image from an http(s) URL or a local path.

    Returns a BGRA uint8 array; images without alpha get a fully opaque channel.
    """

    try:
        data = _read_source(source, timeout_s)
    except (OSError, urllib.error.URLError) as e:
        raise DesignLoadError(f"Could not read design image {source}: {e}") from e

    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise DesignLoadError(f"Could not decode design image {source}")
    return as_bgra(image)


def designs_from_directory(path: str) -> List[Design]:
    """Every image file in `path` as a Design, sorted by file name."""

    if not os.path.isdir(path):
        raise DesignLoadError(f"Design directory not found: {path}")

    designs: List[Design] = []
    names = sorted(n for n in os.listdir(path) if n.lower().endswith(IMAGE_EXTENSIONS))
    for i, name in enumerate(names, start=1):
        designs.append(
            Design(
                id=i,
                title=os.path.splitext(name)[0].replace("_", " ").replace("-", " ").title(),
                image_url=os.path.abspath(os.path.join(path, name)),
            )
        )
    return designs


class DesignsClient:
    """Read-only client for the salon's Designs API (public `active` listing)."""

    def __init__(self, base_url: str, *, timeout_s: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def _get_json(self, path: str):
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, headers={"Accept": "application/json"})
        context = ssl_context() if url.startswith("https://") else None
        try:
            with urllib.request.urlopen(req, context=context, timeout=self.timeout_s) as r:
                body = r.read()
        except urllib.error.HTTPError as e:
            raise DesignsApiError(f"GET {url} failed with HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise DesignsApiError(f"GET {url} failed: {e}") from e

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DesignsApiError(f"GET {url} returned invalid JSON") from e

    def list_active(self) -> List[Design]:
        payload = self._get_json("/disenos/active")
        items = payload.get("data") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise DesignsApiError("Unexpected response shape from /disenos/active")

        designs: List[Design] = []
        for item in items:
            try:
                design = Design.from_api(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed design entry %r: %s", item, e)
                continue
            if not design.active:
                continue
            designs.append(
                Design(
                    id=design.id,
                    title=design.title,
                    image_url=resolve_image_url(self.base_url, design.image_url),
                    description=design.description,
                    author_id=design.author_id,
                    author_name=design.author_name,
                    created_at=design.created_at,
                    active=design.active,
                )
            )
        logger.info("Fetched %d active designs", len(designs))
        return designs


class DesignSelection:
    """
    The currently selected design and its decoded image.

    Loading runs on a single worker thread; `poll()` adopts the result on the caller's
    thread, so readers of `image` never observe a half-finished load.
    """

    def __init__(self, loader: ImageLoader = load_design_image, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self._loader = loader
        self._owns_executor = executor is None
        self._executor = executor if executor is not None else ThreadPoolExecutor(max_workers=1)
        self._future: Optional[Future] = None

        self.designs: List[Design] = []
        self.selected: Optional[Design] = None
        self.image: Optional[np.ndarray] = None
        self.last_error: Optional[Exception] = None

    @property
    def ready(self) -> bool:
        return self.selected is not None and self.image is not None

    def set_designs(self, designs: List[Design]) -> None:
        self.designs = list(designs)
        if self.designs and self.selected is None:
            self.select(self.designs[0])

    def select(self, design: Design) -> None:
        if self._future is not None:
            self._future.cancel()
        self.selected = design
        self.image = None
        self.last_error = None
        logger.info("Selected design %s (%s)", design.id, design.title)
        self._future = self._executor.submit(self._loader, design.image_url)

    def _step(self, offset: int) -> None:
        if not self.designs:
            return
        if self.selected is None or self.selected not in self.designs:
            idx = 0
        else:
            idx = (self.designs.index(self.selected) + offset) % len(self.designs)
        self.select(self.designs[idx])

    def select_next(self) -> None:
        self._step(1)

    def select_previous(self) -> None:
        self._step(-1)

    def poll(self) -> bool:
        """Adopt a finished load, if any. Returns True when the selected design is usable."""

        future = self._future
        if future is None or not future.done():
            return self.ready

        self._future = None
        if future.cancelled():
            return self.ready

        try:
            self.image = future.result()
            logger.debug("Design image ready for %s", self.selected.title if self.selected else None)
        except Exception as e:
            self.last_error = e
            logger.error("Could not load design %s: %s", self.selected.id if self.selected else None, e)
        return self.ready

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the pending load finishes (for still-image use), then poll."""

        future = self._future
        if future is not None:
            try:
                future.exception(timeout=timeout)
            except Exception:
                logger.debug("Waiting for design image failed", exc_info=True)
        return self.poll()

    def close(self) -> None:
        if self._future is not None:
            self._future.cancel()
            self._future = None
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def __enter__(self) -> "DesignSelection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
