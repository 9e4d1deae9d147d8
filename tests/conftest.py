from __future__ import annotations

import numpy as np
import pytest


@pytest.fixture
def frame_640():
    return np.full((480, 640, 3), 40, dtype=np.uint8)


@pytest.fixture
def design_image():
    img = np.zeros((40, 20, 4), dtype=np.uint8)
    img[:, :] = (0, 0, 255, 255)
    return img
