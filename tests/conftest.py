"""Pytest configuration shared across the suite."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pagesplit.layout import PageLayout, SplitLine  # noqa: E402


def _to_rgb(gray: np.ndarray) -> np.ndarray:
    return np.stack([gray, gray, gray], axis=-1)


@pytest.fixture
def text_spread() -> np.ndarray:
    """White 400x200 spread: two text columns, blank gutter centred at x=200."""
    gray = np.full((200, 400), 250, dtype=np.uint8)
    for y in range(20, 180, 10):
        gray[y : y + 4, 30:171] = 0
        gray[y : y + 4, 230:371] = 0
    return _to_rgb(gray)


@pytest.fixture
def shadow_spread() -> np.ndarray:
    """Dark background, two bright pages and a dark spine shadow at x=195..205."""
    gray = np.full((200, 400), 20, dtype=np.uint8)
    gray[15:186, 20:176] = 245
    gray[15:186, 225:381] = 245
    gray[:, 195:206] = 5
    return _to_rgb(gray)


class CountingLocator:
    """Stand-in split-line locator that records every call."""

    def __init__(self, on_call=None) -> None:
        self.calls = []
        self._on_call = on_call

    def __call__(self, image, pre_rotation, bw_threshold, single_page, debug=None):
        self.calls.append({"rotation": pre_rotation, "single_page": single_page, "threshold": bw_threshold})
        if self._on_call is not None:
            self._on_call()
        if single_page:
            return PageLayout.single_page()
        w, h = pre_rotation.rotate_size((image.shape[1], image.shape[0]))
        return PageLayout.two_pages(SplitLine.vertical(w // 2, h))


@pytest.fixture
def counting_locator() -> CountingLocator:
    return CountingLocator()


@pytest.fixture
def locator_factory():
    return CountingLocator
