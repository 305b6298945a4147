from __future__ import annotations

import numpy as np

from pagesplit.context import FilterData
from pagesplit.debug_utils import DebugImages
from pagesplit.layout import LayoutClass
from pagesplit.orientation import OrthogonalRotation
from pagesplit.page_split import find_split_line


def _threshold(image: np.ndarray) -> int:
    return FilterData(image=image).bw_threshold


def test_blank_gutter_found_between_text_columns(text_spread) -> None:
    layout = find_split_line(text_spread, OrthogonalRotation(0), _threshold(text_spread), single_page=False)
    assert layout.kind is LayoutClass.TWO_PAGES
    assert abs(layout.split_line.mean_x() - 200) <= 3


def test_dark_spine_shadow_found(shadow_spread) -> None:
    layout = find_split_line(shadow_spread, OrthogonalRotation(0), _threshold(shadow_spread), single_page=False)
    assert abs(layout.split_line.mean_x() - 200) <= 3


def test_pre_rotation_applied_before_search(text_spread) -> None:
    stored = np.ascontiguousarray(np.rot90(text_spread))  # 存盘时逆时针转了 90°
    layout = find_split_line(stored, OrthogonalRotation(90), _threshold(stored), single_page=False)
    assert abs(layout.split_line.mean_x() - 200) <= 3
    assert layout.split_line.bottom[1] == 200.0


def test_single_page_is_not_cut(text_spread) -> None:
    layout = find_split_line(text_spread, OrthogonalRotation(0), _threshold(text_spread), single_page=True)
    assert layout.num_sub_pages() == 1
    assert layout.split_line is None


def test_blank_image_falls_back_to_centre() -> None:
    blank = np.full((100, 300, 3), 255, dtype=np.uint8)
    layout = find_split_line(blank, OrthogonalRotation(0), 128, single_page=False)
    assert layout.split_line.mean_x() == 150


def test_debug_images_collected(text_spread) -> None:
    debug = DebugImages()
    find_split_line(text_spread, OrthogonalRotation(0), _threshold(text_spread), False, debug)
    labels = [label for label, _ in debug]
    assert labels == ["binarized", "projection", "layout"]
