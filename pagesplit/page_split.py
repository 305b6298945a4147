"""分割线定位：在预旋转后的图像上按列投影寻找装订谷。"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from pagesplit import debug_utils
from pagesplit.debug_utils import DebugImages
from pagesplit.layout import PageLayout, SplitLine
from pagesplit.orientation import OrthogonalRotation, rotate_image

log = logging.getLogger(__name__)


def _smooth(proj: np.ndarray, blur_kernel: int) -> np.ndarray:
    if blur_kernel <= 1 or proj.size == 0:
        return proj.astype("float32")
    row = proj.astype("float32").reshape(1, -1)
    return cv2.blur(row, (int(blur_kernel), 1)).ravel()


def _find_valley(proj: np.ndarray, lo: int, hi: int, plateau_tol: float = 0.05) -> Tuple[int, float]:
    """
    在 [lo, hi) 内寻找谷值位置及显著性（0-1）。
    显著性相对窗口中位数计算；谷底为平台时取平台中点。
    """
    window = proj[lo:hi]
    if window.size == 0:
        return (lo + hi) // 2, 0.0
    min_val = float(np.min(window))
    median = float(np.median(window))
    if median <= 1e-6:
        return (lo + hi) // 2, 0.0
    prominence = (median - min_val) / median
    idx = int(np.argmin(window))
    low = window <= min_val + plateau_tol * (median - min_val)
    start, end = idx, idx
    while start > 0 and low[start - 1]:
        start -= 1
    while end < window.size - 1 and low[end + 1]:
        end += 1
    return lo + (start + end) // 2, float(prominence)


def find_split_line(
    image: np.ndarray,
    pre_rotation: OrthogonalRotation,
    bw_threshold: int,
    single_page: bool,
    debug: Optional[DebugImages] = None,
    cut_range: Tuple[float, float] = (0.35, 0.65),
    blur_kernel: int = 9,
    min_prominence: float = 0.0,
) -> PageLayout:
    """
    计算页面布局。单页直接返回不切分布局；双页时同时考察两种装订谷：
    - 空白谷：墨迹投影的极小值（两页间留白）；
    - 阴影谷：纸面投影的极小值（书脊阴影偏暗）。
    取显著性更高者作为分割位置，均不显著时退回中线。
    """
    rotated = rotate_image(image, pre_rotation)
    h, w = rotated.shape[:2]
    if single_page:
        layout = PageLayout.single_page()
        if debug is not None:
            debug.add(debug_utils.draw_layout(rotated, layout), "layout")
        return layout

    gray = rotated if rotated.ndim == 2 else cv2.cvtColor(rotated, cv2.COLOR_RGB2GRAY)
    ink = (gray <= bw_threshold).astype(np.uint8)
    ink_proj = _smooth(np.sum(ink, axis=0), blur_kernel)
    paper_proj = _smooth(h - np.sum(ink, axis=0), blur_kernel)

    lo = int(w * cut_range[0])
    hi = max(lo + 1, int(w * cut_range[1]))
    blank_x, blank_prom = _find_valley(ink_proj, lo, hi)
    shadow_x, shadow_prom = _find_valley(paper_proj, lo, hi)
    if max(blank_prom, shadow_prom) <= 1e-6:
        valley, prominence, kind = w // 2, 0.0, "center"
    elif shadow_prom > blank_prom:
        valley, prominence, kind = shadow_x, shadow_prom, "shadow"
    else:
        valley, prominence, kind = blank_x, blank_prom, "blank"
    log.info("split: double page w=%d valley=%d kind=%s prom=%.3f", w, valley, kind, prominence)
    if prominence < min_prominence:
        log.warning("split: 装订谷不明显 prom=%.3f < %.3f，分割线可能需要手动调整", prominence, min_prominence)

    layout = PageLayout.two_pages(SplitLine.vertical(valley, h))
    if debug is not None:
        debug.add(ink * 255, "binarized")
        chosen = paper_proj if kind == "shadow" else ink_proj
        debug.add(debug_utils.projection_plot(chosen, valley, (lo, hi)), "projection")
        debug.add(debug_utils.draw_layout(rotated, layout), "layout")
    return layout
