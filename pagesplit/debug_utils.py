"""调试与可视化工具：收集、绘制与保存调试图。"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Tuple

import cv2
import numpy as np

from pagesplit import io_utils
from pagesplit.layout import PageLayout


class DebugImages:
    """调试图收集器：分割线定位过程中按顺序追加 (标签, 图像)。"""

    def __init__(self) -> None:
        self._items: List[Tuple[str, np.ndarray]] = []

    def add(self, image: np.ndarray, label: str) -> None:
        self._items.append((label, image))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Tuple[str, np.ndarray]]:
        return iter(self._items)

    def save_all(self, out_dir: Path, prefix: str) -> List[str]:
        """逐张落盘，返回路径列表。"""
        paths = []
        for idx, (label, image) in enumerate(self._items):
            path = out_dir / f"{idx:02d}_{prefix}_{label}.png"
            save_debug_image(image, path)
            paths.append(str(path))
        return paths


def save_debug_image(arr: np.ndarray, path: Path) -> None:
    """保存调试图，保证目录存在。"""
    path.parent.mkdir(parents=True, exist_ok=True)
    io_utils.save_image(arr, str(path))


def projection_plot(proj: np.ndarray, valley: int, cut_range: Tuple[int, int], height: int = 200) -> np.ndarray:
    """把列投影画成折线图，标出搜索区间与谷值。"""
    width = max(1, int(proj.size))
    canvas = np.full((height, width, 3), 255, dtype=np.uint8)
    peak = float(proj.max()) if proj.size else 0.0
    if peak > 0:
        ys = (height - 1 - (proj / peak) * (height - 1)).astype(np.int32)
        pts = np.stack([np.arange(width, dtype=np.int32), ys], axis=1)
        cv2.polylines(canvas, [pts.reshape(-1, 1, 2)], isClosed=False, color=(0, 0, 0), thickness=1)
    lo, hi = cut_range
    cv2.line(canvas, (lo, 0), (lo, height - 1), (0, 200, 0), 1)
    cv2.line(canvas, (hi, 0), (hi, height - 1), (0, 200, 0), 1)
    cv2.line(canvas, (valley, 0), (valley, height - 1), (255, 0, 255), 2)
    return canvas


def draw_layout(image: np.ndarray, layout: PageLayout) -> np.ndarray:
    """在（预旋转后的）图像副本上绘制分割线与图例。"""
    overlay = image.copy()
    if overlay.ndim == 2:
        overlay = cv2.cvtColor(overlay, cv2.COLOR_GRAY2RGB)
    line_thickness = max(2, min(overlay.shape[:2]) // 200)
    if layout.split_line is not None:
        top = tuple(int(round(v)) for v in layout.split_line.top)
        bottom = tuple(int(round(v)) for v in layout.split_line.bottom)
        cv2.line(overlay, top, bottom, (255, 0, 255), line_thickness)
    text = f"Pink=split line  pages={layout.num_sub_pages()}"
    cv2.putText(overlay, text, (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 0), 3, cv2.LINE_AA)
    cv2.putText(overlay, text, (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (255, 255, 0), 2, cv2.LINE_AA)
    return overlay
