"""正交旋转（0/90/180/270，顺时针）：图像、尺寸与坐标的换算。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

_VALID_DEGREES = (0, 90, 180, 270)


@dataclass(frozen=True)
class OrthogonalRotation:
    """预旋转角度，按顺时针计。"""

    degrees: int = 0

    def __post_init__(self) -> None:
        if self.degrees % 360 not in _VALID_DEGREES:
            raise ValueError(f"不支持的旋转角度：{self.degrees}")
        object.__setattr__(self, "degrees", self.degrees % 360)

    @classmethod
    def parse(cls, value) -> "OrthogonalRotation":
        if isinstance(value, OrthogonalRotation):
            return value
        return cls(int(value))

    def swaps_axes(self) -> bool:
        return self.degrees in (90, 270)

    def rotate_size(self, size: Tuple[int, int]) -> Tuple[int, int]:
        """(w, h) 按旋转换算。"""
        w, h = size
        return (h, w) if self.swaps_axes() else (w, h)

    def rotate_pair(self, pair: Tuple[float, float]) -> Tuple[float, float]:
        """与尺寸同理的成对量（如 DPI）。"""
        a, b = pair
        return (b, a) if self.swaps_axes() else (a, b)

    def __str__(self) -> str:
        return f"{self.degrees}°"


def rotate_image(img: np.ndarray, rotation: OrthogonalRotation) -> np.ndarray:
    """按顺时针 0/90/180/270 旋转 RGB/灰度图。"""
    if img is None or img.size == 0 or rotation.degrees == 0:
        return img
    if rotation.degrees == 90:
        return cv2.rotate(img, cv2.ROTATE_90_CLOCKWISE)
    if rotation.degrees == 180:
        return cv2.rotate(img, cv2.ROTATE_180)
    return cv2.rotate(img, cv2.ROTATE_90_COUNTERCLOCKWISE)
