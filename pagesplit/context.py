"""流程上下文与输入数据结构。"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np

from pagesplit.orientation import OrthogonalRotation

DEFAULT_DPI: Tuple[float, float] = (300.0, 300.0)


@dataclass(frozen=True)
class ImageId:
    """图像标识：文件路径 + 多页文件中的页序号。"""

    path: str
    page: int = 0

    @property
    def name(self) -> str:
        return Path(self.path).name

    @property
    def stem(self) -> str:
        return Path(self.path).stem

    def __str__(self) -> str:
        return self.name if self.page == 0 else f"{self.name}#{self.page}"


@dataclass(frozen=True)
class ImageMetadata:
    """尺寸 (w, h) 与分辨率 (dpi_x, dpi_y)。"""

    size: Tuple[int, int]
    dpi: Tuple[float, float] = DEFAULT_DPI

    @classmethod
    def from_image(cls, image: np.ndarray, dpi: Tuple[float, float] | None = None) -> "ImageMetadata":
        h, w = image.shape[:2]
        return cls(size=(int(w), int(h)), dpi=dpi or DEFAULT_DPI)


@dataclass(frozen=True)
class ImageTransformation:
    """上游阶段给出的变换：预旋转 + 原始分辨率。"""

    pre_rotation: OrthogonalRotation = field(default_factory=OrthogonalRotation)
    origin_dpi: Tuple[float, float] = DEFAULT_DPI


@dataclass
class FilterData:
    """单张图在阶段间传递的输入：原图（RGB）与变换。"""

    image: np.ndarray
    xform: ImageTransformation = field(default_factory=ImageTransformation)

    @cached_property
    def grayscale(self) -> np.ndarray:
        if self.image.ndim == 2:
            return self.image
        return cv2.cvtColor(self.image, cv2.COLOR_RGB2GRAY)

    @cached_property
    def bw_threshold(self) -> int:
        """Otsu 全局阈值，供分割线定位做二值化。"""
        t, _ = cv2.threshold(self.grayscale, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return int(t)

    def metadata(self) -> ImageMetadata:
        return ImageMetadata.from_image(self.image, self.xform.origin_dpi)


@dataclass
class SubPageResult:
    """单个子页输出：序号、bbox（预旋转后坐标）与落盘路径。"""

    page_index: int
    page_id: str
    bbox: Tuple[int, int, int, int]
    path: str
    jpeg_path: str | None = None
