"""页面布局值类型：规则、单/双页分类与分割线。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

Point = Tuple[float, float]
BBox = Tuple[int, int, int, int]


class Rule(Enum):
    """逐图的用户偏好，本阶段只读。"""

    AUTO_DETECT = "auto"
    SINGLE_PAGE = "single"
    TWO_PAGES = "two"

    @classmethod
    def parse(cls, value) -> "Rule":
        if isinstance(value, Rule):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"未知的布局规则：{value!r}（可选 auto/single/two）") from None


class LayoutClass(Enum):
    """单页 / 双页二值分类。"""

    SINGLE_PAGE = 1
    TWO_PAGES = 2

    @property
    def num_pages(self) -> int:
        return self.value

    @property
    def is_single(self) -> bool:
        return self is LayoutClass.SINGLE_PAGE


@dataclass(frozen=True)
class SplitLine:
    """分割线，两端点均位于预旋转后的坐标系。"""

    top: Point
    bottom: Point

    @classmethod
    def vertical(cls, x: float, height: float) -> "SplitLine":
        return cls(top=(float(x), 0.0), bottom=(float(x), float(height)))

    def mean_x(self) -> float:
        return (self.top[0] + self.bottom[0]) / 2.0


@dataclass(frozen=True)
class PageLayout:
    """
    分割结果。只整体替换，不原地修改。
    "尚未计算" 用 None 表达（Optional[PageLayout]），不存在空布局。
    """

    kind: LayoutClass
    split_line: Optional[SplitLine] = None

    def __post_init__(self) -> None:
        if self.kind is LayoutClass.TWO_PAGES and self.split_line is None:
            raise ValueError("双页布局必须带分割线")

    @classmethod
    def single_page(cls) -> "PageLayout":
        return cls(kind=LayoutClass.SINGLE_PAGE)

    @classmethod
    def two_pages(cls, split_line: SplitLine) -> "PageLayout":
        return cls(kind=LayoutClass.TWO_PAGES, split_line=split_line)

    def num_sub_pages(self) -> int:
        return self.kind.num_pages

    def sub_page_bboxes(self, size: Tuple[int, int]) -> List[BBox]:
        """按预旋转后尺寸 (w, h) 给出子页 bbox (x0, y0, x1, y1)。"""
        w, h = size
        if self.kind is LayoutClass.SINGLE_PAGE:
            return [(0, 0, w, h)]
        cut = int(round(self.split_line.mean_x()))
        cut = max(1, min(w - 1, cut))
        return [(0, 0, cut, h), (cut, 0, w, h)]

    def to_dict(self) -> dict:
        data = {"type": "single" if self.kind.is_single else "double", "sub_pages": self.num_sub_pages()}
        if self.split_line is not None:
            data["split_line"] = [list(self.split_line.top), list(self.split_line.bottom)]
        return data
