"""缓存条目：依赖指纹、自动/手动模式与持久化参数。"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np

from pagesplit.layout import PageLayout
from pagesplit.orientation import OrthogonalRotation


class AutoManualMode(Enum):
    AUTO = "auto"
    MANUAL = "manual"


def content_signature(image: np.ndarray) -> str:
    """像素内容摘要：形状 + dtype + 原始字节。"""
    buf = np.ascontiguousarray(image)
    h = hashlib.blake2b(digest_size=16)
    h.update(f"{buf.shape}|{buf.dtype.str}".encode("ascii"))
    h.update(buf.tobytes())
    return h.hexdigest()


@dataclass(frozen=True)
class Dependencies:
    """
    影响分割结果的全部输入。按字段结构比较。

    matches() 决定缓存是否可复用：
    - AUTO：所有字段都须一致，自动分割线只对当时的单/双页分类有效；
    - MANUAL：忽略单/双页提示，但内容或旋转变化会让手绘分割线失去意义，仍判为失效。
    """

    content_signature: str
    image_size: Tuple[int, int]
    pre_rotation: OrthogonalRotation
    single_page: bool

    def matches(self, other: "Dependencies", mode: AutoManualMode) -> bool:
        if self.content_signature != other.content_signature:
            return False
        if self.image_size != other.image_size:
            return False
        if self.pre_rotation != other.pre_rotation:
            return False
        if mode is AutoManualMode.AUTO and self.single_page != other.single_page:
            return False
        return True


def build_dependencies(image: np.ndarray, pre_rotation: OrthogonalRotation, single_page: bool) -> Dependencies:
    """由原图、预旋转与单页判定构建依赖指纹（纯函数）。"""
    h, w = image.shape[:2]
    return Dependencies(
        content_signature=content_signature(image),
        image_size=(int(w), int(h)),
        pre_rotation=pre_rotation,
        single_page=bool(single_page),
    )


@dataclass(frozen=True)
class Params:
    """逐图持久化的布局缓存。"""

    page_layout: PageLayout
    dependencies: Dependencies
    mode: AutoManualMode = AutoManualMode.AUTO
