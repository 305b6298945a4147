"""单/双页判定：AUTO_DETECT 走启发式，其余规则直接强制。"""

from __future__ import annotations

from typing import Optional, Tuple

from pagesplit.context import ImageMetadata
from pagesplit.layout import LayoutClass, Rule
from pagesplit.orientation import OrthogonalRotation
from pagesplit.settings import PageSequence


def classify(
    rule: Rule, metadata: ImageMetadata, pre_rotation: OrthogonalRotation
) -> Tuple[LayoutClass, Optional[LayoutClass]]:
    """返回 (最终分类, 自动检测提示)。提示仅在 AUTO_DETECT 时给出，用于界面展示。"""
    if rule is Rule.AUTO_DETECT:
        advised = PageSequence.advise_number_of_logical_pages(metadata, pre_rotation)
        return advised, advised
    if rule is Rule.SINGLE_PAGE:
        return LayoutClass.SINGLE_PAGE, None
    return LayoutClass.TWO_PAGES, None
