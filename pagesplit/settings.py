"""逐图规则/参数存储与共享页数登记，均可跨线程访问。"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple

from pagesplit.context import ImageId, ImageMetadata
from pagesplit.layout import LayoutClass, Rule
from pagesplit.orientation import OrthogonalRotation
from pagesplit.params import Params

log = logging.getLogger(__name__)


class Settings:
    """规则仓库 + 参数缓存，按 ImageId 索引。只负责存取，不做失效判断。"""

    def __init__(self, default_rule: Rule = Rule.AUTO_DETECT) -> None:
        self._lock = Lock()
        self._default_rule = default_rule
        self._rules: Dict[ImageId, Rule] = {}
        self._params: Dict[ImageId, Params] = {}

    def get_rule_for(self, image_id: ImageId) -> Rule:
        with self._lock:
            return self._rules.get(image_id, self._default_rule)

    def set_rule_for(self, image_id: ImageId, rule: Rule) -> None:
        with self._lock:
            self._rules[image_id] = rule

    def set_default_rule(self, rule: Rule) -> None:
        with self._lock:
            self._default_rule = rule
            self._rules.clear()

    def get_page_params(self, image_id: ImageId) -> Optional[Params]:
        with self._lock:
            return self._params.get(image_id)

    def set_page_params(self, image_id: ImageId, params: Params) -> None:
        with self._lock:
            self._params[image_id] = params

    def clear_page_params(self, image_id: ImageId) -> None:
        with self._lock:
            self._params.pop(image_id, None)


class PageSequence:
    """共享页数登记：image_id -> 逻辑页数，供后续编号与导航使用。"""

    def __init__(self, image_ids: Iterable[ImageId] = ()) -> None:
        self._lock = Lock()
        self._order: List[ImageId] = []
        self._pages: Dict[ImageId, int] = {}
        for image_id in image_ids:
            self.add_image(image_id)

    def add_image(self, image_id: ImageId) -> None:
        with self._lock:
            if image_id not in self._pages:
                self._order.append(image_id)
                self._pages[image_id] = 1

    def set_logical_pages_in_image(self, image_id: ImageId, num_pages: int) -> None:
        if num_pages not in (1, 2):
            raise ValueError(f"逻辑页数只能为 1 或 2：{num_pages}")
        with self._lock:
            if image_id not in self._pages:
                self._order.append(image_id)
            self._pages[image_id] = num_pages
        log.debug("page_sequence: %s -> %d", image_id, num_pages)

    def logical_pages_in_image(self, image_id: ImageId) -> int:
        with self._lock:
            return self._pages.get(image_id, 1)

    def total_logical_pages(self) -> int:
        with self._lock:
            return sum(self._pages.values())

    def logical_pages(self) -> List[Tuple[ImageId, int]]:
        """按加入顺序展开 (image_id, 子页序号)。"""
        with self._lock:
            return [(image_id, idx) for image_id in self._order for idx in range(self._pages[image_id])]

    @staticmethod
    def advise_number_of_logical_pages(metadata: ImageMetadata, pre_rotation: OrthogonalRotation) -> LayoutClass:
        """物理宽度大于物理高度时建议双页。"""
        w, h = pre_rotation.rotate_size(metadata.size)
        dpi_x, dpi_y = pre_rotation.rotate_pair(metadata.dpi)
        if w * dpi_y > h * dpi_x:
            return LayoutClass.TWO_PAGES
        return LayoutClass.SINGLE_PAGE
