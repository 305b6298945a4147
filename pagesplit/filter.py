"""分页阶段的所有者：持有设置、页序与选项面板，为每次运行创建 Task。"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, Optional

import numpy as np

from pagesplit.context import ImageId, ImageTransformation
from pagesplit.debug_utils import DebugImages
from pagesplit.layout import PageLayout
from pagesplit.options import LayoutView, OptionsPanel
from pagesplit.page_split import find_split_line
from pagesplit.settings import PageSequence, Settings
from pagesplit.task import Locator, Task


def locator_from_config(conf: Dict[str, Any]) -> Locator:
    """按 split 配置绑定分割线定位参数。"""
    split_cfg = conf.get("split") or {}
    return functools.partial(
        find_split_line,
        cut_range=tuple(split_cfg.get("cut_range", (0.35, 0.65))),
        blur_kernel=int(split_cfg.get("blur_kernel", 9)),
        min_prominence=float(split_cfg.get("min_prominence", 0.0)),
    )


class PageSplitFilter:
    def __init__(
        self,
        settings: Settings,
        page_sequence: PageSequence,
        locator: Locator = find_split_line,
        debug: bool = False,
        on_reload: Optional[Callable[[ImageId], Any]] = None,
    ) -> None:
        self._settings = settings
        self._page_sequence = page_sequence
        self._locator = locator
        self._debug = debug
        self._on_reload = on_reload
        self._options_widget: Optional[OptionsPanel] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def page_sequence(self) -> PageSequence:
        return self._page_sequence

    def options_widget(self) -> OptionsPanel:
        # 界面线程首次使用时创建
        if self._options_widget is None:
            self._options_widget = OptionsPanel(self._settings, self._page_sequence)
            if self._on_reload is not None:
                self._options_widget.reload_requested.connect(self._on_reload)
        return self._options_widget

    def create_image_view(self, image: np.ndarray, xform: ImageTransformation, layout: PageLayout) -> LayoutView:
        return LayoutView(image, xform, layout)

    def create_task(
        self, image_id: ImageId, next_stage: Any = None, debug_images: Optional[DebugImages] = None
    ) -> Task:
        return Task(
            self,
            self._settings,
            self._page_sequence,
            next_stage,
            image_id,
            debug=self._debug,
            locator=self._locator,
            debug_images=debug_images,
        )
