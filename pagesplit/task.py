"""
单张图的分页任务：判定单/双页、校验缓存、按需定位分割线，并转交下一阶段或产出界面结果。
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from pagesplit.classifier import classify
from pagesplit.context import FilterData, ImageId
from pagesplit.debug_utils import DebugImages
from pagesplit.layout import PageLayout
from pagesplit.page_split import find_split_line
from pagesplit.params import AutoManualMode, Params, build_dependencies
from pagesplit.settings import PageSequence, Settings
from pagesplit.ui_handoff import UiData, UiUpdater

log = logging.getLogger(__name__)

Locator = Callable[..., PageLayout]


class TaskCancelled(Exception):
    """下游阶段通过 TaskStatus.throw_if_cancelled() 主动中止。"""


class TaskStatus:
    """协作式取消令牌，任务在约定的检查点轮询。"""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def throw_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise TaskCancelled()


class Task:
    """
    每次 process() 都是对持久状态的一次全新运行。

    settings / page_sequence / filter 均为借用引用，所有权在 PageSplitFilter 与流水线。
    next_stage 需提供 process(status, data, layout)，返回值原样透传。
    """

    def __init__(
        self,
        filter_,
        settings: Settings,
        page_sequence: PageSequence,
        next_stage: Any,
        image_id: ImageId,
        debug: bool = False,
        locator: Locator = find_split_line,
        debug_images: Optional[DebugImages] = None,
    ) -> None:
        self._filter = filter_
        self._settings = settings
        self._page_sequence = page_sequence
        self._next_stage = next_stage
        self._image_id = image_id
        self._locator = locator
        if debug_images is None and debug:
            debug_images = DebugImages()
        self._debug_images = debug_images

    @property
    def image_id(self) -> ImageId:
        return self._image_id

    def process(self, status: TaskStatus, data: FilterData) -> Optional[Any]:
        """取消时返回 None，且不产生任何写入（计算后取消时保留已写入的参数）。"""
        if status.is_cancelled():
            log.info("task: %s 开始前已取消", self._image_id)
            return None

        pre_rotation = data.xform.pre_rotation
        rule = self._settings.get_rule_for(self._image_id)
        layout_class, auto_detected = classify(rule, data.metadata(), pre_rotation)

        single_page = layout_class.is_single
        deps = build_dependencies(data.image, pre_rotation, single_page)
        layout: Optional[PageLayout] = None
        mode = AutoManualMode.AUTO

        params = self._settings.get_page_params(self._image_id)
        if params is not None:
            mode = params.mode
            if deps.matches(params.dependencies, mode):
                layout = params.page_layout

        if layout is None:
            log.info("task: %s 缓存未命中，重新定位分割线（rule=%s mode=%s）", self._image_id, rule.value, mode.value)
            layout = self._locator(
                data.image, pre_rotation, data.bw_threshold, single_page, self._debug_images
            )
            self._settings.set_page_params(self._image_id, Params(layout, deps, mode))
            if status.is_cancelled():
                log.info("task: %s 计算后取消，已保留新参数", self._image_id)
                return None
        else:
            log.debug("task: %s 复用缓存布局（mode=%s）", self._image_id, mode.value)

        ui_data = UiData(
            auto_detected_layout=auto_detected,
            dependencies=deps,
            page_layout=layout,
            mode=mode,
        )

        self._page_sequence.set_logical_pages_in_image(self._image_id, layout.num_sub_pages())

        if self._next_stage is not None:
            return self._next_stage.process(status, data, layout)
        return UiUpdater(
            self._filter,
            self._image_id,
            self._debug_images,
            data.image,
            data.xform,
            ui_data,
        )
