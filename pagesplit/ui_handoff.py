"""
工作线程 -> 界面线程的结果交接。

UiUpdater 在工作线程构造，只保存数据，不触碰任何界面资源；
materialize() 只允许在持有界面的线程执行，由 UiResultQueue 保证单消费者。
"""

from __future__ import annotations

import functools
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from pagesplit.context import ImageId, ImageTransformation
from pagesplit.debug_utils import DebugImages
from pagesplit.layout import LayoutClass, PageLayout
from pagesplit.params import AutoManualMode, Dependencies

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UiData:
    """单次运行产出的展示数据，用完即弃。"""

    auto_detected_layout: Optional[LayoutClass]
    dependencies: Dependencies
    page_layout: PageLayout
    mode: AutoManualMode


class FilterResult:
    """阶段的终端结果，界面线程调用 materialize(ui)。"""

    def materialize(self, ui) -> None:
        raise NotImplementedError


class UiUpdater(FilterResult):
    """
    携带图像、变换与 UiData 的惰性结果。

    ui 需提供 set_options_widget(panel) 与 set_image_widget(view, debug_images)；
    filter 需提供 options_widget() 与 create_image_view(image, xform, layout)。
    """

    def __init__(
        self,
        filter_,
        image_id: ImageId,
        debug_images: Optional[DebugImages],
        image: np.ndarray,
        xform: ImageTransformation,
        ui_data: UiData,
    ) -> None:
        self._filter = filter_
        self._image_id = image_id
        self._debug_images = debug_images
        self._image = image
        self._xform = xform
        self._ui_data = ui_data
        self._consumed = False

    @property
    def image_id(self) -> ImageId:
        return self._image_id

    @property
    def ui_data(self) -> UiData:
        return self._ui_data

    def materialize(self, ui) -> None:
        # 仅在界面线程执行
        if self._consumed:
            raise RuntimeError(f"UiUpdater 已被消费：{self._image_id}")
        self._consumed = True

        opt_widget = self._filter.options_widget()
        opt_widget.post_update_ui(self._image_id, self._ui_data)
        ui.set_options_widget(opt_widget)

        view = self._filter.create_image_view(self._image, self._xform, self._ui_data.page_layout)
        ui.set_image_widget(view, self._debug_images)

        # 编辑绑定到本结果的图像与依赖
        view.manual_page_layout_set.connect(
            functools.partial(opt_widget.commit_manual_layout, self._image_id, self._ui_data.dependencies)
        )


class UiResultQueue:
    """单消费者结果队列：任意线程 post，仅创建者线程 drain。"""

    def __init__(self) -> None:
        self._owner = threading.get_ident()
        self._queue: "queue.Queue[FilterResult]" = queue.Queue()

    def post(self, result: FilterResult) -> None:
        self._queue.put(result)

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, ui, timeout: float | None = None) -> int:
        """依次 materialize 已到达的结果，返回成功条数；单条失败只记日志。timeout 非空时先阻塞等待第一条。"""
        if threading.get_ident() != self._owner:
            raise RuntimeError("UiResultQueue.drain 只能在界面线程调用")
        count = 0
        if timeout is not None:
            try:
                first = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            count += self._materialize_safe(first, ui)
        while True:
            try:
                result = self._queue.get_nowait()
            except queue.Empty:
                break
            count += self._materialize_safe(result, ui)
        log.debug("ui_queue: materialized %d result(s)", count)
        return count

    @staticmethod
    def _materialize_safe(result: FilterResult, ui) -> int:
        try:
            result.materialize(ui)
        except Exception:  # noqa: BLE001
            log.exception("界面更新失败：%s", getattr(result, "image_id", result))
            return 0
        return 1
