"""无界面环境下的选项面板、布局视图与界面接收端。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from PySide6.QtCore import QObject, Signal

from pagesplit import debug_utils
from pagesplit.context import ImageId, ImageTransformation
from pagesplit.debug_utils import DebugImages
from pagesplit.layout import PageLayout, Rule, SplitLine
from pagesplit.orientation import rotate_image
from pagesplit.params import AutoManualMode, Dependencies, Params
from pagesplit.settings import PageSequence, Settings
from pagesplit.ui_handoff import UiData

log = logging.getLogger(__name__)


class OptionsPanel(QObject):
    """选项面板状态：展示当前图的判定结果，并把用户的手动修改写回设置。"""

    reload_requested = Signal(object)  # image_id
    layout_committed = Signal(object, object)  # image_id, layout

    def __init__(self, settings: Settings, page_sequence: PageSequence) -> None:
        super().__init__()
        self._settings = settings
        self._page_sequence = page_sequence
        self._image_id: Optional[ImageId] = None
        self._ui_data: Optional[UiData] = None

    @property
    def image_id(self) -> Optional[ImageId]:
        return self._image_id

    @property
    def ui_data(self) -> Optional[UiData]:
        return self._ui_data

    def post_update_ui(self, image_id: ImageId, ui_data: UiData) -> None:
        self._image_id = image_id
        self._ui_data = ui_data
        log.debug(
            "options: %s mode=%s pages=%d auto=%s",
            image_id,
            ui_data.mode.value,
            ui_data.page_layout.num_sub_pages(),
            ui_data.auto_detected_layout.name if ui_data.auto_detected_layout else "-",
        )

    def _require_current(self) -> ImageId:
        if self._image_id is None or self._ui_data is None:
            raise RuntimeError("选项面板尚未绑定图像")
        return self._image_id

    def manual_page_layout_set(self, layout: PageLayout) -> None:
        """对当前绑定的图像提交手动布局。"""
        image_id = self._require_current()
        self.commit_manual_layout(image_id, self._ui_data.dependencies, layout)

    def commit_manual_layout(self, image_id: ImageId, dependencies: Dependencies, layout: PageLayout) -> None:
        """
        用户拖动分割线后提交为 MANUAL 参数。
        dependencies 必须是产生该视图的那次运行的指纹，面板此时可能已切到别的图。
        """
        self._settings.set_page_params(image_id, Params(layout, dependencies, AutoManualMode.MANUAL))
        self._page_sequence.set_logical_pages_in_image(image_id, layout.num_sub_pages())
        if image_id == self._image_id and self._ui_data is not None:
            self._ui_data = UiData(
                auto_detected_layout=self._ui_data.auto_detected_layout,
                dependencies=dependencies,
                page_layout=layout,
                mode=AutoManualMode.MANUAL,
            )
        log.info("options: %s 手动布局已提交 pages=%d", image_id, layout.num_sub_pages())
        self.layout_committed.emit(image_id, layout)

    def set_auto_mode(self) -> None:
        """放弃手动布局，下次运行重新自动定位。"""
        image_id = self._require_current()
        self._settings.clear_page_params(image_id)
        self.reload_requested.emit(image_id)

    def apply_rule(self, rule: Rule, scope: str = "this") -> None:
        """scope: this 仅当前图；all 作为全部图的默认规则。"""
        image_id = self._require_current()
        if scope == "all":
            self._settings.set_default_rule(rule)
        elif scope == "this":
            self._settings.set_rule_for(image_id, rule)
        else:
            raise ValueError(f"未知的规则作用范围：{scope!r}")
        self.reload_requested.emit(image_id)


class LayoutView(QObject):
    """布局视图模型：在预旋转后的图像上显示分割线，手动调整时发出 manual_page_layout_set。"""

    manual_page_layout_set = Signal(object)  # PageLayout

    def __init__(self, image: np.ndarray, xform: ImageTransformation, layout: PageLayout) -> None:
        super().__init__()
        self._image = rotate_image(image, xform.pre_rotation)
        self._xform = xform
        self._layout = layout

    @property
    def layout(self) -> PageLayout:
        return self._layout

    def set_split_x(self, x: float) -> None:
        h, w = self._image.shape[:2]
        x = min(max(float(x), 1.0), float(w - 1))
        self._set_layout(PageLayout.two_pages(SplitLine.vertical(x, h)))

    def set_single_page(self) -> None:
        self._set_layout(PageLayout.single_page())

    def _set_layout(self, layout: PageLayout) -> None:
        self._layout = layout
        self.manual_page_layout_set.emit(layout)

    def render(self) -> np.ndarray:
        return debug_utils.draw_layout(self._image, self._layout)


class HeadlessUi:
    """界面接收端：记录展示内容，可选把预览与调试图落盘。"""

    def __init__(self, preview_dir: Path | None = None) -> None:
        self._preview_dir = preview_dir
        self._options: Optional[OptionsPanel] = None
        self.shown: List[Dict[str, Any]] = []

    def set_options_widget(self, panel: OptionsPanel) -> None:
        self._options = panel

    def set_image_widget(self, view: LayoutView, debug_images: Optional[DebugImages]) -> None:
        image_id = self._options.image_id if self._options is not None else None
        ui_data = self._options.ui_data if self._options is not None else None
        entry: Dict[str, Any] = {
            "image": str(image_id) if image_id else None,
            "layout": view.layout.to_dict(),
            "mode": ui_data.mode.value if ui_data else None,
            "auto_detected": ui_data.auto_detected_layout.name.lower() if ui_data and ui_data.auto_detected_layout else None,
        }
        if self._preview_dir is not None and image_id is not None:
            preview_path = self._preview_dir / f"{image_id.stem}_layout.png"
            debug_utils.save_debug_image(view.render(), preview_path)
            entry["preview"] = str(preview_path)
            if debug_images:
                entry["debug_images"] = debug_images.save_all(self._preview_dir / "debug", image_id.stem)
        self.shown.append(entry)
        log.info("ui: %s -> %s", entry["image"], entry["layout"]["type"])
