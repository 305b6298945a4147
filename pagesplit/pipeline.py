"""主流程：加载图像、调度分页任务、串联输出阶段并汇总结果。"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional

from pagesplit import io_utils
from pagesplit import runtime_utils
from pagesplit import summary_utils
from pagesplit.context import FilterData, ImageId, ImageTransformation
from pagesplit.debug_utils import DebugImages
from pagesplit.filter import PageSplitFilter, locator_from_config
from pagesplit.layout import Rule
from pagesplit.output_utils import SubPageWriter
from pagesplit.settings import PageSequence, Settings
from pagesplit.task import Locator, TaskCancelled, TaskStatus
from pagesplit.ui_handoff import FilterResult, UiResultQueue, UiUpdater

log = logging.getLogger(__name__)


class PageSplitPipeline:
    """
    流水线所有者：持有设置、页序与过滤器，每张图一个工作单元。

    output_root 非空时在分页任务后串联 SubPageWriter；否则分页任务为终端阶段，
    产出的 UiUpdater 投递到 ui_queue，由界面线程 drain。
    """

    def __init__(
        self,
        conf: Dict[str, Any],
        output_root: str | Path | None = None,
        ui_queue: UiResultQueue | None = None,
        debug: bool = False,
        locator: Locator | None = None,
    ) -> None:
        self._conf = conf
        self._output_root = Path(output_root) if output_root else None
        self._ui_queue = ui_queue
        self._debug = debug
        default_rule = Rule.parse((conf.get("defaults") or {}).get("rule", "auto"))
        self._settings = Settings(default_rule=default_rule)
        self._page_sequence = PageSequence()
        self._filter = PageSplitFilter(
            self._settings,
            self._page_sequence,
            locator=locator or locator_from_config(conf),
            debug=debug,
            on_reload=self.reload_image,
        )
        self._registered: set[ImageId] = set()
        self._statuses: Dict[ImageId, TaskStatus] = {}
        self._lock = Lock()

    @property
    def filter(self) -> PageSplitFilter:
        return self._filter

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def page_sequence(self) -> PageSequence:
        return self._page_sequence

    @staticmethod
    def image_id_for(image_path: str) -> ImageId:
        return ImageId(str(Path(image_path)))

    def register_image(self, image_path: str) -> ImageId:
        """首次见到某图时登记页序，并写入配置中显式给出的规则。"""
        image_id = self.image_id_for(image_path)
        with self._lock:
            if image_id in self._registered:
                return image_id
            self._registered.add(image_id)
        self._page_sequence.add_image(image_id)
        if runtime_utils.lookup_rule_entry(self._conf, image_path) is not None:
            rule, _ = runtime_utils.resolve_image_options(self._conf, image_path)
            self._settings.set_rule_for(image_id, rule)
        return image_id

    def load_filter_data(self, image_path: str) -> FilterData:
        image, dpi = io_utils.load_image_with_dpi(image_path)
        _, rotation = runtime_utils.resolve_image_options(self._conf, image_path)
        return FilterData(image=image, xform=ImageTransformation(pre_rotation=rotation, origin_dpi=dpi))

    def _new_status(self, image_id: ImageId) -> TaskStatus:
        status = TaskStatus()
        with self._lock:
            self._statuses[image_id] = status
        return status

    def cancel(self, image_path: str) -> bool:
        with self._lock:
            status = self._statuses.get(self.image_id_for(image_path))
        if status is None:
            return False
        status.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            statuses = list(self._statuses.values())
        for status in statuses:
            status.cancel()

    def process_image(self, image_path: str, status: Optional[TaskStatus] = None) -> Dict[str, Any]:
        """处理单张图，返回记录；错误向上抛出。"""
        t0 = time.time()
        image_id = self.register_image(image_path)
        if status is None:
            status = self._new_status(image_id)
        record: Dict[str, Any] = {"file": image_path, "image": str(image_id)}
        try:
            data = self.load_filter_data(image_path)
            debug_images = DebugImages() if self._debug else None
            next_stage = None
            if self._output_root is not None:
                next_stage = SubPageWriter(
                    image_id,
                    self._output_root / image_id.stem,
                    output_cfg=self._conf.get("output"),
                    debug_images=debug_images,
                )
            task = self._filter.create_task(image_id, next_stage=next_stage, debug_images=debug_images)
            try:
                result = task.process(status, data)
            except TaskCancelled:
                result = None
        finally:
            with self._lock:
                if self._statuses.get(image_id) is status:
                    del self._statuses[image_id]

        if result is None:
            record["cancelled"] = True
        elif isinstance(result, FilterResult):
            if isinstance(result, UiUpdater):
                record["layout"] = result.ui_data.page_layout.to_dict()
                record["mode"] = result.ui_data.mode.value
            if self._ui_queue is not None:
                self._ui_queue.post(result)
        else:
            record.update(result)
        record["elapsed"] = time.time() - t0
        return record

    def reload_image(self, image_id: ImageId) -> Dict[str, Any]:
        """选项面板改动规则或切回自动后重跑该图；界面结果照常投递到 ui_queue。"""
        log.info("reload: %s", image_id)
        return self._process_safe(image_id.path, self._new_status(image_id))

    def _process_safe(self, image_path: str, status: TaskStatus) -> Dict[str, Any]:
        try:
            return self.process_image(image_path, status)
        except Exception as exc:  # noqa: BLE001
            log.exception("处理失败：%s", image_path)
            return {"file": image_path, "image": str(self.image_id_for(image_path)), "error": str(exc)}

    def run_batch(self, image_paths: Iterable[str], concurrency: int | None = None, ui=None) -> List[Dict[str, Any]]:
        """
        并发处理多张图，单张失败不影响其他图。
        传入 ui 时在当前（界面）线程边等待边 drain 结果队列。
        """
        paths = list(image_paths)
        workers = max(1, int(concurrency or (self._conf.get("run") or {}).get("concurrency", 1)))
        for path in paths:
            self.register_image(path)
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futures = []
            for path in paths:
                status = self._new_status(self.image_id_for(path))
                futures.append(ex.submit(self._process_safe, path, status))
            pending = set(futures)
            while pending:
                _, pending = wait(pending, timeout=0.05)
                if ui is not None and self._ui_queue is not None:
                    self._ui_queue.drain(ui)
        if ui is not None and self._ui_queue is not None:
            self._ui_queue.drain(ui)
        return [f.result() for f in futures]

    def logical_pages(self) -> List[Dict[str, Any]]:
        return [{"image": str(image_id), "sub_page": idx} for image_id, idx in self._page_sequence.logical_pages()]


# 进程内共享的流水线，按调用参数区分
_shared_pipelines: Dict[tuple, PageSplitPipeline] = {}
_shared_lock = Lock()


def shared_pipeline(
    output_root: str,
    config_path: str | None = None,
    layout: str | None = None,
    rotation: int | None = None,
    debug: bool = False,
) -> PageSplitPipeline:
    """按 (输出目录, 配置, 布局, 旋转, 调试) 取进程内共享的流水线，不存在时创建。"""
    key = (str(Path(output_root)), config_path, layout, rotation, bool(debug))
    with _shared_lock:
        pipeline = _shared_pipelines.get(key)
        if pipeline is None:
            conf, debug_enabled = runtime_utils.build_runtime_config(
                config_path, debug=debug, layout=layout, rotation=rotation
            )
            pipeline = PageSplitPipeline(conf, output_root=output_root, debug=debug_enabled)
            _shared_pipelines[key] = pipeline
    return pipeline


def process_image_file(
    image_path: str,
    output_root: str,
    config_path: str | None = None,
    layout: str | None = None,
    rotation: int | None = None,
    debug: bool = False,
) -> Dict[str, Any]:
    """
    读图 → 单/双页判定 → 分割线 → 子页落盘，返回该图记录。
    同一组参数的重复调用复用同一流水线，未变化的图直接命中缓存。
    """
    pipeline = shared_pipeline(output_root, config_path, layout=layout, rotation=rotation, debug=debug)
    return pipeline.process_image(image_path)


def run_images(
    image_paths: Iterable[str],
    conf: Dict[str, Any],
    output_root: str | None,
    debug_enabled: bool,
    ui=None,
    config_path: str | None = None,
) -> Dict[str, Any]:
    """批量入口：处理全部图片并（有输出目录时）写 run_summary.json。"""
    t0 = time.time()
    ui_queue = UiResultQueue() if ui is not None else None
    pipeline = PageSplitPipeline(conf, output_root=output_root, ui_queue=ui_queue, debug=debug_enabled)
    records = pipeline.run_batch(image_paths, ui=ui)
    summary = summary_utils.build_summary(
        images=records,
        logical_pages=pipeline.logical_pages(),
        elapsed_total=time.time() - t0,
        debug_level=(conf.get("run") or {}).get("debug_level", "none"),
        config_path=config_path,
    )
    if output_root and (conf.get("output") or {}).get("save_summary", True):
        summary_path = Path(output_root) / "run_summary.json"
        try:
            summary_utils.save_summary(summary, summary_path)
        except OSError:
            log.exception("写入 run_summary 失败 %s", summary_path)
    return summary
