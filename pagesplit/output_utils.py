"""下一阶段：按布局裁剪子页并落盘。"""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
from PIL import Image

from pagesplit import io_utils
from pagesplit.context import FilterData, ImageId, SubPageResult
from pagesplit.debug_utils import DebugImages
from pagesplit.layout import PageLayout
from pagesplit.orientation import rotate_image

log = logging.getLogger(__name__)


def crop_sub_pages(image: np.ndarray, layout: PageLayout) -> List[tuple]:
    """返回 [(bbox, 子页图像)]，坐标均在预旋转后的图像上。"""
    h, w = image.shape[:2]
    crops = []
    for x0, y0, x1, y1 in layout.sub_page_bboxes((w, h)):
        crops.append(((x0, y0, x1, y1), image[y0:y1, x0:x1]))
    return crops


class SubPageWriter:
    """
    串在分页任务之后的阶段，每张图一个实例。
    process() 在工作线程内被同步调用，返回该图的输出记录。
    """

    def __init__(
        self,
        image_id: ImageId,
        out_dir: Path,
        output_cfg: Dict[str, Any] | None = None,
        debug_images: DebugImages | None = None,
    ) -> None:
        self._image_id = image_id
        self._out_dir = Path(out_dir)
        self._output_cfg = output_cfg or {}
        self._debug_images = debug_images

    def _save_jpeg(self, arr: np.ndarray, path: Path) -> None:
        quality = int(self._output_cfg.get("jpeg_quality", 95) or 95)
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.fromarray(arr).save(path, format="JPEG", quality=quality, optimize=True)

    def process(self, status, data: FilterData, layout: PageLayout) -> Dict[str, Any]:
        status.throw_if_cancelled()
        rotated = rotate_image(data.image, data.xform.pre_rotation)
        save_jpeg = bool(self._output_cfg.get("save_jpeg", False))
        pages: List[Dict[str, Any]] = []
        for idx, (bbox, crop) in enumerate(crop_sub_pages(rotated, layout)):
            page_id = f"page_{idx + 1:03d}"
            path = self._out_dir / f"{idx + 1:02d}_{self._image_id.stem}_{page_id}.png"
            io_utils.save_image(np.ascontiguousarray(crop), str(path))
            jpeg_path = None
            if save_jpeg:
                jpeg_file = path.with_suffix(".jpg")
                self._save_jpeg(np.ascontiguousarray(crop), jpeg_file)
                jpeg_path = str(jpeg_file)
            pages.append(asdict(SubPageResult(idx, page_id, bbox, str(path), jpeg_path)))
        record: Dict[str, Any] = {
            "image": str(self._image_id),
            "layout": layout.to_dict(),
            "pages": pages,
        }
        if self._debug_images:
            record["debug_images"] = self._debug_images.save_all(self._out_dir / "debug", self._image_id.stem)
        log.info("writer: %s -> %d 页", self._image_id, len(pages))
        return record
