"""文件与图像读写工具。"""

from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import ExifTags, Image

from pagesplit.context import DEFAULT_DPI


def _apply_exif_orientation(img: Image.Image) -> Image.Image:
    """根据 EXIF 方向信息旋转图片，避免后续角度偏差。"""
    try:
        exif = img.getexif()
    except (AttributeError, OSError, ValueError):
        return img
    if not exif:
        return img
    orientation_key = next((k for k, v in ExifTags.TAGS.items() if v == "Orientation"), None)
    if orientation_key is None or orientation_key not in exif:
        return img
    orientation = exif.get(orientation_key)
    if orientation == 3:
        return img.rotate(180, expand=True)
    if orientation == 6:
        return img.rotate(270, expand=True)
    if orientation == 8:
        return img.rotate(90, expand=True)
    return img


def _read_dpi(img: Image.Image) -> Tuple[float, float]:
    dpi = img.info.get("dpi")
    if not dpi or len(dpi) != 2:
        return DEFAULT_DPI
    dpi_x, dpi_y = float(dpi[0]), float(dpi[1])
    if dpi_x <= 0 or dpi_y <= 0:
        return DEFAULT_DPI
    return dpi_x, dpi_y


def load_image_with_dpi(path: str) -> Tuple[np.ndarray, Tuple[float, float]]:
    """读取 RGB 数组与 DPI（缺失时取默认值）。"""
    with Image.open(path) as img:
        dpi = _read_dpi(img)
        img = _apply_exif_orientation(img).convert("RGB")
        return np.array(img), dpi


def save_image(array: np.ndarray, path: str) -> None:
    """将 numpy 数组保存为图片文件，创建父目录。"""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(array).save(path)


def list_images(input_path: str) -> Tuple[str, ...]:
    """列出输入路径下的所有支持图片文件（简单按后缀过滤）。"""
    p = Path(input_path)
    exts = {".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".webp"}
    if p.is_file() and p.suffix.lower() in exts:
        return (str(p),)
    if p.is_dir():
        return tuple(str(f) for f in sorted(p.iterdir()) if f.suffix.lower() in exts)
    return ()
