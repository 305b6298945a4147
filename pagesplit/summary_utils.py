"""summary 构建与 JSON 序列化工具。"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import numpy as np


def json_default(obj):
    """兼容 numpy 标量的 JSON 序列化。"""
    if isinstance(obj, (np.bool_,)):
        return bool(obj)
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating,)):
        return float(obj)
    return str(obj)


def save_summary(summary: Dict[str, Any], path: Path) -> None:
    """保存 run_summary.json，保证目录存在。"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary, ensure_ascii=False, indent=2, default=json_default), encoding="utf-8")


def build_summary(
    images: List[Dict[str, Any]],
    logical_pages: List[Dict[str, Any]],
    elapsed_total: float,
    debug_level: str,
    config_path: str | None = None,
) -> Dict[str, Any]:
    """构建 run_summary 字典，集中管理字段。"""
    failed = [item for item in images if item.get("error")]
    cancelled = [item for item in images if item.get("cancelled")]
    return {
        "config": config_path,
        "debug_level": debug_level,
        "images": images,
        "image_count": len(images),
        "failed": len(failed),
        "cancelled": len(cancelled),
        "logical_pages": logical_pages,
        "logical_page_count": len(logical_pages),
        "elapsed_total": elapsed_total,
    }
