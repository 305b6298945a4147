"""配置集中管理模块：默认参数 + YAML 覆盖 + 逐图规则。"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULTS: Dict[str, Any] = {
    "split": {
        "cut_range": [0.35, 0.65],  # 分割线搜索区间（相对宽度）
        "blur_kernel": 9,  # 投影平滑窗口
        "min_prominence": 0.0,  # 谷值显著性下限，仅用于日志提示
    },
    "run": {
        "debug": False,
        "debug_level": "none",  # none | full
        "concurrency": 1,
    },
    "output": {
        "save_jpeg": False,
        "jpeg_quality": 95,
        "save_summary": True,
    },
    "defaults": {
        "rule": "auto",  # auto | single | two
        "rotation": 0,  # 0 | 90 | 180 | 270（顺时针）
    },
    # 逐图规则：文件名或去后缀文件名 -> auto/single/two
    "rules": {},
    "threads": {
        "omp_num_threads": 1,
    },
}


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = _deep_update(base[k], v)
        else:
            base[k] = v
    return base


def _validate(cfg: Dict[str, Any]) -> None:
    """检查少数关键字段，避免运行到一半才报错。"""
    cut_range = cfg["split"].get("cut_range") or []
    if len(cut_range) != 2 or not 0.0 <= float(cut_range[0]) < float(cut_range[1]) <= 1.0:
        raise ValueError(f"split.cut_range 非法：{cut_range!r}")
    if int(cfg["split"].get("blur_kernel", 1)) < 1:
        raise ValueError("split.blur_kernel 必须 >= 1")
    if not isinstance(cfg.get("rules"), dict):
        raise ValueError("rules 必须是 文件名 -> 规则 的映射")


def load_config(config_path: str | None = None) -> Dict[str, Any]:
    """加载配置，合并默认 + YAML。"""
    cfg = copy.deepcopy(DEFAULTS)
    if config_path:
        path = Path(config_path)
        if path.exists():
            with path.open("r", encoding="utf-8") as f:
                yaml_cfg = yaml.safe_load(f) or {}
                cfg = _deep_update(cfg, yaml_cfg)
    cfg["rules"] = cfg.get("rules") or {}
    _validate(cfg)
    # 环境线程数：仅在未预先设置时写入，避免覆盖外部配置
    omp_threads = cfg.get("threads", {}).get("omp_num_threads")
    if omp_threads and not os.environ.get("OMP_NUM_THREADS"):
        os.environ["OMP_NUM_THREADS"] = str(omp_threads)
    return cfg
