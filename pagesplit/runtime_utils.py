"""运行时辅助工具：配置加载、命令行覆盖与逐图规则解析。"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Tuple

from pagesplit import config as cfg
from pagesplit.layout import Rule
from pagesplit.orientation import OrthogonalRotation


def build_runtime_config(
    config_path: str | None,
    debug: bool = False,
    debug_level: str | None = None,
    concurrency: int | None = None,
    layout: str | None = None,
    rotation: int | None = None,
) -> tuple[dict, bool]:
    """
    加载配置并应用命令行开关，返回 (conf, debug_enabled)。
    """
    conf = cfg.load_config(config_path)
    if debug_level:
        conf["run"]["debug_level"] = debug_level
        conf["run"]["debug"] = debug_level != "none"
    elif debug:
        conf["run"]["debug"] = True
        conf["run"]["debug_level"] = "full"
    else:
        conf["run"]["debug_level"] = conf["run"].get("debug_level") or ("full" if conf["run"].get("debug") else "none")
    if concurrency is not None:
        conf["run"]["concurrency"] = max(1, int(concurrency))
    if layout:
        conf["defaults"]["rule"] = Rule.parse(layout).value
    if rotation is not None:
        conf["defaults"]["rotation"] = OrthogonalRotation.parse(rotation).degrees
    debug_enabled = (conf["run"].get("debug_level") or "none").lower() != "none"
    return conf, debug_enabled


def lookup_rule_entry(conf: Dict[str, Any], image_path: str) -> Any:
    rules = conf.get("rules") or {}
    p = Path(image_path)
    for key in (p.name, p.stem):
        if key in rules:
            return rules[key]
    return None


def resolve_image_options(conf: Dict[str, Any], image_path: str) -> Tuple[Rule, OrthogonalRotation]:
    """
    逐图规则：rules 中的值可以是 "auto/single/two"，
    也可以是 {"layout": ..., "rotation": ...}；缺省项取 defaults。
    """
    defaults = conf.get("defaults") or {}
    rule = Rule.parse(defaults.get("rule", "auto"))
    rotation = OrthogonalRotation.parse(defaults.get("rotation", 0))
    entry = lookup_rule_entry(conf, image_path)
    if isinstance(entry, dict):
        if entry.get("layout") is not None:
            rule = Rule.parse(entry["layout"])
        if entry.get("rotation") is not None:
            rotation = OrthogonalRotation.parse(entry["rotation"])
    elif entry is not None:
        rule = Rule.parse(entry)
    return rule, rotation
