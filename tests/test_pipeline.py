from __future__ import annotations

import json

import numpy as np
import pytest
from PIL import Image

from pagesplit import __main__ as cli
from pagesplit import pipeline as pipeline_mod
from pagesplit.config import load_config
from pagesplit.layout import PageLayout, Rule
from pagesplit.options import HeadlessUi
from pagesplit.params import AutoManualMode
from pagesplit.pipeline import PageSplitPipeline, process_image_file, run_images
from pagesplit.task import TaskStatus
from pagesplit.ui_handoff import UiResultQueue


@pytest.fixture
def spread_file(tmp_path, text_spread):
    path = tmp_path / "in" / "spread.png"
    path.parent.mkdir()
    Image.fromarray(text_spread).save(path, dpi=(300, 300))
    return path


def test_run_images_writes_sub_pages_and_summary(spread_file, tmp_path) -> None:
    out = tmp_path / "out"
    summary = run_images([str(spread_file)], load_config(None), str(out), debug_enabled=False)

    assert summary["image_count"] == 1
    assert summary["failed"] == 0
    assert summary["logical_page_count"] == 2
    left = np.array(Image.open(out / "spread" / "01_spread_page_001.png"))
    right = np.array(Image.open(out / "spread" / "02_spread_page_002.png"))
    assert abs(left.shape[1] - 200) <= 3
    assert left.shape[1] + right.shape[1] == 400
    saved = json.loads((out / "run_summary.json").read_text(encoding="utf-8"))
    assert saved["images"][0]["layout"]["type"] == "double"
    assert len(saved["images"][0]["pages"]) == 2


def test_second_run_reuses_cached_layout(spread_file, counting_locator) -> None:
    pipeline = PageSplitPipeline(load_config(None), locator=counting_locator)
    first = pipeline.process_image(str(spread_file))
    second = pipeline.process_image(str(spread_file))
    assert len(counting_locator.calls) == 1
    assert first["layout"] == second["layout"]
    assert second["mode"] == "auto"


def test_preview_mode_materializes_on_calling_thread(spread_file, tmp_path) -> None:
    ui = HeadlessUi(preview_dir=tmp_path / "preview")
    summary = run_images([str(spread_file)], load_config(None), None, debug_enabled=True, ui=ui)
    assert summary["failed"] == 0
    assert len(ui.shown) == 1
    entry = ui.shown[0]
    assert entry["image"] == "spread.png"
    assert entry["auto_detected"] == "two_pages"
    assert len(entry["debug_images"]) == 3
    assert not (tmp_path / "run_summary.json").exists()


def test_config_rule_forces_single_page(spread_file, tmp_path) -> None:
    conf = load_config(None)
    conf["rules"] = {"spread": "single"}
    summary = run_images([str(spread_file)], conf, str(tmp_path / "out"), debug_enabled=False)
    assert summary["logical_page_count"] == 1
    assert summary["images"][0]["layout"]["type"] == "single"


def test_rotation_from_config_is_applied(spread_file, tmp_path) -> None:
    conf = load_config(None)
    conf["rules"] = {"spread.png": {"layout": "two", "rotation": 90}}
    summary = run_images([str(spread_file)], conf, str(tmp_path / "out"), debug_enabled=False)
    pages = summary["images"][0]["pages"]
    # 顺时针旋转 90° 后图像为 200x400
    assert pages[0]["bbox"][3] == 400
    assert pages[1]["bbox"][2] == 200


def test_failed_image_does_not_stop_batch(spread_file, tmp_path) -> None:
    broken = tmp_path / "in" / "broken.png"
    broken.write_bytes(b"not an image")
    summary = run_images(
        [str(broken), str(spread_file)], load_config(None), str(tmp_path / "out"), debug_enabled=False
    )
    assert summary["failed"] == 1
    assert "error" in summary["images"][0]
    assert len(summary["images"][1]["pages"]) == 2


def test_cancelled_image_is_reported(spread_file, counting_locator) -> None:
    pipeline = PageSplitPipeline(load_config(None), locator=counting_locator)
    status = TaskStatus()
    status.cancel()
    record = pipeline.process_image(str(spread_file), status)
    assert record["cancelled"] is True
    assert counting_locator.calls == []
    assert pipeline.settings.get_page_params(pipeline.image_id_for(str(spread_file))) is None


def test_cancel_unknown_image_is_noop(counting_locator) -> None:
    pipeline = PageSplitPipeline(load_config(None), locator=counting_locator)
    assert pipeline.cancel("/nowhere.png") is False


def test_process_image_file_with_debug(spread_file, tmp_path) -> None:
    record = process_image_file(str(spread_file), str(tmp_path / "out"), layout="two", debug=True)
    assert len(record["pages"]) == 2
    assert len(record["debug_images"]) == 3


def test_cli_writes_outputs(spread_file, tmp_path, monkeypatch) -> None:
    out = tmp_path / "cli_out"
    monkeypatch.setattr(
        "sys.argv", ["pagesplit", "--input", str(spread_file.parent), "--output", str(out), "--concurrency", "2"]
    )
    cli.main()
    assert (out / "run_summary.json").exists()
    assert len(list((out / "spread").glob("*.png"))) == 2


def test_cli_rejects_invalid_config(spread_file, tmp_path, monkeypatch) -> None:
    bad = tmp_path / "bad.yaml"
    bad.write_text("split:\n  cut_range: [0.8, 0.2]\n", encoding="utf-8")
    monkeypatch.setattr("sys.argv", ["pagesplit", "--input", str(spread_file), "--config", str(bad)])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 2


def test_cancel_all_stops_registered_work(spread_file, counting_locator) -> None:
    pipeline = PageSplitPipeline(load_config(None), locator=counting_locator)
    image_id = pipeline.register_image(str(spread_file))
    status = pipeline._new_status(image_id)
    assert pipeline.cancel(str(spread_file)) is True
    pipeline.cancel_all()
    record = pipeline.process_image(str(spread_file), status)
    assert record["cancelled"] is True


def test_rule_change_in_panel_reruns_image(spread_file, counting_locator) -> None:
    ui_queue = UiResultQueue()
    pipeline = PageSplitPipeline(load_config(None), ui_queue=ui_queue, locator=counting_locator)
    pipeline.process_image(str(spread_file))
    ui = HeadlessUi()
    ui_queue.drain(ui)
    panel = pipeline.filter.options_widget()

    panel.apply_rule(Rule.SINGLE_PAGE)

    assert len(counting_locator.calls) == 2
    assert pipeline.page_sequence.logical_pages_in_image(pipeline.image_id_for(str(spread_file))) == 1
    assert ui_queue.drain(ui) == 1
    assert ui.shown[-1]["layout"]["type"] == "single"


def test_auto_mode_in_panel_relocates_split(spread_file, counting_locator) -> None:
    ui_queue = UiResultQueue()
    pipeline = PageSplitPipeline(load_config(None), ui_queue=ui_queue, locator=counting_locator)
    pipeline.process_image(str(spread_file))
    ui = HeadlessUi()
    ui_queue.drain(ui)
    panel = pipeline.filter.options_widget()
    panel.manual_page_layout_set(PageLayout.single_page())

    panel.set_auto_mode()

    image_id = pipeline.image_id_for(str(spread_file))
    assert len(counting_locator.calls) == 2
    assert pipeline.settings.get_page_params(image_id).mode is AutoManualMode.AUTO
    assert pipeline.page_sequence.logical_pages_in_image(image_id) == 2


def test_process_image_file_reuses_pipeline(spread_file, tmp_path, counting_locator, monkeypatch) -> None:
    monkeypatch.setattr(pipeline_mod, "_shared_pipelines", {})
    monkeypatch.setattr(pipeline_mod, "locator_from_config", lambda conf: counting_locator)
    out = str(tmp_path / "shared")
    first = process_image_file(str(spread_file), out)
    second = process_image_file(str(spread_file), out)
    assert len(counting_locator.calls) == 1
    assert first["layout"] == second["layout"]
    process_image_file(str(spread_file), out, layout="single")
    assert len(counting_locator.calls) == 2
