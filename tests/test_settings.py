from __future__ import annotations

import threading

import pytest

from pagesplit.context import ImageId
from pagesplit.layout import PageLayout, Rule
from pagesplit.orientation import OrthogonalRotation
from pagesplit.params import Dependencies, Params
from pagesplit.settings import PageSequence, Settings


def _params() -> Params:
    deps = Dependencies("sig", (10, 10), OrthogonalRotation(0), True)
    return Params(PageLayout.single_page(), deps)


def test_rules_fall_back_to_default() -> None:
    settings = Settings(default_rule=Rule.TWO_PAGES)
    a, b = ImageId("a.png"), ImageId("b.png")
    settings.set_rule_for(a, Rule.SINGLE_PAGE)
    assert settings.get_rule_for(a) is Rule.SINGLE_PAGE
    assert settings.get_rule_for(b) is Rule.TWO_PAGES


def test_default_rule_overrides_per_image_rules() -> None:
    settings = Settings()
    a = ImageId("a.png")
    settings.set_rule_for(a, Rule.SINGLE_PAGE)
    settings.set_default_rule(Rule.TWO_PAGES)
    assert settings.get_rule_for(a) is Rule.TWO_PAGES


def test_params_store_and_clear() -> None:
    settings = Settings()
    a = ImageId("a.png")
    assert settings.get_page_params(a) is None
    params = _params()
    settings.set_page_params(a, params)
    assert settings.get_page_params(a) is params
    assert settings.get_page_params(ImageId("b.png")) is None
    settings.clear_page_params(a)
    settings.clear_page_params(a)
    assert settings.get_page_params(a) is None


def test_multi_page_files_are_distinct_images() -> None:
    settings = Settings()
    settings.set_rule_for(ImageId("book.tif", page=1), Rule.SINGLE_PAGE)
    assert settings.get_rule_for(ImageId("book.tif", page=0)) is Rule.AUTO_DETECT


def test_page_sequence_enumerates_logical_pages() -> None:
    a, b = ImageId("a.png"), ImageId("b.png")
    seq = PageSequence([a, b])
    seq.set_logical_pages_in_image(b, 2)
    assert seq.logical_pages() == [(a, 0), (b, 0), (b, 1)]
    assert seq.total_logical_pages() == 3
    assert seq.logical_pages_in_image(ImageId("unknown.png")) == 1


def test_page_sequence_rejects_other_counts() -> None:
    seq = PageSequence()
    with pytest.raises(ValueError):
        seq.set_logical_pages_in_image(ImageId("a.png"), 3)
    with pytest.raises(ValueError):
        seq.set_logical_pages_in_image(ImageId("a.png"), 0)


def test_page_sequence_concurrent_writes_for_distinct_ids() -> None:
    seq = PageSequence()
    ids = [ImageId(f"img_{i:03d}.png") for i in range(200)]

    def worker(chunk):
        for image_id in chunk:
            seq.set_logical_pages_in_image(image_id, 2)

    threads = [threading.Thread(target=worker, args=(ids[i::4],)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert seq.total_logical_pages() == 400
    assert all(seq.logical_pages_in_image(image_id) == 2 for image_id in ids)
