"""Tests for run metrics."""
from countdown_scraper.jobs.metrics import Metrics, PageCounters, format_elapsed
from countdown_scraper.parse.models import UpsertDecision


def test_format_elapsed():
    assert format_elapsed(0) == "0s"
    assert format_elapsed(42.4) == "42s"
    assert format_elapsed(60) == "1:00"
    assert format_elapsed(125.9) == "2:05"


def test_page_counters_summary():
    counters = PageCounters()
    for decision in (
        UpsertDecision.NEW_PRODUCT,
        UpsertDecision.NEW_PRODUCT,
        UpsertDecision.PRICE_CHANGED,
        UpsertDecision.FAILED,
    ):
        counters.record(decision)

    assert counters.total == 4
    assert counters.summary() == (
        "2 new products, 1 updated prices, 0 updated info, "
        "0 already up-to-date, 1 failed updates"
    )
    assert counters.as_dict()["already_up_to_date"] == 0


def test_metrics_accumulate_pages():
    metrics = Metrics(total_pages=2)
    for _ in range(2):
        page = PageCounters()
        page.record(UpsertDecision.INFO_CHANGED)
        metrics.add_page(page)
    metrics.increment("pages_scraped", 2)

    summary = metrics.get_summary()
    assert summary["info_changed"] == 2
    assert summary["pages_scraped"] == 2
    assert summary["pages_skipped"] == 0
