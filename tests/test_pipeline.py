"""Batch reconciliation: concurrency, failure isolation and persistence retries."""

import logging
import threading

import pytest

from catalog_linker.catalog import InMemoryCatalog
from catalog_linker.errors import PersistenceWriteFailure
from catalog_linker.index import build_index
from catalog_linker.matcher import find_best_match
from catalog_linker.models import Decision, Listing
from catalog_linker.pipeline import DIAGNOSTIC_COLUMNS, RESULT_COLUMNS, BatchReconciler, match_titles


LISTINGS = [
    Listing(listing_id="l1", title="Moondrop Blessing 3 IEM", category_id="iem"),
    Listing(listing_id="l2", title="Sennheiser HD 600 Open-Back Headphones", category_id="headphones"),
    Listing(listing_id="l3", title="2024 NEW Wholesale Lot of 10 Earbuds Case Only", category_id="iem"),
    Listing(listing_id="l4", title="Blessing 3", category_id="iem"),
    Listing(listing_id="l5", title="Fiio K7", category_id="dac"),
    Listing(listing_id="l6", title="Xyz Qwerty", category_id="iem"),
]


class FlakySink(InMemoryCatalog):
    """Fails the first `failures` writes for the listed ids."""

    def __init__(self, fail_ids, failures, **kwargs):
        super().__init__(**kwargs)
        self.fail_ids = set(fail_ids)
        self.failures = failures
        self.attempts = {}
        self._attempt_lock = threading.Lock()

    def apply_match_decision(self, listing_id, decision, match):
        with self._attempt_lock:
            self.attempts[listing_id] = self.attempts.get(listing_id, 0) + 1
            attempt = self.attempts[listing_id]
        if listing_id in self.fail_ids and attempt <= self.failures:
            raise PersistenceWriteFailure("apply_match_decision", f"listing {listing_id}")
        super().apply_match_decision(listing_id, decision, match)


class ExplodingCatalog(InMemoryCatalog):
    def list_candidates(self, category_id):
        if category_id == "headphones":
            raise RuntimeError("connection reset")
        return super().list_candidates(category_id)


def test_reconcile_end_to_end(catalog, settings):
    report = BatchReconciler(catalog, catalog, settings=settings).reconcile(LISTINGS)
    df = report.results

    assert list(df.columns) == RESULT_COLUMNS
    # Input order is kept; the failed "dac" category is absent
    assert list(df['listing_id']) == ["l1", "l2", "l3", "l4", "l6"]
    decisions = dict(zip(df['listing_id'], df['decision']))
    assert decisions == {
        "l1": Decision.AUTO_APPROVE.value,
        "l2": Decision.AUTO_APPROVE.value,
        "l3": Decision.REJECT.value,
        "l4": Decision.PENDING_REVIEW.value,
        "l6": Decision.REJECT.value,
    }
    assert df.set_index('listing_id').loc["l3", 'reason'].startswith("junk:")
    assert df.set_index('listing_id').loc["l2", 'candidate_id'] == "h1"

    assert set(report.failed_categories) == {"dac"}
    assert report.persist_failures == []
    assert not report.ok
    # Every processed listing was recorded exactly once
    assert set(catalog.decisions) == {"l1", "l2", "l3", "l4", "l6"}
    assert catalog.decisions["l1"][1].candidate_id == "c1"


def test_load_failure_is_logged_and_isolated(catalog, settings, caplog):
    with caplog.at_level(logging.WARNING, logger="catalog_linker.pipeline"):
        report = BatchReconciler(catalog, catalog, settings=settings).reconcile(LISTINGS)
    assert "dac" in report.failed_categories
    assert any("Skipping category dac" in r.getMessage() for r in caplog.records)


def test_unexpected_category_error_is_isolated(iem_candidates, settings):
    catalog = ExplodingCatalog(candidates={"iem": iem_candidates})
    report = BatchReconciler(catalog, catalog, settings=settings).reconcile(LISTINGS)
    assert report.failed_categories["headphones"].startswith("RuntimeError")
    assert "l1" in set(report.results['listing_id'])


def test_transient_write_failures_are_retried(iem_candidates, settings):
    sink = FlakySink(fail_ids={"l1"}, failures=2, candidates={"iem": iem_candidates})
    report = BatchReconciler(sink, sink, settings=settings).reconcile(LISTINGS[:1])
    assert sink.attempts["l1"] == 3
    assert report.persist_failures == []
    assert bool(report.results.loc[0, 'persisted']) is True


def test_exhausted_write_retries_are_reported(iem_candidates, settings, caplog):
    sink = FlakySink(fail_ids={"l1"}, failures=10, candidates={"iem": iem_candidates})
    with caplog.at_level(logging.ERROR, logger="catalog_linker.pipeline"):
        report = BatchReconciler(sink, sink, settings=settings).reconcile(LISTINGS[:1])
    assert sink.attempts["l1"] == settings.write_retries
    assert report.persist_failures == ["l1"]
    assert bool(report.results.loc[0, 'persisted']) is False
    assert "l1" not in sink.decisions
    assert any(r.levelno == logging.ERROR for r in caplog.records)


def test_empty_batch(catalog, settings):
    report = BatchReconciler(catalog, catalog, settings=settings).reconcile([])
    assert report.results.empty
    assert list(report.results.columns) == RESULT_COLUMNS
    assert report.ok


def test_diagnostic_mode_adds_alternatives(catalog, settings):
    reconciler = BatchReconciler(catalog, catalog, settings=settings, diagnostic=True)
    df = reconciler.reconcile(LISTINGS).results.set_index('listing_id')
    assert list(df.columns) == RESULT_COLUMNS[1:] + DIAGNOSTIC_COLUMNS
    # Review rows get suggestions, auto-approved rows do not
    assert df.loc["l4", 'top1_name'] == "Moondrop Blessing 3"
    assert df.loc["l1", 'top1_name'] == ""


def test_progress_callback(catalog, settings):
    calls = []
    BatchReconciler(catalog, catalog, settings=settings).reconcile(
        LISTINGS, progress_callback=lambda done, total: calls.append((done, total)),
    )
    assert sorted(calls) == [(1, 3), (2, 3), (3, 3)]


def test_resolve_variants_applies_diff_once(catalog, families, settings):
    reconciler = BatchReconciler(catalog, catalog, settings=settings)
    diff = reconciler.resolve_variants()
    assert diff.to_mark_best == ["z-dsp"]
    assert diff.to_mark_not_best == ["z-base"]
    # Families without a DSP/ANC/switch variant are left alone
    assert families["plain"][0].current_best is None
    assert reconciler.resolve_variants().is_empty()
    assert len(catalog.flag_updates) == 1


def test_resolve_variants_dry_run(catalog, families, settings):
    diff = BatchReconciler(catalog, catalog, settings=settings).resolve_variants(dry_run=True)
    assert not diff.is_empty()
    assert catalog.flag_updates == []
    assert families["zero"][1].current_best is False


def test_resolve_variants_raises_after_retries(families, settings):
    class BrokenSink(InMemoryCatalog):
        def apply_variant_flags(self, to_mark_best, to_mark_not_best):
            raise PersistenceWriteFailure("apply_variant_flags", "read-only replica")

    sink = BrokenSink(families=families)
    with pytest.raises(PersistenceWriteFailure):
        BatchReconciler(sink, sink, settings=settings).resolve_variants()


def test_match_titles_matches_sequential_results(iem_candidates):
    index = build_index(iem_candidates)
    titles = ["Moondrop Aria 2", "64 Audio U12t", "KZ ZS10 Pro", "", "Truthear Zero"]
    parallel = match_titles(titles, index, max_workers=3)
    assert parallel == [find_best_match(t, index) for t in titles]
    assert match_titles([], index) == []


def test_reconcile_cleans_only_marketplace_titles(catalog, settings):
    listings = [
        Listing(listing_id="m1", title="Moondrop Aria 2 (New 2023 Version)", category_id="iem",
                retailer_id="aliexpress"),
        Listing(listing_id="m2", title="Moondrop Aria 2 (New 2023 Version)", category_id="iem",
                retailer_id="shenzhen-audio"),
    ]
    settings = settings.model_copy(update={"marketplace_retailers": ["AliExpress"]})
    df = BatchReconciler(catalog, catalog, settings=settings).reconcile(listings).results.set_index('listing_id')
    assert df.loc["m1", 'cleaned_title'] == "Moondrop Aria 2"
    assert df.loc["m2", 'cleaned_title'] == "Moondrop Aria 2 (New 2023 Version)"
