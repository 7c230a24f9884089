"""
Batch reconciliation: run the matching engine over many listings and categories.

Flow per category (each category is an independent unit of work):
    1. Load the category's candidates from the catalog (once)
    2. Build the category index and brand partitions (once, read-only after)
    3. For every listing: quality gate -> clean -> match -> decision band
    4. Record each decision through the sink, retrying failed writes

Failure isolation:
    - CandidateLoadFailure skips that category and is reported in
      ReconciliationReport.failed_categories; other categories continue
    - PersistenceWriteFailure is retried with backoff; when retries run out
      the listing id lands in ReconciliationReport.persist_failures
    - Any other error inside one category is logged and isolated the same way
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from catalog_linker.config import MatchPolicy, Settings
from catalog_linker.errors import CandidateLoadFailure, PersistenceWriteFailure
from catalog_linker.index import build_brand_indices, build_index
from catalog_linker.interfaces import CandidateSource, DecisionSink
from catalog_linker.matcher import find_best_match, match_listing, suggest_alternatives
from catalog_linker.models import Decision, IndexedCandidate, Listing, MatchOutcome, MatchResult, VariantFlagDiff
from catalog_linker.retry import call_with_retry
from catalog_linker.rules import DEFAULT_RULESET, MatchRuleset
from catalog_linker.variants import resolve_best_variants, select_resolvable_families

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    'listing_id', 'category_id', 'retailer_id', 'title', 'cleaned_title',
    'decision', 'match_score', 'candidate_id', 'candidate_name',
    'reason', 'index_scope', 'persisted',
]
DIAGNOSTIC_COLUMNS = ['top1_name', 'top1_score', 'top2_name', 'top2_score', 'top3_name', 'top3_score']


@dataclass
class ReconciliationReport:
    results: pd.DataFrame
    failed_categories: Dict[str, str] = field(default_factory=dict)
    persist_failures: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_categories and not self.persist_failures


def _default_workers(configured: Optional[int]) -> int:
    if configured and configured > 0:
        return configured
    return os.cpu_count() or 1


def match_titles(
    titles: Sequence[str],
    index: Sequence[IndexedCandidate],
    ruleset: MatchRuleset = DEFAULT_RULESET,
    max_workers: Optional[int] = None,
) -> List[Optional[MatchResult]]:
    """Match many titles against one read-only index in parallel; output order follows input."""
    if not titles:
        return []
    match_one = partial(find_best_match, index=index, ruleset=ruleset)
    with ThreadPoolExecutor(max_workers=_default_workers(max_workers)) as executor:
        return list(executor.map(match_one, titles))


class BatchReconciler:
    """
    Reconcile scraped listings against the canonical catalog.

    The catalog and sink are injected; the reconciler holds no global state
    and can be re-used for several batches.
    """

    def __init__(
        self,
        catalog: CandidateSource,
        sink: DecisionSink,
        settings: Optional[Settings] = None,
        policy: Optional[MatchPolicy] = None,
        fallback_policy: Optional[MatchPolicy] = None,
        ruleset: MatchRuleset = DEFAULT_RULESET,
        diagnostic: bool = False,
    ):
        self.catalog = catalog
        self.sink = sink
        self.settings = settings or Settings()
        self.policy = policy or self.settings.policy()
        self.fallback_policy = fallback_policy or self.settings.fallback_policy()
        self.marketplace_retailers = frozenset(r.strip().lower() for r in self.settings.marketplace_retailers)
        self.ruleset = ruleset
        self.diagnostic = diagnostic

    # -----------------------------------------------------------------------
    # Listing reconciliation
    # -----------------------------------------------------------------------

    def reconcile(
        self,
        listings: Iterable[Listing],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> ReconciliationReport:
        """
        Match every listing and record its decision.

        Categories run concurrently on a bounded thread pool. The results
        DataFrame keeps the input order of listings from categories that
        loaded; listings of failed categories are absent and their category
        is listed in failed_categories.
        """
        by_category: Dict[str, List[Tuple[int, Listing]]] = {}
        for seq, listing in enumerate(listings):
            by_category.setdefault(listing.category_id, []).append((seq, listing))

        rows: List[Tuple[int, Dict]] = []
        failed: Dict[str, str] = {}
        persist_failures: List[str] = []
        total = len(by_category)
        done = 0

        if total:
            workers = min(_default_workers(self.settings.max_workers), total)
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    executor.submit(self._reconcile_category, category_id, items): category_id
                    for category_id, items in by_category.items()
                }
                for future in as_completed(futures):
                    category_id = futures[future]
                    done += 1
                    try:
                        category_rows = future.result()
                    except CandidateLoadFailure as exc:
                        logger.warning("Skipping category %s: %s", category_id, exc)
                        failed[category_id] = str(exc)
                    except Exception as exc:
                        logger.exception("Category %s failed", category_id)
                        failed[category_id] = f"{type(exc).__name__}: {exc}"
                    else:
                        rows.extend(category_rows)
                        persist_failures.extend(
                            row['listing_id'] for _, row in category_rows if not row['persisted']
                        )
                    if progress_callback:
                        progress_callback(done, total)

        rows.sort(key=lambda item: item[0])
        columns = RESULT_COLUMNS + (DIAGNOSTIC_COLUMNS if self.diagnostic else [])
        results = pd.DataFrame([row for _, row in rows], columns=columns)
        return ReconciliationReport(results=results, failed_categories=failed, persist_failures=persist_failures)

    def _reconcile_category(self, category_id: str, items: List[Tuple[int, Listing]]) -> List[Tuple[int, Dict]]:
        candidates = self.catalog.list_candidates(category_id)
        category_index = build_index(candidates, self.ruleset)
        brand_indices = build_brand_indices(candidates, self.ruleset)
        logger.info(
            "Category %s: %d candidates, %d brand partitions, %d listings",
            category_id, len(category_index), len(brand_indices), len(items),
        )

        rows = []
        counts: Dict[Decision, int] = {d: 0 for d in Decision}
        for seq, listing in items:
            outcome = match_listing(
                listing,
                category_index,
                brand_indices,
                self.policy,
                fallback_policy=self.fallback_policy,
                ruleset=self.ruleset,
                brand_guard=self.settings.brand_guard,
                marketplace_retailers=self.marketplace_retailers,
            )
            if outcome.reason:
                logger.debug("Listing %s rejected (%s): %r", listing.listing_id, outcome.reason, listing.title)
            persisted = self._persist(outcome)
            counts[outcome.decision] += 1
            row = self._result_row(listing, outcome, persisted)
            if self.diagnostic:
                row.update(self._diagnostic_columns(outcome, listing, category_index))
            rows.append((seq, row))

        logger.info(
            "Category %s done: %d auto-approved, %d pending review, %d rejected",
            category_id,
            counts[Decision.AUTO_APPROVE], counts[Decision.PENDING_REVIEW], counts[Decision.REJECT],
        )
        return rows

    def _persist(self, outcome: MatchOutcome) -> bool:
        try:
            call_with_retry(
                self.sink.apply_match_decision,
                outcome.listing_id, outcome.decision, outcome.match,
                retries=self.settings.write_retries,
                delay=self.settings.retry_delay,
            )
        except PersistenceWriteFailure as exc:
            logger.error("Could not record decision for listing %s after %d attempts: %s",
                         outcome.listing_id, self.settings.write_retries, exc)
            return False
        return True

    @staticmethod
    def _result_row(listing: Listing, outcome: MatchOutcome, persisted: bool) -> Dict:
        match = outcome.match
        return {
            'listing_id': listing.listing_id,
            'category_id': listing.category_id,
            'retailer_id': listing.retailer_id or '',
            'title': listing.title,
            'cleaned_title': outcome.cleaned_title,
            'decision': outcome.decision.value,
            'match_score': round(match.score, 4) if match else 0.0,
            'candidate_id': match.candidate_id if match else '',
            'candidate_name': match.candidate_name if match else '',
            'reason': outcome.reason,
            'index_scope': outcome.index_scope,
            'persisted': persisted,
        }

    def _diagnostic_columns(self, outcome: MatchOutcome, listing: Listing, index: Sequence[IndexedCandidate]) -> Dict:
        # Alternatives only for rows a reviewer will look at
        columns = {}
        alternatives = []
        if outcome.decision != Decision.AUTO_APPROVE and outcome.cleaned_title:
            alternatives = suggest_alternatives(outcome.cleaned_title, index, limit=3, ruleset=self.ruleset)
        for i in range(1, 4):
            alt = alternatives[i - 1] if i <= len(alternatives) else None
            columns[f'top{i}_name'] = alt.candidate_name if alt else ''
            columns[f'top{i}_score'] = alt.score if alt else 0.0
        return columns

    # -----------------------------------------------------------------------
    # Variant resolution
    # -----------------------------------------------------------------------

    def resolve_variants(self, dry_run: bool = False) -> VariantFlagDiff:
        """
        Recompute best-variant flags for every DSP/ANC/switch family and apply the diff.

        Re-runnable: a second run after a successful apply produces an empty diff.
        Raises PersistenceWriteFailure if the flag update still fails after retries.
        """
        families = select_resolvable_families(self.catalog.list_family_members())
        diff = resolve_best_variants(families)
        logger.info(
            "Variant resolution: %d families, %d to mark best, %d to mark not-best%s",
            len(families), len(diff.to_mark_best), len(diff.to_mark_not_best),
            " (dry run)" if dry_run else "",
        )
        if dry_run or diff.is_empty():
            return diff
        try:
            call_with_retry(
                self.sink.apply_variant_flags,
                diff.to_mark_best, diff.to_mark_not_best,
                retries=self.settings.write_retries,
                delay=self.settings.retry_delay,
            )
        except PersistenceWriteFailure:
            logger.error("Could not apply variant flags after %d attempts", self.settings.write_retries)
            raise
        return diff
