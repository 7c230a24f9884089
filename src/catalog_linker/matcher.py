"""
Core matching engine: resolve a listing title to its canonical catalog product.

Matching Approach:
    - Normalize the query title once (normalizer.normalize_title)
    - Score it against every candidate of a prebuilt index with four
      strategies (bigram Dice, brand-stripped bigram Dice, token Dice,
      brand-stripped token Dice) and keep the maximum
    - The candidate with the strictly greatest score wins; ties keep the
      first candidate in index order, so results are deterministic for a
      given candidate ordering

Decision Bands (thresholds come from a MatchPolicy, never hardcoded here):
    - score >= auto_approve_threshold                 -> AUTO_APPROVE (link)
    - pending_review <= score < auto_approve          -> PENDING_REVIEW (manual)
    - score < pending_review_threshold, or no match   -> REJECT (no link)

Brand Scoping (match_listing):
    - A listing with a known brand is matched inside that brand's partition
      with the normal policy
    - Without a usable partition it falls back to the whole category index
      with a stricter fallback policy
    - The brand guard rejects links between clearly different brands
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from catalog_linker.brands import BRAND_DIFFERENT, brands_similar, infer_brand, normalize_brand
from catalog_linker.config import MatchPolicy
from catalog_linker.models import (
    Candidate,
    Decision,
    IndexedCandidate,
    Listing,
    MatchOutcome,
    MatchResult,
)
from catalog_linker.normalizer import brand_prefix, normalize_title, strip_brand
from catalog_linker.quality_gate import clean_marketplace_title, junk_signals
from catalog_linker.rules import DEFAULT_RULESET, MatchRuleset
from catalog_linker.similarity import (
    bigrams,
    dice_from_sets,
    similarity,
    token_dice_from_sets,
    tokens,
)

logger = logging.getLogger(__name__)

REASON_NO_CANDIDATES = "no_candidates"
REASON_BRAND_MISMATCH = "brand_mismatch"
REASON_JUNK_PREFIX = "junk:"

SCOPE_BRAND = "brand"
SCOPE_CATEGORY = "category"

# Retailers whose titles carry marketplace marketing noise
MARKETPLACE_RETAILERS = frozenset({"aliexpress"})


# ---------------------------------------------------------------------------
# Query fingerprint
# ---------------------------------------------------------------------------

@dataclass
class QueryFingerprint:
    """
    Query-side normalized forms and sets, computed once per query.

    The brand-stripped view depends on which brand prefix applies: an explicit
    brand hint, else the candidate's own brand when the query starts with it,
    else the first token. Views are cached per prefix.
    """

    normalized: str
    brand_hint: str = ""
    bigrams: FrozenSet[str] = frozenset()
    tokens: FrozenSet[str] = frozenset()
    _views: Dict[str, Tuple[str, FrozenSet[str], FrozenSet[str]]] = field(default_factory=dict, repr=False)

    @classmethod
    def from_title(cls, title, ruleset: MatchRuleset = DEFAULT_RULESET, brand: Optional[str] = None) -> "QueryFingerprint":
        normalized = normalize_title(title, ruleset)
        return cls(
            normalized=normalized,
            brand_hint=brand_prefix(brand, ruleset),
            bigrams=bigrams(normalized),
            tokens=tokens(normalized),
        )

    def prefix_for(self, candidate_prefix: str) -> str:
        if self.brand_hint and self.normalized.startswith(self.brand_hint + " "):
            return self.brand_hint
        return candidate_prefix

    def stripped_view(self, candidate_prefix: str = "") -> Tuple[str, FrozenSet[str], FrozenSet[str]]:
        prefix = self.prefix_for(candidate_prefix)
        if not self.normalized.startswith(prefix + " "):
            prefix = ""
        view = self._views.get(prefix)
        if view is None:
            stripped = strip_brand(self.normalized, prefix)
            view = (stripped, bigrams(stripped), tokens(stripped))
            self._views[prefix] = view
        return view


def score_candidate(query: QueryFingerprint, candidate: IndexedCandidate) -> float:
    """Best of the four similarity strategies, using the candidate's precomputed sets."""
    stripped, stripped_bigrams, stripped_tokens = query.stripped_view(candidate.brand_prefix)
    return max(
        dice_from_sets(query.normalized, candidate.normalized, query.bigrams, candidate.bigrams),
        dice_from_sets(stripped, candidate.brand_stripped, stripped_bigrams, candidate.brand_stripped_bigrams),
        token_dice_from_sets(query.tokens, candidate.tokens),
        token_dice_from_sets(stripped_tokens, candidate.brand_stripped_tokens),
    )


# ---------------------------------------------------------------------------
# Best match
# ---------------------------------------------------------------------------

def find_best_match(
    title,
    index: Sequence[IndexedCandidate],
    ruleset: MatchRuleset = DEFAULT_RULESET,
    brand: Optional[str] = None,
) -> Optional[MatchResult]:
    """
    Find the best-scoring candidate for a title in a prebuilt index.

    Returns None for an empty index ("no candidates in category", not an
    error). Ties are resolved in favour of the earlier candidate.
    """
    if not index:
        return None

    query = QueryFingerprint.from_title(title, ruleset, brand)

    best_score = -1.0
    best: Optional[IndexedCandidate] = None
    for candidate in index:
        score = score_candidate(query, candidate)
        if score > best_score:
            best_score = score
            best = candidate

    return MatchResult(candidate_id=best.id, candidate_name=best.name, score=best_score)


def find_best_match_unindexed(
    title,
    candidates: Sequence[Candidate],
    ruleset: MatchRuleset = DEFAULT_RULESET,
    brand: Optional[str] = None,
) -> Optional[MatchResult]:
    """
    Reference implementation without an index: normalizes every candidate per call.

    Must agree exactly with find_best_match(title, build_index(candidates)).
    Use it for one-off lookups; batch work should build an index once.
    """
    if not candidates:
        return None

    query = normalize_title(title, ruleset)
    hint = brand_prefix(brand, ruleset)

    best_score = -1.0
    best: Optional[Candidate] = None
    for candidate in candidates:
        normalized = normalize_title(candidate.name, ruleset)
        candidate_prefix = brand_prefix(candidate.brand, ruleset)
        query_prefix = hint if hint and query.startswith(hint + " ") else candidate_prefix
        if not query.startswith(query_prefix + " "):
            query_prefix = ""
        score = similarity(query, normalized, query_prefix, candidate_prefix)
        if score > best_score:
            best_score = score
            best = candidate

    return MatchResult(candidate_id=best.id, candidate_name=best.name, score=best_score)


def rank_matches(
    title,
    index: Sequence[IndexedCandidate],
    limit: int = 3,
    ruleset: MatchRuleset = DEFAULT_RULESET,
    brand: Optional[str] = None,
) -> List[MatchResult]:
    """Top-N candidates by score, highest first; equal scores keep index order."""
    if not index or limit <= 0:
        return []
    query = QueryFingerprint.from_title(title, ruleset, brand)
    scored = [
        (score_candidate(query, candidate), position, candidate)
        for position, candidate in enumerate(index)
    ]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [
        MatchResult(candidate_id=c.id, candidate_name=c.name, score=s)
        for s, _, c in scored[:limit]
    ]


def suggest_alternatives(
    title,
    index: Sequence[IndexedCandidate],
    limit: int = 3,
    ruleset: MatchRuleset = DEFAULT_RULESET,
) -> List[MatchResult]:
    """
    Reviewer hint: closest catalog names by rapidfuzz token_sort_ratio.

    Token-sort is order-independent, so it surfaces word-salad listings that
    the Dice scores rank low. Scores are scaled to [0, 1]. This never
    influences the decision; it only fills the review queue's
    "did you mean" columns.
    """
    if not index or limit <= 0:
        return []
    query = normalize_title(title, ruleset)
    if not query:
        return []
    choices = [candidate.normalized for candidate in index]
    hits = process.extract(query, choices, scorer=fuzz.token_sort_ratio, limit=limit)
    return [
        MatchResult(candidate_id=index[pos].id, candidate_name=index[pos].name, score=round(score / 100.0, 4))
        for _, score, pos in hits
    ]


# ---------------------------------------------------------------------------
# Decision mapping
# ---------------------------------------------------------------------------

def classify(score: Optional[float], policy: MatchPolicy) -> Decision:
    """Map a score to a decision band. None (no match) is always REJECT."""
    if score is None:
        return Decision.REJECT
    if score >= policy.auto_approve_threshold:
        return Decision.AUTO_APPROVE
    if score >= policy.pending_review_threshold:
        return Decision.PENDING_REVIEW
    return Decision.REJECT


# ---------------------------------------------------------------------------
# Listing-level matching
# ---------------------------------------------------------------------------

def match_listing(
    listing: Listing,
    category_index: Sequence[IndexedCandidate],
    brand_indices: Optional[Mapping[str, Sequence[IndexedCandidate]]],
    policy: MatchPolicy,
    fallback_policy: Optional[MatchPolicy] = None,
    ruleset: MatchRuleset = DEFAULT_RULESET,
    brand_guard: bool = True,
    marketplace_retailers: AbstractSet[str] = MARKETPLACE_RETAILERS,
) -> MatchOutcome:
    """
    Reconcile one listing against a category's indexes.

    Steps:
        1. Quality gate on the raw title -> REJECT with reason "junk:<category>"
        2. Clean marketing noise from titles of marketplace retailers only;
           other retailers keep years and variant words intact
        3. Brand partition (listing brand, else inferred from title) with
           `policy`, or the whole category with `fallback_policy`
        4. Best match + decision band
        5. Brand guard: a link between clearly different brands is REJECTed
    """
    signals = junk_signals(listing.title)
    if signals:
        return MatchOutcome(
            listing_id=listing.listing_id,
            decision=Decision.REJECT,
            reason=REASON_JUNK_PREFIX + signals[0].category.value,
        )

    if (listing.retailer_id or "").strip().lower() in marketplace_retailers:
        cleaned = clean_marketplace_title(listing.title)
    else:
        cleaned = listing.title.strip() if isinstance(listing.title, str) else ""
    listing_brand = listing.brand or infer_brand(cleaned)
    brand_key = normalize_brand(listing_brand)

    scoped = brand_indices.get(brand_key) if (brand_indices and brand_key) else None
    if scoped:
        index, scope, effective_policy = scoped, SCOPE_BRAND, policy
    else:
        index, scope, effective_policy = category_index, SCOPE_CATEGORY, fallback_policy or policy
        logger.debug("Listing %s: no brand partition for %r, using category index", listing.listing_id, brand_key)

    if not index:
        return MatchOutcome(
            listing_id=listing.listing_id,
            decision=Decision.REJECT,
            reason=REASON_NO_CANDIDATES,
            cleaned_title=cleaned,
        )

    match = find_best_match(cleaned, index, ruleset, brand=listing_brand or None)
    decision = classify(match.score if match else None, effective_policy)
    outcome = MatchOutcome(
        listing_id=listing.listing_id,
        decision=decision,
        match=match,
        cleaned_title=cleaned,
        index_scope=scope,
    )

    if brand_guard and match and decision != Decision.REJECT:
        matched = next((c for c in index if c.id == match.candidate_id), None)
        if matched is not None and brands_similar(listing_brand, matched.brand) == BRAND_DIFFERENT:
            outcome.decision = Decision.REJECT
            outcome.reason = REASON_BRAND_MISMATCH
            logger.debug("Listing %s: brand %r vs candidate brand %r, link refused",
                         listing.listing_id, listing_brand, matched.brand)

    return outcome

