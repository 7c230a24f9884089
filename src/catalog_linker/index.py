"""
Candidate index: precomputed matching fingerprints for a candidate pool.

A batch run scores thousands of listing titles against the same few hundred
canonical products of one category. Normalizing every candidate for every
query is wasted work, so the pool is indexed once:

    build_index(candidates)          -> [IndexedCandidate, ...]   (input order kept)
    build_brand_indices(candidates)  -> {normalized_brand: [IndexedCandidate, ...]}

Indexes are immutable after construction and safe to share between threads.
"""

from typing import Dict, Iterable, List

from catalog_linker.brands import normalize_brand
from catalog_linker.models import Candidate, IndexedCandidate
from catalog_linker.normalizer import brand_prefix, normalize_title, strip_brand
from catalog_linker.rules import DEFAULT_RULESET, MatchRuleset
from catalog_linker.similarity import bigrams, tokens


def index_candidate(candidate: Candidate, ruleset: MatchRuleset = DEFAULT_RULESET) -> IndexedCandidate:
    normalized = normalize_title(candidate.name, ruleset)
    prefix = brand_prefix(candidate.brand, ruleset)
    stripped = strip_brand(normalized, prefix)
    return IndexedCandidate(
        id=candidate.id,
        name=candidate.name,
        normalized=normalized,
        brand_stripped=stripped,
        bigrams=bigrams(normalized),
        brand_stripped_bigrams=bigrams(stripped),
        tokens=tokens(normalized),
        brand_stripped_tokens=tokens(stripped),
        brand=candidate.brand,
        brand_prefix=prefix,
    )


def build_index(
    candidates: Iterable[Candidate],
    ruleset: MatchRuleset = DEFAULT_RULESET,
) -> List[IndexedCandidate]:
    """Index a candidate pool once; the order of the pool is preserved for tie-breaking."""
    return [index_candidate(c, ruleset) for c in candidates]


def build_brand_indices(
    candidates: Iterable[Candidate],
    ruleset: MatchRuleset = DEFAULT_RULESET,
) -> Dict[str, List[IndexedCandidate]]:
    """
    Build a brand-partitioned index.

    Returns dict: normalized_brand -> [IndexedCandidate, ...]

    Matching inside one brand's products is faster than searching the whole
    category and removes cross-brand false positives. Candidates without a
    brand are left out of every partition (they remain in the category index).
    """
    brand_index: Dict[str, List[IndexedCandidate]] = {}
    for candidate in candidates:
        brand = normalize_brand(candidate.brand)
        if not brand:
            continue
        brand_index.setdefault(brand, []).append(index_candidate(candidate, ruleset))
    return brand_index
