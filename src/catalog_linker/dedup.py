"""
Duplicate canonical-product detection.

The same device can enter the catalog twice: once from measurement data
(quality score, no price) and once from a store (price, no quality score).
Rows are grouped by identity = (normalized name, normalized brand, category)
and each group with more than one row gets one canonical winner.

Winner selection:
    1. Highest rank_product() score
    2. Newest updated_at
    3. First row seen

Fields the winner lacks but a loser has are reported as backfill so the
caller can copy them over before deleting the losers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from catalog_linker.brands import normalize_brand
from catalog_linker.models import CatalogProduct
from catalog_linker.normalizer import normalize_title
from catalog_linker.rules import DEFAULT_RULESET, MatchRuleset

BACKFILL_FIELDS = ("quality_score", "price", "affiliate_url", "image_url")


@dataclass
class DuplicateGroup:
    key: Tuple[str, str, str]
    winner: CatalogProduct
    losers: List[CatalogProduct]
    backfill: Dict[str, Any] = field(default_factory=dict)


def rank_product(product: CatalogProduct) -> float:
    """Higher is a better row to keep."""
    score = 0.0
    if product.quality_score is not None:
        score += 100   # has measurement data
        score += product.quality_score
    if product.price is not None:
        score += 50
    if product.in_stock:
        score += 20
    if product.source_type == "merged":
        score += 15
    if product.affiliate_url:
        score += 10
    if product.image_url:
        score += 5
    return score


def identity_key(product: CatalogProduct, ruleset: MatchRuleset = DEFAULT_RULESET) -> Tuple[str, str, str]:
    return (
        normalize_title(product.name, ruleset),
        normalize_brand(product.brand),
        product.category_id or "",
    )


def _pick_winner(members: List[CatalogProduct]) -> CatalogProduct:
    winner = members[0]
    for member in members[1:]:
        member_key = (rank_product(member), member.updated_at or "")
        winner_key = (rank_product(winner), winner.updated_at or "")
        if member_key > winner_key:
            winner = member
    return winner


def find_duplicate_groups(
    products: Iterable[CatalogProduct],
    ruleset: MatchRuleset = DEFAULT_RULESET,
) -> List[DuplicateGroup]:
    """Group products by identity and return every group with more than one row."""
    groups: Dict[Tuple[str, str, str], List[CatalogProduct]] = {}
    for product in products:
        key = identity_key(product, ruleset)
        if not key[0]:
            continue
        groups.setdefault(key, []).append(product)

    duplicates = []
    for key, members in groups.items():
        if len(members) < 2:
            continue
        winner = _pick_winner(members)
        losers = [m for m in members if m is not winner]
        backfill = {}
        for name in BACKFILL_FIELDS:
            if getattr(winner, name) is not None:
                continue
            for loser in losers:
                value = getattr(loser, name)
                if value is not None:
                    backfill[name] = value
                    break
        duplicates.append(DuplicateGroup(key=key, winner=winner, losers=losers, backfill=backfill))
    return duplicates
