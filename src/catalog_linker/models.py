"""
Data model shared by the matching engine and its collaborators.

Candidates and family members are owned by the catalog; the engine only
reads them. IndexedCandidate is a derived, per-batch artifact and is never
persisted.
"""

import enum
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional


class Decision(enum.Enum):
    AUTO_APPROVE = "auto_approve"      # link the listing to the candidate
    PENDING_REVIEW = "pending_review"  # queue for manual review
    REJECT = "reject"                  # no link created


class VariantKind(enum.Enum):
    BASE = "base"
    DSP = "dsp"
    ANC = "anc"
    SWITCH = "switch"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "VariantKind":
        """Map a stored variant_type (None for base products) to a VariantKind."""
        if value is None or str(value).strip() == "":
            return cls.BASE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class Candidate:
    id: str
    name: str
    brand: Optional[str] = None
    category_id: Optional[str] = None


@dataclass(frozen=True)
class IndexedCandidate:
    id: str
    name: str
    normalized: str
    brand_stripped: str
    bigrams: FrozenSet[str]
    brand_stripped_bigrams: FrozenSet[str]
    tokens: FrozenSet[str]
    brand_stripped_tokens: FrozenSet[str]
    brand: Optional[str] = None
    brand_prefix: str = ""


@dataclass(frozen=True)
class MatchResult:
    candidate_id: str
    candidate_name: str
    score: float


@dataclass(frozen=True)
class Listing:
    listing_id: str
    title: str
    category_id: str
    brand: Optional[str] = None
    retailer_id: Optional[str] = None


@dataclass
class MatchOutcome:
    listing_id: str
    decision: Decision
    match: Optional[MatchResult] = None
    reason: str = ""
    cleaned_title: str = ""
    index_scope: str = ""   # "brand", "category" or "" when nothing was scored

    @property
    def score(self) -> float:
        return self.match.score if self.match else 0.0


@dataclass
class FamilyMember:
    id: str
    quality_score: Optional[float]
    variant_kind: VariantKind = VariantKind.BASE
    current_best: Optional[bool] = None
    name: str = ""


@dataclass
class VariantFlagDiff:
    to_mark_best: List[str] = field(default_factory=list)
    to_mark_not_best: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.to_mark_best and not self.to_mark_not_best


@dataclass
class CatalogProduct:
    id: str
    name: str
    brand: Optional[str] = None
    category_id: Optional[str] = None
    quality_score: Optional[float] = None
    price: Optional[float] = None
    affiliate_url: Optional[str] = None
    image_url: Optional[str] = None
    in_stock: Optional[bool] = None
    source_type: Optional[str] = None
    updated_at: Optional[str] = None
