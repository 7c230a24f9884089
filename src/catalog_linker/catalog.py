"""
In-memory catalog and decision sink, plus DataFrame loading.

InMemoryCatalog implements both CandidateSource and DecisionSink. It backs
local runs from spreadsheet/parquet exports and the test suite; production
callers wrap their database client in the same two interfaces instead.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from catalog_linker.errors import CandidateLoadFailure
from catalog_linker.interfaces import CandidateSource, DecisionSink
from catalog_linker.models import Candidate, Decision, FamilyMember, MatchResult, VariantFlagDiff
from catalog_linker.normalizer import normalize_title
from catalog_linker.variants import apply_diff

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DataFrame loading
# ---------------------------------------------------------------------------

def load_and_clean_catalog(df_catalog: pd.DataFrame) -> Tuple[pd.DataFrame, Dict]:
    """
    Clean a canonical product export:
        1. Drop rows with null/empty names
        2. Drop rows whose name contains the word "test" (case-insensitive)
        3. Add a 'normalized_name' column
        4. Warn about duplicate ids and empty brands

    Returns:
        - Cleaned DataFrame with 'normalized_name' column
        - Stats dict (includes 'warnings' list)
    """
    missing = [c for c in ('id', 'name') if c not in df_catalog.columns]
    if missing:
        raise ValueError(f"Catalog is missing required columns: {missing}")

    df = df_catalog.copy()
    for col in ('brand', 'category_id'):
        if col not in df.columns:
            df[col] = None
    warnings = []
    original_count = len(df)

    df = df[df['name'].notna()]
    df = df[df['name'].astype(str).str.strip() != '']
    null_dropped = original_count - len(df)

    # Word boundary so "latest" or "contest" survive
    test_mask = df['name'].astype(str).str.contains(r'\btest\b', case=False, na=False)
    df = df[~test_mask]
    test_dropped = original_count - null_dropped - len(df)

    id_counts = df['id'].astype(str).value_counts()
    duplicate_ids = id_counts[id_counts > 1].index.tolist()
    if duplicate_ids:
        warnings.append(f"Found {len(duplicate_ids)} duplicate product ids")
        for product_id in duplicate_ids[:5]:
            names = df[df['id'].astype(str) == product_id]['name'].unique()
            warnings.append(f"  ID {product_id}: {len(names)} different names")

    empty_brands = int(df['brand'].isna().sum() + (df['brand'].astype(str).str.strip() == '').sum())
    if empty_brands > 0:
        warnings.append(f"{empty_brands} catalog entries have empty brand fields")

    df['normalized_name'] = df['name'].astype(str).map(normalize_title)

    stats = {
        'original': original_count,
        'null_dropped': null_dropped,
        'test_dropped': test_dropped,
        'final': len(df),
        'warnings': warnings,
    }
    return df, stats


def _optional_str(value) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    value = str(value).strip()
    return value or None


def candidates_from_frame(df: pd.DataFrame) -> Dict[str, List[Candidate]]:
    """category_id -> candidates, in DataFrame row order."""
    by_category: Dict[str, List[Candidate]] = {}
    for row in df.itertuples(index=False):
        category = _optional_str(getattr(row, 'category_id', None)) or ''
        by_category.setdefault(category, []).append(Candidate(
            id=str(row.id).strip(),
            name=str(row.name).strip(),
            brand=_optional_str(getattr(row, 'brand', None)),
            category_id=category or None,
        ))
    return by_category


# ---------------------------------------------------------------------------
# In-memory catalog / sink
# ---------------------------------------------------------------------------

class InMemoryCatalog(CandidateSource, DecisionSink):
    """Dict-backed catalog and sink. Thread-safe for concurrent batch writes."""

    def __init__(
        self,
        candidates: Optional[Dict[str, List[Candidate]]] = None,
        families: Optional[Dict[str, List[FamilyMember]]] = None,
    ):
        self.candidates: Dict[str, List[Candidate]] = candidates or {}
        self.families: Dict[str, List[FamilyMember]] = families or {}
        self.decisions: Dict[str, Tuple[Decision, Optional[MatchResult]]] = {}
        self.flag_updates: List[VariantFlagDiff] = []
        self._lock = threading.Lock()

    @classmethod
    def from_dataframe(cls, df_catalog: pd.DataFrame) -> "InMemoryCatalog":
        df_clean, stats = load_and_clean_catalog(df_catalog)
        for warning in stats['warnings']:
            logger.warning(warning)
        logger.info("Loaded %d of %d catalog rows", stats['final'], stats['original'])
        return cls(candidates=candidates_from_frame(df_clean))

    def list_candidates(self, category_id: str) -> List[Candidate]:
        if category_id not in self.candidates:
            raise CandidateLoadFailure(category_id, "unknown category")
        return list(self.candidates[category_id])

    def list_family_members(self) -> Dict[str, List[FamilyMember]]:
        return {family_id: list(members) for family_id, members in self.families.items()}

    def apply_match_decision(self, listing_id: str, decision: Decision, match: Optional[MatchResult]) -> None:
        with self._lock:
            self.decisions[listing_id] = (decision, match)

    def apply_variant_flags(self, to_mark_best: Sequence[str], to_mark_not_best: Sequence[str]) -> None:
        diff = VariantFlagDiff(to_mark_best=list(to_mark_best), to_mark_not_best=list(to_mark_not_best))
        with self._lock:
            apply_diff(self.families, diff)
            self.flag_updates.append(diff)
