"""Fuzzy record linkage of scraped audio listings to a canonical product catalog."""

from catalog_linker.catalog import InMemoryCatalog, load_and_clean_catalog
from catalog_linker.config import MatchPolicy, Settings, configure_logging
from catalog_linker.errors import CandidateLoadFailure, CatalogLinkerError, PersistenceWriteFailure
from catalog_linker.index import build_brand_indices, build_index
from catalog_linker.matcher import classify, find_best_match, find_best_match_unindexed, match_listing
from catalog_linker.models import (
    Candidate,
    Decision,
    FamilyMember,
    Listing,
    MatchOutcome,
    MatchResult,
    VariantFlagDiff,
    VariantKind,
)
from catalog_linker.normalizer import normalize_title
from catalog_linker.pipeline import BatchReconciler, ReconciliationReport, match_titles
from catalog_linker.quality_gate import clean_marketplace_title, is_junk
from catalog_linker.rules import DEFAULT_RULESET, MatchRuleset
from catalog_linker.similarity import similarity
from catalog_linker.variants import resolve_best_variants

__version__ = "0.1.0"
