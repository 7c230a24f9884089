"""
Collaborator interfaces.

The engine never talks to a database directly. Callers pass in objects that
implement these base classes (a hosted-database client wrapper, the in-memory
catalog from catalog.py, a test double...).

Implementations should raise:
    - errors.CandidateLoadFailure when a category cannot be listed
    - errors.PersistenceWriteFailure when a write fails (it will be retried)
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from catalog_linker.models import Candidate, Decision, FamilyMember, MatchResult


class CandidateSource(ABC):
    @abstractmethod
    def list_candidates(self, category_id: str) -> List[Candidate]:
        """All canonical products of a category, in a stable order for one batch."""

    @abstractmethod
    def list_family_members(self) -> Dict[str, List[FamilyMember]]:
        """family_id -> members, for best-variant resolution."""


class DecisionSink(ABC):
    @abstractmethod
    def apply_match_decision(self, listing_id: str, decision: Decision, match: Optional[MatchResult]) -> None:
        """Record the decision for one listing, quality-gate rejects included."""

    @abstractmethod
    def apply_variant_flags(self, to_mark_best: Sequence[str], to_mark_not_best: Sequence[str]) -> None:
        """Batched is_best_variant updates."""
