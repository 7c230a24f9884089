"""Shared fixtures for catalog-linker tests."""

import sys
from pathlib import Path

import pytest


def ensure_src_on_path() -> None:
    root = Path(__file__).resolve().parent.parent
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.append(str(src_path))


ensure_src_on_path()

from catalog_linker.catalog import InMemoryCatalog
from catalog_linker.config import MatchPolicy, Settings
from catalog_linker.models import Candidate, FamilyMember, VariantKind


@pytest.fixture
def iem_candidates():
    return [
        Candidate(id="c1", name="Moondrop Blessing 3", brand="Moondrop", category_id="iem"),
        Candidate(id="c2", name="Moondrop Aria 2", brand="Moondrop", category_id="iem"),
        Candidate(id="c3", name="U12t", brand="64 Audio", category_id="iem"),
        Candidate(id="c4", name="KZ ZS10 Pro", brand="KZ", category_id="iem"),
        Candidate(id="c5", name="CCA CRA", brand="CCA", category_id="iem"),
        Candidate(id="c6", name="Truthear Zero", brand="Truthear", category_id="iem"),
    ]


@pytest.fixture
def headphone_candidates():
    return [
        Candidate(id="h1", name="Sennheiser HD 600", brand="Sennheiser", category_id="headphones"),
        Candidate(id="h2", name="Sennheiser HD 650", brand="Sennheiser", category_id="headphones"),
        Candidate(id="h3", name="HiFiMan Sundara", brand="HiFiMan", category_id="headphones"),
    ]


@pytest.fixture
def families():
    return {
        "zero": [
            FamilyMember(id="z-base", quality_score=78.0, variant_kind=VariantKind.BASE, current_best=True),
            FamilyMember(id="z-dsp", quality_score=85.0, variant_kind=VariantKind.DSP, current_best=False),
        ],
        "plain": [
            FamilyMember(id="p1", quality_score=70.0, variant_kind=VariantKind.BASE, current_best=None),
        ],
    }


@pytest.fixture
def catalog(iem_candidates, headphone_candidates, families):
    return InMemoryCatalog(
        candidates={"iem": iem_candidates, "headphones": headphone_candidates},
        families=families,
    )


@pytest.fixture
def policy():
    return MatchPolicy(auto_approve_threshold=0.85, pending_review_threshold=0.60)


@pytest.fixture
def settings():
    # No sleeping between write retries in tests
    return Settings(max_workers=2, write_retries=3, retry_delay=0.0)
