"""
Noise vocabularies used by title normalization.

The vocabularies are data, not code branches: a MatchRuleset bundles the
three word lists and is compiled once into regular expressions. Retailer- or
category-specific tuning is done by building a new ruleset with
``MatchRuleset.extended(...)`` rather than by copying the normalizer.

Vocabulary groups:
    - noise_parentheticals: "(...)" contents that carry no product identity
      ("pre-production", "review unit"). Other parentheticals such as "(MK2)"
      or "(2021)" are variant information and are kept.
    - retail_noise: marketing words/phrases dropped anywhere in a title.
    - suffix_terms: category words ("headphones", "iem") that retailers append
      inconsistently. A hyphen inside a term also matches a space or nothing,
      so "in-ear", "in ear" and "inear" are all stripped.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Pattern, Tuple


# ---------------------------------------------------------------------------
# Default vocabularies
# ---------------------------------------------------------------------------

NOISE_PARENTHETICALS: Tuple[str, ...] = (
    "pre-production",
    "custom",
    "universal",
    "demo",
    "sample",
    "prototype",
    "review unit",
    "loaner",
)

RETAIL_NOISE: Tuple[str, ...] = (
    "official",
    "authentic",
    "genuine",
    "free shipping",
    "new arrival",
    "in stock",
    "hot sale",
    "latest",
    "original",
)

SUFFIX_TERMS: Tuple[str, ...] = (
    "in-ear monitor",
    "in-ear monitors",
    "in ear monitor",
    "in ear monitors",
    "iem",
    "iems",
    "headphone",
    "headphones",
    "earphone",
    "earphones",
    "earbuds",
    "earbud",
    "over-ear",
    "on-ear",
    "open-back",
    "closed-back",
)


@dataclass(frozen=True)
class MatchRuleset:
    noise_parentheticals: Tuple[str, ...] = NOISE_PARENTHETICALS
    retail_noise: Tuple[str, ...] = RETAIL_NOISE
    suffix_terms: Tuple[str, ...] = SUFFIX_TERMS

    def extended(
        self,
        noise_parentheticals: Iterable[str] = (),
        retail_noise: Iterable[str] = (),
        suffix_terms: Iterable[str] = (),
    ) -> "MatchRuleset":
        """Return a new ruleset with extra terms appended (duplicates dropped)."""
        return MatchRuleset(
            noise_parentheticals=_merge(self.noise_parentheticals, noise_parentheticals),
            retail_noise=_merge(self.retail_noise, retail_noise),
            suffix_terms=_merge(self.suffix_terms, suffix_terms),
        )


DEFAULT_RULESET = MatchRuleset()


def _merge(base: Tuple[str, ...], extra: Iterable[str]) -> Tuple[str, ...]:
    merged = list(base)
    for term in extra:
        term = term.strip().lower()
        if term and term not in merged:
            merged.append(term)
    return tuple(merged)


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompiledRuleset:
    noise_parens_re: Pattern
    retail_noise_re: Pattern
    suffix_re: Pattern


def _alternation(terms: Iterable[str], loose_hyphens: bool = False) -> str:
    parts = []
    # Longest first so "in-ear monitors" wins over "in-ear monitor"
    for term in sorted(set(terms), key=len, reverse=True):
        if loose_hyphens:
            parts.append(r"[-\s]?".join(re.escape(p) for p in term.split("-")))
        else:
            parts.append(re.escape(term))
    return "|".join(parts)


def _never() -> Pattern:
    return re.compile(r"(?!x)x")


@lru_cache(maxsize=32)
def compile_ruleset(ruleset: MatchRuleset) -> CompiledRuleset:
    """Compile a ruleset's vocabularies into case-insensitive regexes."""
    parens = _alternation(ruleset.noise_parentheticals)
    noise = _alternation(ruleset.retail_noise)
    suffixes = _alternation(ruleset.suffix_terms, loose_hyphens=True)
    return CompiledRuleset(
        noise_parens_re=re.compile(rf"\s*\((?:{parens})\)", re.IGNORECASE) if parens else _never(),
        retail_noise_re=re.compile(rf"\b(?:{noise})\b", re.IGNORECASE) if noise else _never(),
        suffix_re=re.compile(rf"\b(?:{suffixes})\b", re.IGNORECASE) if suffixes else _never(),
    )
