"""
Title normalization for listing/catalog matching.

Listing titles arrive in every format retailers can think of:

    'Moondrop Space Travel (Pre-production) Headphones'
    'OFFICIAL Moondrop Space-Travel TWS Earbuds - Free Shipping'
    'moondrop space travel'

normalize_title() reduces all of these to one comparable string by removing
the parts that carry no product identity (noise parentheticals, marketing
words, category suffixes, punctuation) while keeping everything that might
(model numbers, variant parentheticals like "(MK2)", years).
"""

import re
from functools import lru_cache

from catalog_linker.rules import DEFAULT_RULESET, MatchRuleset, compile_ruleset

_DASHES_RE = re.compile(r"[-–—]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def _normalize_once(s: str, ruleset: MatchRuleset) -> str:
    compiled = compile_ruleset(ruleset)

    s = s.lower()
    # Noise parentheticals only: "(mk2)" or "(2021)" are variant info and stay
    s = compiled.noise_parens_re.sub("", s)
    s = compiled.retail_noise_re.sub("", s)
    # Suffixes must go before punctuation removal, otherwise "over-ear"
    # collapses into "overear" and no longer matches
    s = compiled.suffix_re.sub("", s)
    s = _DASHES_RE.sub(" ", s)
    s = _NON_ALNUM_RE.sub("", s)
    s = _WHITESPACE_RE.sub(" ", s).strip()
    return s


@lru_cache(maxsize=50000)
def normalize_title(title: str, ruleset: MatchRuleset = DEFAULT_RULESET) -> str:
    """
    Normalize a raw listing or catalog title for comparison.

    Steps (fixed order):
        1. Lowercase
        2. Strip noise parentheticals: (pre-production), (demo), (review unit)...
        3. Strip retail noise words: official, genuine, free shipping...
        4. Strip category suffixes: headphones, iem, in-ear monitors, over-ear...
        5. Dashes (hyphen, en-dash, em-dash) become spaces
        6. Drop everything except a-z, 0-9 and whitespace
        7. Collapse whitespace and trim

    Removing punctuation can glue fragments into a noise word again
    ("offi.cial" -> "official"), so the steps repeat until the output is
    stable. After the first pass the text is pure [a-z0-9 ] and every further
    pass only deletes characters, so this always terminates.

    Examples:
        'Moondrop Space Travel (Pre-production) Headphones' -> 'moondrop space travel'
        'Sennheiser HD 600 Open-Back Headphones'            -> 'sennheiser hd 600'
        'Campfire Andromeda (2020)'                        -> 'campfire andromeda 2020'
        '!!!'                                              -> ''
    """
    if not isinstance(title, str):
        return ""

    current = _normalize_once(title, ruleset)
    while True:
        again = _normalize_once(current, ruleset)
        if again == current:
            return current
        current = again


def brand_prefix(brand, ruleset: MatchRuleset = DEFAULT_RULESET) -> str:
    """Normalized form of a brand name, as it appears at the start of a title normalized with `ruleset`."""
    if not isinstance(brand, str) or not brand.strip():
        return ""
    return normalize_title(brand, ruleset)


def strip_brand(normalized: str, prefix: str = "") -> str:
    """
    Remove the brand prefix from a normalized title.

    With a known (normalized) brand prefix that the title starts with, the
    whole prefix is removed, which matters for multi-word brands like
    "64 audio". Otherwise the first token is treated as the brand.
    Single-token strings are returned unchanged.

    Examples:
        'moondrop space travel'               -> 'space travel'
        'u12t'                                -> 'u12t'
        '64 audio u12t', prefix='64 audio'    -> 'u12t'
    """
    if prefix and normalized.startswith(prefix + " "):
        return normalized[len(prefix) + 1:].strip()
    space_idx = normalized.find(" ")
    if space_idx == -1:
        return normalized
    return normalized[space_idx + 1:].strip()
