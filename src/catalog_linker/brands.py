"""
Brand normalization, inference and comparison.

Brands are used in two places:
    - partitioning a category's candidate index by brand, so a listing with a
      known brand is matched against that brand's products first
    - the brand guard, which refuses to link a listing to a product of a
      clearly different brand no matter how similar the model names are
      ("KZ ZS10 Pro" must not link to "CCA ZS10 Pro")

Spelling variants ("ZiiGaat" vs "Ziigat", "Audio-Technica" vs "Audio Technica")
are common, so comparison is fuzzy (rapidfuzz) rather than exact.
"""

import re
from typing import Dict

from rapidfuzz import fuzz

BRAND_SAME = "same"
BRAND_SIMILAR = "similar"
BRAND_DIFFERENT = "different"
BRAND_UNKNOWN = "unknown"

# Minimum rapidfuzz ratio for two brand spellings to count as the same maker
BRAND_SIMILARITY_THRESHOLD = 80


BRAND_ALIASES: Dict[str, str] = {
    # Hyphen/spacing variants
    'audio-technica': 'audio technica', 'audiotechnica': 'audio technica', 'ath': 'audio technica',
    'beyer dynamic': 'beyerdynamic', 'beyer': 'beyerdynamic',
    'hifiman': 'hifiman', 'hi-fiman': 'hifiman', 'hifi man': 'hifiman',
    'campfire': 'campfire audio',
    'sixty four audio': '64 audio', '64audio': '64 audio',
    'thieaudio': 'thieaudio', 'thie audio': 'thieaudio',
    'ziigat': 'ziigaat',
    'tin hifi': 'tinhifi', 'tin hi-fi': 'tinhifi',
    'moondrop audio': 'moondrop',
    'kz acoustics': 'kz', 'knowledge zenith': 'kz',
    'fiio electronics': 'fiio',
    'shure inc': 'shure',
    'sennheiser electronic': 'sennheiser',
    'sony corporation': 'sony', 'sony electronics': 'sony',
    'dan clark': 'dan clark audio', 'mrspeakers': 'dan clark audio',
    'focal audio': 'focal',
    'akg acoustics': 'akg',
}

# Legal/company suffixes stripped before alias lookup
_BRAND_SUFFIXES = re.compile(
    r'\s+(?:inc\.?|ltd\.?|co\.?|corp\.?|corporation|llc|gmbh|limited|official store|store)\s*$',
    re.IGNORECASE,
)

_KNOWN_BRANDS = {
    '64 audio', 'akg', 'audeze', 'audio technica', 'beyerdynamic', 'campfire audio',
    'cca', 'dan clark audio', 'dunu', 'fiio', 'focal', 'hifiman', 'kiwi ears', 'kz',
    'letshuoer', 'moondrop', 'sennheiser', 'shure', 'simgot', 'sony', 'softears',
    'thieaudio', 'tinhifi', 'truthear', 'ziigaat', '7hz', 'tanchjim', 'etymotic',
}

# Reverse lookup from first word(s) to canonical brand
_BRAND_FROM_PREFIX = {b: b for b in _KNOWN_BRANDS}
for _alias, _canonical in BRAND_ALIASES.items():
    _BRAND_FROM_PREFIX.setdefault(_alias, _canonical)


def normalize_brand(brand) -> str:
    """
    Normalize a brand name: lowercase, strip legal suffixes, apply alias lookup.

    Examples:
        'Audio-Technica'      -> 'audio technica'
        'Campfire'            -> 'campfire audio'
        'Moondrop Audio Ltd.' -> 'moondrop'
        'Ziigat'              -> 'ziigaat'
    """
    if not isinstance(brand, str) or not brand.strip():
        return ''
    b = re.sub(r'\s+', ' ', brand.strip().lower())
    if b in BRAND_ALIASES:
        return BRAND_ALIASES[b]
    b_stripped = _BRAND_SUFFIXES.sub('', b).strip()
    if b_stripped in BRAND_ALIASES:
        return BRAND_ALIASES[b_stripped]
    return b_stripped if b_stripped else b


def infer_brand(title) -> str:
    """
    Infer the brand from the first one to three words of a title.

    Only returns a brand for an exact known brand or alias; '' otherwise.

    Examples:
        'Moondrop Blessing 3'      -> 'moondrop'
        '64 Audio U12t'            -> '64 audio'
        'Audio-Technica ATH-M50x'  -> 'audio technica'
        'Unknown Device'           -> ''
    """
    if not isinstance(title, str):
        return ''
    words = title.lower().strip().split()
    for n in (3, 2, 1):
        if len(words) >= n:
            candidate = ' '.join(words[:n])
            if candidate in _BRAND_FROM_PREFIX:
                return _BRAND_FROM_PREFIX[candidate]
    return ''


def brands_similar(a, b) -> str:
    """
    Compare two brand names.

    Returns:
        'unknown'   either brand is missing
        'same'      equal after normalization
        'similar'   one contains the other, or rapidfuzz ratio >= 80
        'different' anything else
    """
    na = normalize_brand(a)
    nb = normalize_brand(b)
    if not na or not nb:
        return BRAND_UNKNOWN
    if na == nb:
        return BRAND_SAME
    compact_a = na.replace(' ', '')
    compact_b = nb.replace(' ', '')
    if compact_a == compact_b:
        return BRAND_SAME
    if compact_a in compact_b or compact_b in compact_a:
        return BRAND_SIMILAR
    if fuzz.ratio(compact_a, compact_b) >= BRAND_SIMILARITY_THRESHOLD:
        return BRAND_SIMILAR
    return BRAND_DIFFERENT
