"""
String similarity primitives.

Four strategies, all returning a float in [0, 1]:

    dice                        character-bigram Dice on the full strings
    brand_stripped_dice         same, after removing the brand prefix
    token_dice                  word-set Dice on the full strings
    brand_stripped_token_dice   same, after removing the brand prefix

The final similarity is the maximum of the four. Retailers format titles in
incompatible ways (brand-first vs brand omitted, word salad vs tight model
numbers) and no single strategy wins on all of them.

The *_from_sets kernels are shared with the indexed matcher so precomputed
sets and on-the-fly sets always produce identical scores.
"""

from typing import FrozenSet

from catalog_linker.normalizer import strip_brand


def bigrams(text: str) -> FrozenSet[str]:
    """Set of contiguous 2-character substrings ('abc' -> {'ab', 'bc'})."""
    return frozenset(text[i:i + 2] for i in range(len(text) - 1))


def tokens(text: str) -> FrozenSet[str]:
    """Whitespace tokens with set semantics (duplicates collapse)."""
    return frozenset(text.split())


def dice_from_sets(a: str, b: str, a_bigrams: FrozenSet[str], b_bigrams: FrozenSet[str]) -> float:
    """
    Bigram Dice given the strings and their precomputed bigram sets.

    Empty input scores 0. Identical strings score 1 even when they are too
    short to have bigrams. Two distinct strings without bigrams score 0.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    total = len(a_bigrams) + len(b_bigrams)
    if total == 0:
        return 0.0
    return 2.0 * len(a_bigrams & b_bigrams) / total


def token_dice_from_sets(a_tokens: FrozenSet[str], b_tokens: FrozenSet[str]) -> float:
    if not a_tokens or not b_tokens:
        return 0.0
    return 2.0 * len(a_tokens & b_tokens) / (len(a_tokens) + len(b_tokens))


def dice(a: str, b: str) -> float:
    """Character-bigram Dice coefficient: 2|A∩B| / (|A| + |B|)."""
    return dice_from_sets(a, b, bigrams(a), bigrams(b))


def token_dice(a: str, b: str) -> float:
    """Token-level Dice coefficient over whitespace-delimited word sets."""
    return token_dice_from_sets(tokens(a), tokens(b))


def brand_stripped_dice(a: str, b: str, a_brand: str = "", b_brand: str = "") -> float:
    return dice(strip_brand(a, a_brand), strip_brand(b, b_brand))


def brand_stripped_token_dice(a: str, b: str, a_brand: str = "", b_brand: str = "") -> float:
    return token_dice(strip_brand(a, a_brand), strip_brand(b, b_brand))


def similarity(a: str, b: str, a_brand: str = "", b_brand: str = "") -> float:
    """
    Best score across all four strategies for two normalized strings.

    a_brand / b_brand are optional normalized brand prefixes; without them
    the first token of each string is treated as its brand.
    """
    return max(
        dice(a, b),
        brand_stripped_dice(a, b, a_brand, b_brand),
        token_dice(a, b),
        brand_stripped_token_dice(a, b, a_brand, b_brand),
    )
