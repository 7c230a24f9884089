"""Similarity primitives: bigram/token Dice and the combined score."""

import pytest

from catalog_linker.similarity import (
    bigrams,
    brand_stripped_dice,
    brand_stripped_token_dice,
    dice,
    similarity,
    token_dice,
    tokens,
)


def test_bigrams_and_tokens_are_sets():
    assert bigrams("abc") == {"ab", "bc"}
    assert bigrams("aaaa") == {"aa"}
    assert bigrams("a") == frozenset()
    assert tokens("hd 600 hd") == {"hd", "600"}


@pytest.mark.parametrize("a, b, expected", [
    ("", "", 0.0),
    ("abc", "", 0.0),
    ("a", "a", 1.0),            # equal but too short for bigrams
    ("a", "b", 0.0),
    ("abc", "abc", 1.0),
    ("night", "nacht", 0.25),   # {ni,ig,gh,ht} vs {na,ac,ch,ht}
])
def test_dice(a, b, expected):
    assert dice(a, b) == pytest.approx(expected)


@pytest.mark.parametrize("a, b, expected", [
    ("", "hd 600", 0.0),
    ("hd 600", "hd 600", 1.0),
    ("sennheiser hd 600", "hd 600", 0.8),
    ("kz zs10 pro", "cca cra", 0.0),
])
def test_token_dice(a, b, expected):
    assert token_dice(a, b) == pytest.approx(expected)


def test_brand_stripped_strategies():
    # First token acts as the brand when no prefix is given
    assert brand_stripped_dice("moondrop aria", "truthear aria") == 1.0
    assert brand_stripped_token_dice("moondrop aria 2", "truthear aria 2") == 1.0
    # Explicit multi-word brand prefix
    assert brand_stripped_dice("64 audio u12t", "u12t", "64 audio", "64 audio") == 1.0


def test_similarity_is_max_of_strategies():
    a, b = "64 audio u12t", "u12t"
    full = dice(a, b)
    combined = similarity(a, b, "64 audio", "64 audio")
    assert full < 0.7
    assert combined == 1.0
    assert combined >= max(full, token_dice(a, b))


@pytest.mark.parametrize("a, b", [
    ("moondrop blessing 3", "moondrop blessing 2"),
    ("sennheiser hd 600", "hd 650"),
    ("", "kz zs10"),
    ("x", "y"),
])
def test_similarity_symmetric_and_bounded(a, b):
    assert similarity(a, b) == similarity(b, a)
    assert 0.0 <= similarity(a, b) <= 1.0


def test_identical_nonempty_strings_score_one():
    assert similarity("truthear zero", "truthear zero") == 1.0
    assert similarity("", "") == 0.0
