"""Brand normalization, inference and fuzzy comparison."""

import pytest

from catalog_linker.brands import (
    BRAND_DIFFERENT,
    BRAND_SAME,
    BRAND_SIMILAR,
    BRAND_UNKNOWN,
    brands_similar,
    infer_brand,
    normalize_brand,
)


@pytest.mark.parametrize("raw, expected", [
    ("Audio-Technica", "audio technica"),
    ("Campfire", "campfire audio"),
    ("Moondrop Audio", "moondrop"),
    ("Ziigat", "ziigaat"),
    ("Shure Inc.", "shure"),
    ("FiiO Official Store", "fiio"),
    ("  Sennheiser  ", "sennheiser"),
    (None, ""),
    ("", ""),
])
def test_normalize_brand(raw, expected):
    assert normalize_brand(raw) == expected


@pytest.mark.parametrize("title, expected", [
    ("Moondrop Blessing 3", "moondrop"),
    ("64 Audio U12t", "64 audio"),
    ("Audio-Technica ATH-M50x", "audio technica"),
    ("Campfire Audio Andromeda", "campfire audio"),
    ("Dan Clark Audio E3", "dan clark audio"),
    ("Unknown Device", ""),
    (None, ""),
])
def test_infer_brand(title, expected):
    assert infer_brand(title) == expected


@pytest.mark.parametrize("a, b, expected", [
    ("Moondrop", "moondrop", BRAND_SAME),
    ("Audio-Technica", "Audio Technica", BRAND_SAME),
    ("HiFiMan", "Hifi Man", BRAND_SAME),
    ("Tanchjim", "Tanchjim Audio", BRAND_SIMILAR),
    ("Letshuoer", "Letshouer", BRAND_SIMILAR),
    ("KZ", "CCA", BRAND_DIFFERENT),
    ("Sennheiser", "Sony", BRAND_DIFFERENT),
    ("KZ", None, BRAND_UNKNOWN),
    ("", "Moondrop", BRAND_UNKNOWN),
])
def test_brands_similar(a, b, expected):
    assert brands_similar(a, b) == expected
