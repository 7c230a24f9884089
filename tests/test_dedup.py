"""Duplicate canonical-product detection."""

from catalog_linker.dedup import find_duplicate_groups, identity_key, rank_product
from catalog_linker.models import CatalogProduct


def product(id, name="Moondrop Aria 2", brand="Moondrop", **fields):
    return CatalogProduct(id=id, name=name, brand=brand, category_id="iem", **fields)


def test_rank_product_weights():
    assert rank_product(product("a")) == 0
    assert rank_product(product("a", quality_score=80.0)) == 180
    assert rank_product(product("a", price=19.99, in_stock=True)) == 70
    assert rank_product(product("a", source_type="merged", affiliate_url="u", image_url="i")) == 30


def test_identity_key_normalizes_name_and_brand():
    a = product("a", name="Moondrop Aria 2 IEM", brand="Moondrop Audio")
    b = product("b", name="MOONDROP Aria-2", brand="moondrop")
    # "Aria-2" becomes "aria 2" once dashes are spaces
    assert identity_key(a) == identity_key(b) == ("moondrop aria 2", "moondrop", "iem")


def test_measured_row_wins_and_store_fields_backfill():
    measured = product("m", quality_score=82.0, updated_at="2024-01-01")
    store = product("s", price=79.0, in_stock=True, affiliate_url="https://shop/aria2", updated_at="2024-06-01")
    groups = find_duplicate_groups([store, measured])
    assert len(groups) == 1
    group = groups[0]
    assert group.winner is measured
    assert group.losers == [store]
    assert group.backfill == {"price": 79.0, "affiliate_url": "https://shop/aria2"}


def test_newer_row_breaks_rank_tie():
    old = product("old", price=10.0, updated_at="2023-01-01")
    new = product("new", price=12.0, updated_at="2024-01-01")
    assert find_duplicate_groups([old, new])[0].winner is new


def test_first_row_wins_full_tie():
    first = product("first")
    second = product("second")
    assert find_duplicate_groups([first, second])[0].winner is first


def test_singletons_and_empty_names_are_ignored():
    rows = [
        product("a", name="Moondrop Aria 2"),
        product("b", name="Moondrop Blessing 3"),
        product("c", name="!!!"),
        product("d", name="!!!"),
    ]
    assert find_duplicate_groups(rows) == []


def test_same_name_different_brand_not_grouped():
    rows = [product("a", name="ZS10 Pro", brand="KZ"), product("b", name="ZS10 Pro", brand="CCA")]
    assert find_duplicate_groups(rows) == []
