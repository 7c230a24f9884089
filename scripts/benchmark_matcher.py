"""
Micro-benchmark for the catalog-linker matching engine.

Tests:
1. normalize_title() on the hot path
2. build_index() on a synthetic 5k-product catalog
3. find_best_match() against the index vs find_best_match_unindexed()
4. BatchReconciler.reconcile() end-to-end on a synthetic 2k-listing batch

Usage:
    python scripts/benchmark_matcher.py
"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
import time
import pandas as pd
import numpy as np
from catalog_linker import (
    BatchReconciler, InMemoryCatalog, Listing, Settings, configure_logging,
    build_index, find_best_match, find_best_match_unindexed, normalize_title,
)
from catalog_linker.catalog import candidates_from_frame, load_and_clean_catalog
from catalog_linker.report import compute_coverage_metrics

BRANDS = ['Moondrop', 'Truthear', 'KZ', 'Simgot', 'Sennheiser', 'Sony', 'Letshuoer', '64 Audio', 'FiiO', 'Tanchjim']
MODELS = ['Aria', 'Blessing', 'Zero', 'ZS10', 'EA500', 'IE', 'WH', 'S12', 'U12t', 'FH', 'Oxygen', 'Hola']
VARIANTS = ['', ' Pro', ' 2', ' 3', ' Mk2', ' Red', ' SE', ' Plus']
CATEGORIES = ['iem', 'headphones', 'dac']
NOISE = ['', ' IEM', ' In-Ear Monitors', ' Headphones', ' (Official)', ' - Free Shipping', ' Earphones']

rng = np.random.default_rng(42)


def generate_synthetic_catalog(n_rows: int = 5000) -> pd.DataFrame:
    """Generate a synthetic canonical catalog for benchmarking."""
    data = []
    for i in range(n_rows):
        brand = rng.choice(BRANDS)
        name = f"{rng.choice(MODELS)}{rng.integers(1, 400)}{rng.choice(VARIANTS)}"
        data.append({
            'id': f'P-{i:05d}',
            'name': name,
            'brand': brand,
            'category_id': rng.choice(CATEGORIES),
        })
    return pd.DataFrame(data)


def generate_synthetic_listings(df_catalog: pd.DataFrame, n_rows: int = 2000):
    """Listings derived from catalog rows with retailer noise, plus some unknown products."""
    listings = []
    picks = rng.integers(0, len(df_catalog), size=n_rows)
    for i, pos in enumerate(picks):
        row = df_catalog.iloc[int(pos)]
        if rng.random() < 0.15:
            title = f"Generic Wireless Earbuds {rng.integers(1000, 9999)}"
        else:
            title = f"{row['brand']} {row['name']}{rng.choice(NOISE)}"
        listings.append(Listing(listing_id=f'L-{i:05d}', title=title, category_id=row['category_id']))
    return listings


def benchmark_function(func, *args, **kwargs):
    """Benchmark a function and return (result, elapsed_ms)."""
    start = time.perf_counter()
    result = func(*args, **kwargs)
    end = time.perf_counter()
    elapsed_ms = (end - start) * 1000
    return result, elapsed_ms


def benchmark_normalize_title(n_iterations: int = 10000):
    """Benchmark normalize_title() on hot path."""
    test_strings = [
        "Moondrop Space Travel (Pre-production) Headphones",
        "OFFICIAL Truthear Zero Red In-Ear Monitors - Free Shipping",
        "Sennheiser HD 600 Open-Back Headphones",
        "64 Audio U12t (Review Unit) IEM",
    ]

    print("\n" + "="*70)
    print("BENCHMARK: normalize_title() - Hot Path")
    print("="*70)

    for test_str in test_strings:
        # Uncached cost first, then the lru_cache hit path
        normalize_title.cache_clear()
        _, cold_ms = benchmark_function(normalize_title, test_str)

        start = time.perf_counter()
        for _ in range(n_iterations):
            _ = normalize_title(test_str)
        end = time.perf_counter()

        elapsed_ms = (end - start) * 1000
        per_call_us = elapsed_ms * 1000 / n_iterations

        print(f"\nInput: {test_str}")
        print(f"  Cold: {cold_ms * 1000:.2f}μs")
        print(f"  Cached per call: {per_call_us:.2f}μs")


def benchmark_build_index(df_catalog: pd.DataFrame):
    """Benchmark build_index() on the synthetic catalog."""
    print("\n" + "="*70)
    print(f"BENCHMARK: build_index() - {len(df_catalog)} Product Catalog")
    print("="*70)

    (df_clean, stats), cleanup_time = benchmark_function(load_and_clean_catalog, df_catalog)
    print(f"\n  Cleanup: {cleanup_time:.2f}ms ({stats['final']} of {stats['original']} rows kept)")
    by_category = candidates_from_frame(df_clean)

    normalize_title.cache_clear()
    for category_id, candidates in by_category.items():
        index, elapsed = benchmark_function(build_index, candidates)
        print(f"  {category_id}: {len(index)} candidates indexed in {elapsed:.2f}ms "
              f"({len(index) / (elapsed / 1000):.0f} rows/sec)")
    return by_category


def benchmark_indexed_vs_unindexed(by_category, n_queries: int = 200):
    """Compare indexed and per-call normalization on the same queries."""
    print("\n" + "="*70)
    print(f"BENCHMARK: find_best_match() indexed vs unindexed - {n_queries} queries")
    print("="*70)

    candidates = by_category['iem']
    queries = [f"{c.brand} {c.name} IEM" for c in candidates[:n_queries]]
    index = build_index(candidates)

    start = time.perf_counter()
    indexed = [find_best_match(q, index) for q in queries]
    indexed_ms = (time.perf_counter() - start) * 1000

    normalize_title.cache_clear()
    start = time.perf_counter()
    direct = [find_best_match_unindexed(q, candidates) for q in queries]
    direct_ms = (time.perf_counter() - start) * 1000

    print(f"\n  Indexed:   {indexed_ms:.2f}ms ({indexed_ms / len(queries):.2f}ms/query)")
    print(f"  Unindexed: {direct_ms:.2f}ms ({direct_ms / len(queries):.2f}ms/query)")
    print(f"  Speedup:   {direct_ms / max(indexed_ms, 1e-9):.1f}x")
    print(f"  Results identical: {indexed == direct}")


def benchmark_reconcile(df_catalog: pd.DataFrame, n_listings: int = 2000):
    """Benchmark BatchReconciler.reconcile() end-to-end."""
    print("\n" + "="*70)
    print(f"BENCHMARK: reconcile() - {n_listings} Listings")
    print("="*70)

    catalog = InMemoryCatalog.from_dataframe(df_catalog)
    listings = generate_synthetic_listings(df_catalog, n_listings)
    reconciler = BatchReconciler(catalog, catalog, settings=Settings(retry_delay=0.0))

    report, elapsed = benchmark_function(reconciler.reconcile, listings)
    print(f"\n  Reconcile time: {elapsed:.2f}ms")
    print(f"  Per-listing time: {elapsed / len(listings):.2f}ms")
    print(f"  Throughput: {len(listings) / (elapsed / 1000):.0f} listings/sec")

    metrics = compute_coverage_metrics(report.results)
    print(f"\nDecision Results:")
    print(f"  auto_approve: {metrics['auto_count']} ({metrics['auto_rate']}%)")
    print(f"  pending_review: {metrics['review_count']} ({metrics['review_rate']}%)")
    print(f"  reject: {metrics['reject_count']} ({metrics['reject_rate']}%)")
    print(f"  near misses: {metrics['near_miss_count']}")


def main():
    """Run all benchmarks."""
    print("="*70)
    print("CATALOG-LINKER PERFORMANCE BENCHMARK")
    print("="*70)

    configure_logging(Settings().log_level)

    df_catalog = generate_synthetic_catalog(5000)

    benchmark_normalize_title(10000)
    by_category = benchmark_build_index(df_catalog)
    benchmark_indexed_vs_unindexed(by_category)
    benchmark_reconcile(df_catalog)

    print("\n" + "="*70)
    print("BENCHMARK COMPLETE")
    print("="*70)


if __name__ == '__main__':
    main()
