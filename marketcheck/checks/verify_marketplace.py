"""Check the marketplace catalogue: product count, categories and key products."""
import sys
import logging
import argparse
from collections import Counter
from typing import Dict, List, NamedTuple

import requests

from .. import config
from ..schemas import CheckResult, Product, SearchResult
from .client import SearchApiClient

logger = logging.getLogger(__name__)

EXPECTED_TOTAL = 30
EXPECTED_CATEGORIES = {'electronics': 10, 'fashion': 10, 'beauty': 10}
# categories from the old catalogue that must be gone
LEGACY_CATEGORIES = ('sneakers', 'concert-tickets', 'sports-tickets')


class KeyProduct(NamedTuple):
    name: str
    price: float
    seller: str


KEY_PRODUCTS = [
    KeyProduct('Apple iPhone 14 Pro Max', 129999, 'TechMart'),
    KeyProduct('Nike Air Force 1', 7495, 'KicksKart'),
    KeyProduct("L'Oréal Revitalift Serum", 1099, 'GlowStore'),
    KeyProduct('Mamaearth Ubtan Face Wash', 249, 'NatureRoot'),
    KeyProduct('Dyson Airwrap', 44900, 'HairPro'),
]


def category_breakdown(products: List[Product]) -> Dict[str, int]:
    return dict(Counter(p.category or 'uncategorized' for p in products))


def verify_catalogue(result: SearchResult, expected_total: int = EXPECTED_TOTAL,
                      expected_categories: Dict[str, int] = None) -> List[CheckResult]:
    """Product count, per-category counts and absence of legacy categories."""
    expected_categories = EXPECTED_CATEGORIES if expected_categories is None else expected_categories
    breakdown = category_breakdown(result.products)
    results = [CheckResult(
        name='Product count',
        passed=result.total == expected_total,
        message=f'{result.total} products (expected {expected_total})',
    )]
    for cat, expected in expected_categories.items():
        found = breakdown.get(cat, 0)
        results.append(CheckResult(name=f'Category {cat}', passed=found == expected,
                                   message=f'{found}/{expected}'))
    legacy = sorted(c for c in breakdown if c in LEGACY_CATEGORIES)
    results.append(CheckResult(
        name='No legacy categories',
        passed=not legacy,
        message=('found: ' + ', '.join(legacy)) if legacy else 'ok',
    ))
    return results


def verify_key_products(products: List[Product], expected: List[KeyProduct] = None) -> List[CheckResult]:
    by_name = {p.name: p for p in products}
    results = []
    for exp in (expected if expected is not None else KEY_PRODUCTS):
        found = by_name.get(exp.name)
        if found is None:
            results.append(CheckResult(name=exp.name, passed=False, message='not found'))
            continue
        problems = []
        if found.price != exp.price:
            problems.append(f'price {found.price} (expected {exp.price})')
        if found.seller != exp.seller:
            problems.append(f'seller {found.seller} (expected {exp.seller})')
        results.append(CheckResult(name=exp.name, passed=not problems, message='; '.join(problems) or 'ok'))
    return results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Verify the marketplace catalogue')
    parser.add_argument('--base-url', default=config.API_URL)
    args = parser.parse_args(argv)
    config.configure_logging()

    try:
        res = SearchApiClient(base_url=args.base_url).search('')
    except (requests.RequestException, ValueError) as exc:
        print(f'Verification failed: {exc}')
        return 1

    results = verify_catalogue(res) + verify_key_products(res.products)
    prices = [p.price for p in res.products if p.price is not None]
    if prices:
        print(f'Price range: {min(prices):,.0f} - {max(prices):,.0f}')
    for r in results:
        print(f'{"PASS" if r.passed else "FAIL"} {r.name}: {r.message}')
    return 0 if all(r.passed for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
