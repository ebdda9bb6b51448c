"""Run voice-style queries against the search API and rate how many find
products."""
import sys
import time
import logging
import argparse
from typing import List, Tuple

import requests

from .. import config
from ..schemas import CheckResult, CheckSummary
from .client import SearchApiClient

logger = logging.getLogger(__name__)

VOICE_QUERIES = [
    # exact matches
    'iPhone 14 Pro Max',
    'Samsung Galaxy Buds Pro',
    'Nike Air Force 1',
    # brands
    'Samsung earbuds',
    'Nike shoes',
    'Apple smartphone',
    # misspellings
    'aple iphone',
    'samsang galaxy',
    'naik shoes',
    # price phrases
    'mobile under Rs 50000',
    'shoes under 10000',
    'electronics under 25000',
    # casual speech
    'show me samsung products',
    'find nike sneakers',
    'I want beauty products',
    # compound
    'find samsung wireless earbuds under 15000',
    'show me apple products',
    'nike shoes for running',
]


def rate(success_rate: float) -> str:
    if success_rate >= 80:
        return 'EXCELLENT'
    if success_rate >= 60:
        return 'GOOD'
    return 'NEEDS IMPROVEMENT'


def run_queries(client: SearchApiClient, queries: List[str] = None, pause: float = 0.1) -> CheckSummary:
    results = []
    for query in (queries if queries is not None else VOICE_QUERIES):
        try:
            res = client.search(query)
            if res.products:
                top = res.products[0]
                message = f'{len(res.products)} products; top: {top.name} ({top.brand}) - {top.price}'
            else:
                message = 'no results'
            results.append(CheckResult(name=query, passed=bool(res.products), message=message))
        except (requests.RequestException, ValueError) as exc:
            results.append(CheckResult(name=query, passed=False, message=str(exc)))
        if pause:
            time.sleep(pause)
    return CheckSummary.from_results(results)


def brand_matches(client: SearchApiClient, brands: List[str]) -> List[Tuple[str, int, int]]:
    """For each brand query: (brand, products of that brand, products returned)."""
    out = []
    for brand in brands:
        try:
            res = client.search(brand)
        except (requests.RequestException, ValueError) as exc:
            logger.warning('brand query %s failed: %s', brand, exc)
            continue
        hits = sum(1 for p in res.products if (p.brand or '').lower() == brand.lower())
        out.append((brand, hits, len(res.products)))
    return out


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Voice search accuracy check')
    parser.add_argument('--base-url', default=config.API_URL)
    parser.add_argument('--pause', type=float, default=0.1, help='Seconds between queries')
    args = parser.parse_args(argv)
    config.configure_logging()

    client = SearchApiClient(base_url=args.base_url)
    summary = run_queries(client, pause=args.pause)
    for r in summary.results:
        print(f'{"PASS" if r.passed else "FAIL"} "{r.name}": {r.message}')

    print('\nBrand recognition:')
    for brand, hits, total in brand_matches(client, ['samsung', 'apple', 'nike', 'oneplus']):
        print(f'  {brand}: {hits}/{total} brand matches')

    print(f'\n{summary.passed}/{summary.total} queries found products ({summary.success_rate}%)')
    print(f'Voice search accuracy: {rate(summary.success_rate)}')
    return 0 if summary.success_rate >= 60 else 1


if __name__ == '__main__':
    sys.exit(main())
