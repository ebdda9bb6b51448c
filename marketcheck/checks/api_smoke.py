"""Smoke test the local search API: health, search, filters, sorting and a
batch of voice-style queries."""
import sys
import logging
import argparse
from typing import List

import requests

from .. import config
from ..schemas import CheckResult
from .client import SearchApiClient

logger = logging.getLogger(__name__)

VOICE_QUERIES = [
    'nike shoes under 200',
    'wireless headphones',
    'gaming laptop',
    'concert tickets',
]


def run_smoke_tests(client: SearchApiClient) -> List[CheckResult]:
    results = []

    try:
        data = client.health()
        results.append(CheckResult(name='Health check', passed=True, message=str(data.get('status'))))
    except (requests.RequestException, ValueError) as exc:
        results.append(CheckResult(name='Health check', passed=False, message=str(exc)))
        # nothing else can pass without a live server
        return results

    def attempt(name, fn):
        try:
            message = fn()
            results.append(CheckResult(name=name, passed=True, message=message))
        except (requests.RequestException, ValueError) as exc:
            results.append(CheckResult(name=name, passed=False, message=str(exc)))

    def basic():
        res = client.search('nike')
        sample = res.products[0].name if res.products else None
        return f'Found {res.total} products (sample: {sample})'

    def category():
        res = client.search('', category='sneakers')
        return f'Found {res.total} sneakers'

    def price():
        res = client.search('', max_price=500)
        return f'Found {res.total} products under 500'

    def complex_query():
        res = client.search('headphones', max_price=400, sort_by='price', sort_order='asc')
        msg = f'Found {res.total} headphones under 400'
        if res.products:
            msg += f'; cheapest: {res.products[0].name} - {res.products[0].price}'
        return msg

    def voice():
        counts = [f'"{q}" -> {client.search(q).total}' for q in VOICE_QUERIES]
        return ', '.join(counts)

    attempt('Basic search', basic)
    attempt('Category filter', category)
    attempt('Price range filter', price)
    attempt('Complex query', complex_query)
    attempt('Voice search simulation', voice)
    return results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Smoke test the marketplace search API')
    parser.add_argument('--base-url', default=config.API_URL)
    args = parser.parse_args(argv)
    config.configure_logging()

    results = run_smoke_tests(SearchApiClient(base_url=args.base_url))
    for r in results:
        print(f'{"PASS" if r.passed else "FAIL"} {r.name}: {r.message}')
    return 0 if all(r.passed for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
