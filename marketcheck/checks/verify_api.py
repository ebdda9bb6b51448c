"""Verify every marketplace API endpoint answers with the expected status and
fields, and optionally write a JSON report."""
import sys
import json
import logging
import argparse
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from .. import config
from ..schemas import CheckResult, CheckSummary
from .client import SearchApiClient

logger = logging.getLogger(__name__)

ENVIRONMENTS = {
    'local': 'http://localhost:3001',
    'production': 'https://omniverseai.netlify.app/.netlify/functions',
}


@dataclass
class VerificationCase:
    name: str
    path: str
    method: str = 'GET'
    expected_status: int = 200
    expected_fields: List[str] = field(default_factory=list)
    body: Optional[Dict[str, Any]] = None


CASES = [
    VerificationCase('Health Check', '/api/health', expected_fields=['status', 'timestamp', 'version']),
    VerificationCase('Search All Products', '/api/search', expected_fields=['success', 'products', 'total']),
    VerificationCase('Search Electronics', '/api/search?category=electronics',
                     expected_fields=['success', 'products', 'total']),
    VerificationCase('Search with Query', '/api/search?q=nike shoes', expected_fields=['success', 'products', 'query']),
    VerificationCase('Price Filter', '/api/search?min_price=1000&max_price=10000',
                     expected_fields=['success', 'products']),
    VerificationCase('Get Categories', '/api/categories', expected_fields=['success', 'categories', 'brands']),
    VerificationCase('Voice Search', '/api/voice-search', method='POST',
                     body={'transcript': 'find nike shoes under 10000 rupees'},
                     expected_fields=['success', 'results', 'response']),
    VerificationCase('Invalid Endpoint', '/api/invalid', expected_status=404, expected_fields=['success', 'error']),
]


def verify_case(client: SearchApiClient, case: VerificationCase) -> CheckResult:
    url = client.url(case.path)
    try:
        resp, elapsed = client.request(case.method, case.path, json=case.body)
    except requests.RequestException as exc:
        logger.warning('%s: request failed: %s', case.name, exc)
        return CheckResult(name=case.name, url=url, passed=False, message=str(exc))

    content_type = resp.headers.get('content-type') or ''
    data: Any = None
    if 'application/json' in content_type:
        try:
            data = resp.json()
        except ValueError:
            data = None
    missing = [f for f in case.expected_fields if not isinstance(data, dict) or f not in data]
    status_ok = resp.status_code == case.expected_status

    if not status_ok:
        message = f'expected status {case.expected_status}, got {resp.status_code}'
    elif missing:
        message = 'missing fields: ' + ', '.join(missing)
    else:
        message = 'ok'
    return CheckResult(
        name=case.name,
        url=url,
        passed=status_ok and not missing,
        status_code=resp.status_code,
        response_time_ms=elapsed,
        message=message,
        missing_fields=missing,
    )


def verify_all(client: SearchApiClient, cases: List[VerificationCase] = None) -> CheckSummary:
    results = [verify_case(client, c) for c in (cases if cases is not None else CASES)]
    return CheckSummary.from_results(results)


def write_report(summary: CheckSummary, path: str, base_url: str):
    report = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'base_url': base_url,
        'summary': summary.model_dump(),
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)
    logger.info('report saved: %s', path)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Verify marketplace API endpoints')
    parser.add_argument('-e', '--env', choices=sorted(ENVIRONMENTS), default=None)
    parser.add_argument('--base-url', default=None, help='Overrides --env')
    parser.add_argument('-o', '--output', help='Write a JSON report to this path')
    args = parser.parse_args(argv)
    config.configure_logging()

    base_url = args.base_url or (ENVIRONMENTS[args.env] if args.env else config.API_URL)
    summary = verify_all(SearchApiClient(base_url=base_url))

    for r in summary.results:
        timing = f' ({r.response_time_ms}ms)' if r.response_time_ms is not None else ''
        print(f'{"PASS" if r.passed else "FAIL"} {r.name}{timing}: {r.message}')
    print(f'\n{summary.passed}/{summary.total} passed ({summary.success_rate}%)')
    if summary.average_response_time_ms is not None:
        print(f'Average response time: {summary.average_response_time_ms}ms')

    if args.output:
        write_report(summary, args.output, base_url)
    return 0 if summary.failed == 0 else 1


if __name__ == '__main__':
    sys.exit(main())
