"""Report the health endpoint status of every deployed API."""
import sys
import logging
import argparse
from datetime import datetime, timezone
from typing import List

import requests

from .. import config
from ..schemas import CheckResult
from .client import SearchApiClient

logger = logging.getLogger(__name__)


def check_health(endpoints: List[str], session: requests.Session = None) -> List[CheckResult]:
    client = SearchApiClient(session=session)
    results = []
    for endpoint in endpoints:
        try:
            resp, elapsed = client.request('GET', endpoint)
            data = resp.json()
            if not isinstance(data, dict):
                data = {}
            results.append(CheckResult(
                name=endpoint,
                url=endpoint,
                passed=resp.ok and data.get('status') in ('ok', 'healthy'),
                status_code=resp.status_code,
                response_time_ms=elapsed,
                message=str(data.get('status')),
            ))
        except (requests.RequestException, ValueError) as exc:
            results.append(CheckResult(name=endpoint, url=endpoint, passed=False, message=str(exc)))
    return results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Health check report for the marketplace APIs')
    parser.add_argument('endpoints', nargs='*', help='Health URLs (defaults to MARKETCHECK_HEALTH_ENDPOINTS)')
    args = parser.parse_args(argv)
    config.configure_logging()

    endpoints = args.endpoints or config.health_endpoints()
    print(f'Health Check Report - {datetime.now(timezone.utc).isoformat()}')
    results = check_health(endpoints)
    for r in results:
        if r.status_code is not None:
            print(f'{"OK  " if r.passed else "FAIL"} {r.url}: {r.status_code} - {r.message}')
        else:
            print(f'FAIL {r.url}: {r.message}')
    return 0 if all(r.passed for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
