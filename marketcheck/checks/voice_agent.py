"""Check the hosted voice agent API: main endpoints, fallback endpoints and the
embeddable widget script. Writes a JSON report with recommendations."""
import os
import sys
import json
import time
import logging
import argparse
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from .. import config
from ..schemas import CheckResult, CheckSummary

logger = logging.getLogger(__name__)

AGENT_URL = os.getenv('OMNIDIM_BASE_URL', 'https://api.omnidim.io').rstrip('/')
WIDGET_URL = os.getenv('OMNIDIM_WIDGET_URL', 'https://widget.omnidim.io/widget.js')
WIDGET_ID = 'omnidimension-web-widget'

# responses slower than this get a performance recommendation
SLOW_MS = 5000


@dataclass
class AgentEndpoint:
    name: str
    path: str
    method: str = 'GET'
    body: Optional[Dict[str, Any]] = None
    params: Optional[Dict[str, str]] = None


def main_endpoints(api_key: str = '', secret_key: str = '') -> List[AgentEndpoint]:
    return [
        AgentEndpoint('Authentication Test', '/auth/validate', 'POST',
                      body={'apiKey': api_key, 'secretKey': secret_key}),
        AgentEndpoint('Voice Agent Status', '/voice/agent/status'),
        AgentEndpoint('Voice Processing', '/voice/process', 'POST',
                      body={'transcript': 'Find Nike shoes under 10000 rupees', 'language': 'en',
                            'context': 'ecommerce'}),
        AgentEndpoint('Chat Session Create', '/chat/session', 'POST',
                      body={'userId': 'test-user-123', 'sessionType': 'voice-shopping'}),
        AgentEndpoint('Widget Configuration', '/widget/config', params={'widgetId': WIDGET_ID}),
    ]


FALLBACK_ENDPOINTS = [
    AgentEndpoint('Health Check', '/health'),
    AgentEndpoint('API Info', '/api/info'),
    AgentEndpoint('Voice Capabilities', '/api/voice/capabilities'),
]


class VoiceAgentChecker:

    def __init__(self, base_url: str = AGENT_URL, api_key: str = None, secret_key: str = None,
                 timeout: float = 15.0, session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.api_key = os.getenv('OMNIDIM_API_KEY', '') if api_key is None else api_key
        self.secret_key = os.getenv('OMNIDIM_SECRET_KEY', '') if secret_key is None else secret_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.api_key}',
            'X-Secret-Key': self.secret_key,
            'User-Agent': f'marketcheck-verifier/{config.VERSION}',
        })
        self.results: List[CheckResult] = []
        self.session_token: Optional[str] = None

    def check_endpoint(self, endpoint: AgentEndpoint) -> CheckResult:
        url = self.base_url + endpoint.path
        start = time.monotonic()
        try:
            resp = self.session.request(endpoint.method, url, json=endpoint.body, params=endpoint.params,
                                        timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning('%s: %s', endpoint.name, exc)
            result = CheckResult(name=endpoint.name, url=url, passed=False, message=str(exc))
            self.results.append(result)
            return result

        elapsed = int(round((time.monotonic() - start) * 1000))
        data: Any = None
        if 'application/json' in (resp.headers.get('content-type') or ''):
            try:
                data = resp.json()
            except ValueError:
                data = None
        message = data.get('message') if isinstance(data, dict) else None
        if endpoint.name == 'Authentication Test' and resp.ok and isinstance(data, dict) and data.get('token'):
            self.session_token = data['token']

        result = CheckResult(name=endpoint.name, url=url, passed=resp.ok, status_code=resp.status_code,
                             response_time_ms=elapsed, message=message or f'HTTP {resp.status_code}')
        self.results.append(result)
        return result

    def check_widget(self) -> CheckResult:
        url = f'{WIDGET_URL}?key={self.secret_key}'
        try:
            resp = self.session.get(url, timeout=10)
        except requests.RequestException as exc:
            result = CheckResult(name='Widget Script', url=WIDGET_URL, passed=False, message=str(exc))
        else:
            is_js = 'javascript' in (resp.headers.get('content-type') or '')
            result = CheckResult(
                name='Widget Script', url=WIDGET_URL, passed=resp.ok, status_code=resp.status_code,
                message=f'{len(resp.text)} bytes, javascript: {"yes" if is_js else "no"}',
            )
        self.results.append(result)
        return result

    def recommendations(self) -> List[Dict[str, str]]:
        recs = []
        auth = next((r for r in self.results if r.name == 'Authentication Test'), None)
        if auth is None or not auth.passed:
            recs.append({
                'type': 'authentication',
                'message': 'Authentication failed. Verify API key and secret key are correct.',
                'action': 'Check OMNIDIM_API_KEY and OMNIDIM_SECRET_KEY environment variables',
            })
        failed = [r for r in self.results if not r.passed]
        if failed:
            recs.append({
                'type': 'endpoints',
                'message': f'{len(failed)} endpoints failed. Consider implementing fallback mechanisms.',
                'action': 'Implement local voice processing as backup',
            })
        if any((r.response_time_ms or 0) > SLOW_MS for r in self.results):
            recs.append({
                'type': 'performance',
                'message': 'Some endpoints are slow. Consider caching or timeout adjustments.',
                'action': 'Implement request caching and optimize timeout values',
            })
        return recs

    def run(self, pause: float = 0.2) -> CheckSummary:
        for endpoint in main_endpoints(self.api_key, self.secret_key):
            self.check_endpoint(endpoint)
            if pause:
                time.sleep(pause)
        for endpoint in FALLBACK_ENDPOINTS:
            self.check_endpoint(endpoint)
        self.check_widget()
        return CheckSummary.from_results(self.results)

    def report(self, summary: CheckSummary) -> Dict[str, Any]:
        return {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'config': {
                'baseUrl': self.base_url,
                'hasApiKey': bool(self.api_key),
                'hasSecretKey': bool(self.secret_key),
                'widgetId': WIDGET_ID,
            },
            'summary': summary.model_dump(),
            'recommendations': self.recommendations(),
        }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Check the voice agent API and widget')
    parser.add_argument('--base-url', default=AGENT_URL)
    parser.add_argument('-o', '--output', default='omnidim-api-test-report.json')
    parser.add_argument('--pause', type=float, default=0.2)
    args = parser.parse_args(argv)
    config.configure_logging()

    checker = VoiceAgentChecker(base_url=args.base_url)
    summary = checker.run(pause=args.pause)
    for r in summary.results:
        print(f'{"PASS" if r.passed else "FAIL"} {r.name}: {r.message}')
    print(f'\n{summary.passed}/{summary.total} passed ({summary.success_rate}%)')

    report = checker.report(summary)
    with open(args.output, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)
    logger.info('report saved: %s', args.output)
    for rec in report['recommendations']:
        print(f'- {rec["message"]} ({rec["action"]})')

    # mostly failing means the configuration or network is wrong
    return 1 if summary.failed > summary.passed else 0


if __name__ == '__main__':
    sys.exit(main())
