"""Deployment validation for the marketplace web app.

Runs the pre-deployment checklist against a project directory, inspects the
build output (size, leaked secrets) and checks the live URLs afterwards.
Everything ends up in a JSON deployment report.
"""
import os
import re
import sys
import json
import time
import shutil
import logging
import argparse
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import requests

from .. import config
from ..schemas import CheckResult

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = ['VITE_API_URL', 'VITE_OMNIDIM_SECRET_KEY', 'VITE_OMNIDIM_API_KEY']

SENSITIVE_PATTERNS = [
    re.compile(r'password\s*[:=]', re.IGNORECASE),
    re.compile(r'secret\s*[:=]', re.IGNORECASE),
    re.compile(r'api[_-]?key\s*[:=]\s*["\'][A-Za-z0-9_\-]{16,}', re.IGNORECASE),
    re.compile(r'sk_live_[A-Za-z0-9]+'),
]

TEXT_SUFFIXES = ('.js', '.mjs', '.css', '.html', '.json', '.map', '.txt')


class DeploymentCheckError(Exception):
    pass


@dataclass
class Check:
    name: str
    check: Callable[[], bool]
    message: str


MIN_NODE_MAJOR = 18


def node_major_version() -> Optional[int]:
    """Major version of the `node` on PATH, or None if it is missing or unreadable."""
    node = shutil.which('node')
    if node is None:
        return None
    try:
        out = subprocess.run([node, '--version'], capture_output=True, text=True, timeout=10, check=True).stdout
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning('node --version failed: %s', exc)
        return None
    match = re.match(r'v?(\d+)\.', out.strip())
    return int(match.group(1)) if match else None


def default_checks(project_dir: str, min_node: int = MIN_NODE_MAJOR) -> List[Check]:
    def node_ready():
        major = node_major_version()
        return major is not None and major >= min_node

    def exists(name):
        return lambda: os.path.exists(os.path.join(project_dir, name))

    def env_ready():
        has_dotenv = os.path.exists(os.path.join(project_dir, '.env'))
        return all(os.getenv(v) or has_dotenv for v in REQUIRED_ENV_VARS)

    return [
        Check('Node.js Version', node_ready, f'Node.js {min_node}+ required'),
        Check('Package.json Exists', exists('package.json'), 'package.json file must exist'),
        Check('Dependencies Installed', exists('node_modules'), 'Dependencies must be installed (run npm install)'),
        Check('Environment Variables', env_ready, 'Required environment variables must be set'),
        Check('TypeScript Configuration', exists('tsconfig.json'), 'TypeScript configuration required'),
        Check('Vite Configuration', exists('vite.config.ts'), 'Vite configuration required'),
    ]


def run_checks(checks: List[Check]) -> List[CheckResult]:
    """Run every check; raises DeploymentCheckError listing the failures."""
    results = []
    for c in checks:
        try:
            passed = bool(c.check())
        except OSError as exc:
            logger.warning('%s raised %s', c.name, exc)
            passed = False
        results.append(CheckResult(name=c.name, passed=passed, message=None if passed else c.message))
        if passed:
            logger.info('%s: passed', c.name)
        else:
            logger.error('%s: %s', c.name, c.message)

    failed = [r.name for r in results if not r.passed]
    if failed:
        err = DeploymentCheckError('Pre-deployment checks failed: ' + ', '.join(failed))
        err.results = results
        raise err
    return results


def directory_size(path: str) -> Dict[str, int]:
    total_size = 0
    total_files = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            total_size += os.path.getsize(os.path.join(root, name))
            total_files += 1
    return {'size': total_size, 'files': total_files}


def scan_for_secrets(path: str) -> List[str]:
    """Relative paths of build files matching a sensitive pattern."""
    hits = []
    for root, _dirs, files in os.walk(path):
        for name in files:
            if not name.endswith(TEXT_SUFFIXES):
                continue
            full = os.path.join(root, name)
            with open(full, encoding='utf-8', errors='ignore') as f:
                text = f.read()
            if any(p.search(text) for p in SENSITIVE_PATTERNS):
                hits.append(os.path.relpath(full, path))
    return sorted(hits)


def verify_urls(urls: Dict[str, str], timeout: float = None, session: requests.Session = None) -> List[CheckResult]:
    session = session or requests.Session()
    timeout = config.HTTP_TIMEOUT if timeout is None else timeout
    results = []
    for name, url in urls.items():
        start = time.monotonic()
        try:
            resp = session.get(url, timeout=timeout)
        except requests.RequestException as exc:
            logger.error('%s: %s', name, exc)
            results.append(CheckResult(name=name, url=url, passed=False, message=str(exc)))
            continue
        elapsed = int(round((time.monotonic() - start) * 1000))
        passed = resp.status_code == 200
        results.append(CheckResult(name=name, url=url, passed=passed, status_code=resp.status_code,
                                   response_time_ms=elapsed, message='ok' if passed else f'status {resp.status_code}'))
    return results


def live_urls(site_url: str) -> Dict[str, str]:
    return {
        'Homepage Load Test': site_url,
        'Marketplace Load Test': f'{site_url}/marketplace',
        'API Health Check': f'{site_url}/api/health',
    }


def build_report(deployment_id: str, started: float, checks: List[CheckResult],
                 verification: List[CheckResult], build: Dict[str, int] = None,
                 leaked: List[str] = None, site_url: str = None) -> Dict:
    site_url = site_url or config.SITE_URL
    return {
        'deploymentId': deployment_id,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'duration': f'{int(round(time.time() - started))} seconds',
        'version': config.VERSION,
        'environment': 'production',
        'checks': [c.model_dump() for c in checks],
        'verification': [v.model_dump() for v in verification],
        'build': build or {},
        'sensitiveFiles': leaked or [],
        'urls': live_urls(site_url),
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Validate a marketplace deployment')
    parser.add_argument('--project-dir', default='.')
    parser.add_argument('--build-dir', default='dist')
    parser.add_argument('--site-url', default=config.SITE_URL)
    parser.add_argument('--skip-live', action='store_true', help='Skip post-deployment URL checks')
    parser.add_argument('-o', '--output', help='Report path (default deployment-report-<id>.json)')
    args = parser.parse_args(argv)
    config.configure_logging()

    started = time.time()
    deployment_id = datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')

    try:
        checks = run_checks(default_checks(args.project_dir))
    except DeploymentCheckError as exc:
        logger.error('%s', exc)
        return 1

    build, leaked = {}, []
    build_dir = os.path.join(args.project_dir, args.build_dir)
    if os.path.isdir(build_dir):
        build = directory_size(build_dir)
        logger.info('Bundle size: %.2f MB in %d files', build['size'] / 1024 / 1024, build['files'])
        leaked = scan_for_secrets(build_dir)
        for path in leaked:
            logger.warning('possible sensitive data in %s', path)
    else:
        logger.warning('build directory %s not found', build_dir)

    verification = [] if args.skip_live else verify_urls(live_urls(args.site_url.rstrip('/')))

    report = build_report(deployment_id, started, checks, verification, build, leaked, args.site_url.rstrip('/'))
    path = args.output or f'deployment-report-{deployment_id}.json'
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)
    logger.info('Deployment report saved: %s', path)

    return 0 if all(v.passed for v in verification) and not leaked else 1


if __name__ == '__main__':
    sys.exit(main())
