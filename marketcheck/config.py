import os
import logging
from typing import List

logger = logging.getLogger('marketcheck')

VERSION = '3.0.0'

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

# local marketplace API the smoke scripts hit
API_URL = os.getenv('MARKETCHECK_API_URL', 'http://localhost:3001').rstrip('/')

PROBE_TIMEOUT = float(os.getenv('MARKETCHECK_PROBE_TIMEOUT', '5.0'))
HTTP_TIMEOUT = float(os.getenv('MARKETCHECK_HTTP_TIMEOUT', '10.0'))
PRELOAD_TTL = int(os.getenv('MARKETCHECK_PRELOAD_TTL', '300'))
CACHE_MAX_ENTRIES = int(os.getenv('MARKETCHECK_CACHE_MAX_ENTRIES', '256'))

DEFAULT_HEALTH_ENDPOINTS = [
    'https://omniverseai.netlify.app/api/health',
    'https://omniverse-ai-api.vercel.app/api/health',
    'https://omniverse-ai-api.railway.app/api/health',
]

SITE_URL = os.getenv('MARKETCHECK_SITE_URL', 'https://omniverseai.netlify.app').rstrip('/')


def configure_logging(level: str = None):
    level = (level or LOG_LEVEL).upper()
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')


def health_endpoints() -> List[str]:
    raw = os.getenv('MARKETCHECK_HEALTH_ENDPOINTS')
    if not raw:
        return list(DEFAULT_HEALTH_ENDPOINTS)
    endpoints = [e.strip() for e in raw.split(',') if e.strip()]
    if not endpoints:
        logger.warning('MARKETCHECK_HEALTH_ENDPOINTS is set but empty; using defaults')
        return list(DEFAULT_HEALTH_ENDPOINTS)
    return endpoints
