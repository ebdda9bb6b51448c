"""Clear service worker caches for the deployed site in a headless browser."""
import sys
import asyncio
import argparse

from .. import config
from ..probes.browser import clear_site_caches


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Delete Cache Storage and unregister service workers')
    parser.add_argument('site_url', nargs='?', default=config.SITE_URL)
    args = parser.parse_args(argv)
    config.configure_logging()

    deleted = asyncio.run(clear_site_caches(args.site_url))
    print(f'Cleared {len(deleted)} cache(s): {", ".join(deleted) or "none"}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
