import logging
from typing import List

from playwright.async_api import async_playwright

from .. import config
from .base import ImageProbe

logger = logging.getLogger(__name__)

# Resolves true on load, false on error or after `timeout` ms, whichever first.
LOAD_IMAGE_JS = """
([url, timeout]) => new Promise((resolve) => {
  const img = new Image();
  const timer = setTimeout(() => resolve(false), timeout);
  img.onload = () => { clearTimeout(timer); resolve(true); };
  img.onerror = () => { clearTimeout(timer); resolve(false); };
  img.src = url;
})
"""

CLEAR_CACHES_JS = """
async () => {
  const names = ('caches' in window) ? await caches.keys() : [];
  await Promise.all(names.map((name) => caches.delete(name)));
  if ('serviceWorker' in navigator) {
    const registrations = await navigator.serviceWorker.getRegistrations();
    for (const registration of registrations) {
      await registration.unregister();
    }
  }
  return names;
}
"""


class BrowserImageProbe(ImageProbe):
    """Load images through a real `Image` element in headless Chromium.

    Use as an async context manager so the browser is launched once:

        async with BrowserImageProbe() as probe:
            resolver = ImageResolver(probe)
    """

    def __init__(self, timeout: float = None, headless: bool = True):
        self.timeout = config.PROBE_TIMEOUT if timeout is None else timeout
        self.headless = headless
        self._pw = None
        self._browser = None
        self._page = None

    async def __aenter__(self):
        self._pw = await async_playwright().start()
        self._browser = await self._pw.chromium.launch(headless=self.headless)
        self._page = await self._browser.new_page()
        return self

    async def __aexit__(self, *exc):
        try:
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._pw is not None:
                await self._pw.stop()
            self._pw = self._browser = self._page = None

    async def probe(self, url: str) -> bool:
        if self._page is None:
            raise RuntimeError('BrowserImageProbe must be entered before probing')
        try:
            return bool(await self._page.evaluate(LOAD_IMAGE_JS, [url, int(self.timeout * 1000)]))
        except Exception:
            logger.debug('browser probe failed: %s', url, exc_info=True)
            return False


async def clear_site_caches(site_url: str = None, timeout: float = 30.0) -> List[str]:
    """Delete Cache Storage entries and unregister service workers for a site.

    Returns the names of the caches that were deleted.
    """
    site_url = site_url or config.SITE_URL
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=True)
        try:
            page = await browser.new_page()
            await page.goto(site_url, timeout=int(timeout * 1000))
            deleted = await page.evaluate(CLEAR_CACHES_JS)
        finally:
            await browser.close()

    for name in deleted:
        logger.info('deleted cache %s', name)
    logger.info('cleared %d cache(s) for %s', len(deleted), site_url)
    return list(deleted)
