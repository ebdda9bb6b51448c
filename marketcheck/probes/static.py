import asyncio
from typing import Iterable, List

from .base import ImageProbe


# Offline probe that answers from a fixed set of working URLs, so the
# resolver and the API can be wired without network access.
class StaticImageProbe(ImageProbe):
    def __init__(self, working: Iterable[str] = (), delay: float = 0.0):
        self.working = set(working)
        self.delay = delay
        self.calls: List[str] = []

    async def probe(self, url: str) -> bool:
        self.calls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        return url in self.working
