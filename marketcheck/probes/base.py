from abc import ABC, abstractmethod


class ImageProbe(ABC):
    """Abstract image probe. Concrete probes implement `probe`.

    `probe` answers whether a URL loads as an image. It should return False
    on any failure instead of raising.
    """

    @abstractmethod
    async def probe(self, url: str) -> bool:
        raise NotImplementedError()

    async def __call__(self, url: str) -> bool:
        return await self.probe(url)
