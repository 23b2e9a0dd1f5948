"""Price feed protocol — (src, tag) price pulls."""
from typing import Protocol

from ..models import PriceQuote


class PriceFeed(Protocol):
    """Abstract interface for pulling a RAY-scaled price."""

    async def pull(self, src: str, tag: bytes) -> PriceQuote: ...
