"""Protocol interfaces for the vault monitor."""
from .chain import ChainClient
from .price_feed import PriceFeed

__all__ = ["ChainClient", "PriceFeed"]
