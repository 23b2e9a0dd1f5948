"""Price oracles."""
from .feedbase import FeedbaseOracle

__all__ = ["FeedbaseOracle"]
