"""Rico protocol support."""
from .adapter import RicoAdapter

__all__ = ["RicoAdapter"]
