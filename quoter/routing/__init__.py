"""Route enumeration and best-route selection.

Module structure:
- enumerator.py: RouteEnumerator (candidate paths per protocol version)
- ranker.py: RouteRanker (per-route quotes, best route)
"""

from quoter.routing.enumerator import RouteEnumerator
from quoter.routing.ranker import RouteRanker

__all__ = ["RouteEnumerator", "RouteRanker"]
