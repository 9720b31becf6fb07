"""AMM quoter - bid/ask quotes and best routes across Uniswap v2 and v3."""

from quoter.engine import QuoterEngine
from quoter.quoter import Quoter

__version__ = "0.1.0"
__all__ = ["Quoter", "QuoterEngine", "__version__"]
