"""Quote batch construction and result decoding.

Module structure:
- request_builder.py: QuoteRequestBuilder (routes + amounts -> batch)
- aggregator.py: QuoteResultAggregator (batch results -> quotes)
"""

from quoter.quoting.aggregator import QuoteResultAggregator
from quoter.quoting.request_builder import QuoteRequestBuilder

__all__ = ["QuoteRequestBuilder", "QuoteResultAggregator"]
