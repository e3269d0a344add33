"""
ORACLE - Price History

"You do not truly know someone until you fight them."

Reads recorded FLR/USD prices from the ledger, however reluctant the
source is to hand them over, and normalizes them into a series.
"""

from .contract import ContractPriceSource
from .normalizer import normalize, normalize_record
from .retrieval import PriceHistoryRetriever, RetrievalState, fetch_recent
from .source import MemoryPriceSource, PriceSource

__all__ = [
    "normalize",
    "normalize_record",
    "PriceSource",
    "MemoryPriceSource",
    "ContractPriceSource",
    "PriceHistoryRetriever",
    "RetrievalState",
    "fetch_recent",
]
