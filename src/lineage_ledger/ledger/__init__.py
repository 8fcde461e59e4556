"""Remote ledger access: RPC protocol, HTTP transport and cached queries."""
from .api import DEFAULT_PAGE_LIMIT, LedgerQueryApi, UnionChildren
from .contract import LedgerContract
from .http import HttpLedgerContract

__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "HttpLedgerContract",
    "LedgerContract",
    "LedgerQueryApi",
    "UnionChildren",
]
