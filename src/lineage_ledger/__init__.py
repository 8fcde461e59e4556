"""Lineage Ledger - versioned family graph views over a paginated ledger.

Reconstructs a deduplicated, cycle-safe person-by-person family graph from a
remote ledger that only answers small per-call queries, caching and coalescing
every round trip along the way.
"""

__version__ = "0.1.0"

# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    if name == "cache":
        from lineage_ledger import cache
        return cache
    if name == "ledger":
        from lineage_ledger import ledger
        return ledger
    if name == "models":
        from lineage_ledger import models
        return models
    if name == "tree":
        from lineage_ledger import tree
        return tree
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
