"""Family tree views over the edge stores.

Provides:
- Child projection (union/strict, endorsement-based deduplication)
- Iterative graph materialization and tree-row flattening
- Invalidation keys for newly recorded person versions
- TreeSession, the context object tying cache, stores and ledger together
"""
from .invalidation import (
    InvalidationKeys,
    PersonVersionAdded,
    get_invalidate_keys_after_person_version_added,
    is_zero_hash,
)
from .projection import (
    ProjectionOptions,
    choose_best_version,
    get_projected_child_ids,
    project_deduplicated_child_ids,
)
from .session import LoadResult, TreeSession
from .walker import build_tree_rows, build_tree_rows_from_graph, build_view_graph_data

__all__ = [
    # Projection
    "ProjectionOptions",
    "choose_best_version",
    "get_projected_child_ids",
    "project_deduplicated_child_ids",
    # Walker
    "build_tree_rows",
    "build_tree_rows_from_graph",
    "build_view_graph_data",
    # Invalidation
    "InvalidationKeys",
    "PersonVersionAdded",
    "get_invalidate_keys_after_person_version_added",
    "is_zero_hash",
    # Session
    "LoadResult",
    "TreeSession",
]
