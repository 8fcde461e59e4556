"""Edge store entries.

Two passive keyed maps hold the child lists fetched from the ledger:

- union store: lower-cased person hash -> children across every version
- strict store: exact parent NodeId -> children recorded against that version

Projection only reads them; the session writes and invalidation deletes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .node_id import NodeId


class ChildrenMode(str, Enum):
    """Which edge store a projection reads."""
    UNION = "union"
    STRICT = "strict"


@dataclass(frozen=True)
class EdgeUnionEntry:
    child_ids: tuple[NodeId, ...]
    fetched_at: float  # epoch ms
    total_versions: int | None = None


@dataclass(frozen=True)
class EdgeStrictEntry:
    child_ids: tuple[NodeId, ...]
    fetched_at: float  # epoch ms
    total_count: int | None = None


EdgeStoreUnion = dict[str, EdgeUnionEntry]
EdgeStoreStrict = dict[NodeId, EdgeStrictEntry]


@dataclass
class EdgeStores:
    """The pair of edge stores owned by one session."""
    union: EdgeStoreUnion = field(default_factory=dict)
    strict: EdgeStoreStrict = field(default_factory=dict)

    def clear(self) -> None:
        self.union.clear()
        self.strict.clear()


def union_parent_key(parent_hash: str) -> str:
    return str(parent_hash or "").lower()
