"""Graph view models handed to renderers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

from .node_id import NodeId


@dataclass(frozen=True)
class BaseNode:
    """Materialized node; depth is relative to the walk root."""
    id: NodeId
    depth: int
    person_hash: str
    version_index: int


@dataclass(frozen=True)
class BaseEdge:
    """Directed parent -> child edge."""
    from_id: NodeId
    to_id: NodeId


@dataclass(frozen=True)
class TreeRow:
    node_id: NodeId
    depth: int
    is_last: bool
    has_children: bool


@dataclass
class TreeGraphData:
    nodes: list[BaseNode] = field(default_factory=list)
    edges: list[BaseEdge] = field(default_factory=list)
    children_by_parent: dict[NodeId, list[NodeId]] = field(default_factory=dict)
    truncated: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "nodes": [
                {
                    "id": n.id,
                    "depth": n.depth,
                    "person_hash": n.person_hash,
                    "version_index": n.version_index,
                }
                for n in self.nodes
            ],
            "edges": [{"from": e.from_id, "to": e.to_id} for e in self.edges],
            "children_by_parent": {k: list(v) for k, v in self.children_by_parent.items()},
            "truncated": self.truncated,
        }


def format_ymd(
    year: int | None,
    month: int | None = None,
    day: int | None = None,
    is_bc: bool | None = None,
) -> str:
    if not year:
        return ""
    out = f"BC {year}" if is_bc else str(year)
    if month and month > 0:
        out += f"-{month:02d}"
        if day and day > 0:
            out += f"-{day:02d}"
    return out


class NodeData(BaseModel):
    """Per-node attributes gathered by detail fetchers.

    Projection consults ``endorsement_count`` only. Instances are frozen;
    use :meth:`patch` to derive an updated copy.
    """

    model_config = ConfigDict(frozen=True)

    id: NodeId
    person_hash: str
    version_index: int

    tag: str | None = None
    father_hash: str | None = None
    mother_hash: str | None = None
    father_version_index: int | None = None
    mother_version_index: int | None = None
    added_by: str | None = None
    timestamp: int | None = None
    metadata_cid: str | None = None
    endorsement_count: int | None = None
    token_id: str | None = None
    total_versions: int | None = None

    # NFT core info
    full_name: str | None = None
    gender: int | None = None
    birth_year: int | None = None
    birth_month: int | None = None
    birth_day: int | None = None
    birth_place: str | None = None
    is_birth_bc: bool | None = None
    death_year: int | None = None
    death_month: int | None = None
    death_day: int | None = None
    death_place: str | None = None
    is_death_bc: bool | None = None
    story: str | None = None
    nft_token_uri: str | None = None

    @property
    def is_minted(self) -> bool:
        return bool(self.token_id) and str(self.token_id) != "0"

    @property
    def birth_date_string(self) -> str:
        return format_ymd(self.birth_year, self.birth_month, self.birth_day, self.is_birth_bc)

    @property
    def death_date_string(self) -> str:
        return format_ymd(self.death_year, self.death_month, self.death_day, self.is_death_bc)

    def patch(self, **changes: Any) -> NodeData:
        """Return a copy with ``changes`` applied; ``None`` values are skipped."""
        update = {k: v for k, v in changes.items() if v is not None}
        if not update:
            return self
        return self.model_copy(update=update)
