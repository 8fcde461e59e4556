"""Child projection: which children of a node a view actually shows.

Reads the edge stores and node data without mutating either. Two decisions
are made per parent:

- which store to read (union across versions, or strict per version with an
  optional merge of the unversioned bucket)
- whether to collapse several versions of the same child person into one
  canonical version, chosen by endorsements once they have loaded
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from lineage_ledger.models.graph import NodeData
from lineage_ledger.models.node_id import NodeId, make_node_id, parse_node_id
from lineage_ledger.models.store import ChildrenMode, EdgeStores, union_parent_key

UNVERSIONED_INDEX = 0


@dataclass(frozen=True)
class ProjectionOptions:
    """View options applied on top of the raw edge stores."""
    strict_include_unversioned_children: bool = False
    deduplicate_children: bool = False
    endorsements_ready: bool = False


def choose_best_version(
    ids: Sequence[NodeId],
    nodes_data: Mapping[NodeId, NodeData],
    endorsements_ready: bool,
) -> NodeId:
    """Pick the canonical version among ids of one person.

    Before endorsements are ready the smallest version wins, so the choice
    stays put while counts stream in. Afterwards the highest endorsement
    count wins (missing counts as 0), ties going to the smallest version.
    Earlier ids win exact ties.
    """
    best = ids[0]
    best_version = parse_node_id(best).version_index
    if not endorsements_ready:
        for node_id in ids[1:]:
            version = parse_node_id(node_id).version_index
            if version < best_version:
                best, best_version = node_id, version
        return best

    best_count = _endorsements(nodes_data, best)
    for node_id in ids[1:]:
        count = _endorsements(nodes_data, node_id)
        version = parse_node_id(node_id).version_index
        if count > best_count or (count == best_count and version < best_version):
            best, best_count, best_version = node_id, count, version
    return best


def _endorsements(nodes_data: Mapping[NodeId, NodeData], node_id: NodeId) -> int:
    data = nodes_data.get(node_id)
    if data is None or data.endorsement_count is None:
        return 0
    return data.endorsement_count


def project_deduplicated_child_ids(
    raw: Sequence[NodeId],
    nodes_data: Mapping[NodeId, NodeData],
    endorsements_ready: bool,
) -> list[NodeId]:
    """Collapse children to one id per person, in first-appearance order."""
    if len(raw) <= 1:
        return list(raw)

    by_hash: dict[str, list[NodeId]] = {}
    for node_id in raw:
        by_hash.setdefault(parse_node_id(node_id).person_hash.lower(), []).append(node_id)
    if len(by_hash) == len(raw):
        return list(raw)

    # dicts keep insertion order, i.e. each group's first appearance
    return [
        ids[0] if len(ids) == 1 else choose_best_version(ids, nodes_data, endorsements_ready)
        for ids in by_hash.values()
    ]


def _raw_child_ids(
    parent_id: NodeId,
    children_mode: ChildrenMode,
    include_unversioned: bool,
    stores: EdgeStores,
) -> Sequence[NodeId]:
    person_hash = parse_node_id(parent_id).person_hash
    if children_mode is ChildrenMode.UNION:
        entry = stores.union.get(union_parent_key(person_hash))
        return entry.child_ids if entry else ()

    strict_entry = stores.strict.get(parent_id)
    base = strict_entry.child_ids if strict_entry else ()
    if not include_unversioned:
        return base
    zero_entry = stores.strict.get(make_node_id(person_hash, UNVERSIONED_INDEX))
    if not zero_entry or not zero_entry.child_ids:
        return base
    return sorted(set(base).union(zero_entry.child_ids))


def get_projected_child_ids(
    parent_id: NodeId,
    children_mode: ChildrenMode | str,
    options: ProjectionOptions,
    stores: EdgeStores,
    nodes_data: Mapping[NodeId, NodeData],
) -> list[NodeId]:
    """Children of ``parent_id`` as the active view shows them.

    Self-references are always dropped. Without deduplication the stored
    order is returned untouched.
    """
    mode = ChildrenMode(children_mode)
    raw = _raw_child_ids(parent_id, mode, options.strict_include_unversioned_children, stores)
    filtered = [node_id for node_id in raw if node_id != parent_id]
    if not options.deduplicate_children:
        return filtered
    return project_deduplicated_child_ids(filtered, nodes_data, options.endorsements_ready)
