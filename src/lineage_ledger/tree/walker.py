"""Iterative graph walks over projected children.

Both walks use an explicit stack, so depth is bounded by memory rather than
the interpreter's recursion limit, and both keep a visited set, so cyclic or
duplicated edge data cannot make them loop.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Mapping

from lineage_ledger.models.graph import BaseEdge, BaseNode, NodeData, TreeGraphData, TreeRow
from lineage_ledger.models.node_id import NodeId, parse_node_id
from lineage_ledger.models.store import ChildrenMode, EdgeStores

from .projection import ProjectionOptions, get_projected_child_ids

logger = logging.getLogger(__name__)


def build_view_graph_data(
    root_id: NodeId | None,
    children_mode: ChildrenMode | str,
    options: ProjectionOptions,
    stores: EdgeStores,
    nodes_data: Mapping[NodeId, NodeData],
    max_nodes: int | None = None,
) -> TreeGraphData:
    """Materialize the subgraph reachable from ``root_id``.

    Args:
        root_id: Walk root; empty or ``None`` yields an empty graph
        children_mode: Edge store to read
        options: Projection options (dedup, unversioned merge)
        stores: Edge stores to read
        nodes_data: Node attributes consulted by deduplication
        max_nodes: Stop after this many nodes and flag the result truncated

    Returns:
        Nodes in depth-first order, the edges actually traversed, and a
        parent -> projected children map
    """
    if not root_id:
        return TreeGraphData()

    nodes: list[BaseNode] = []
    edges: list[BaseEdge] = []
    children_by_parent: dict[NodeId, list[NodeId]] = {}
    visited: set[NodeId] = set()
    truncated = False

    stack: list[tuple[NodeId, int, NodeId | None]] = [(root_id, 0, None)]
    while stack:
        node_id, depth, parent_id = stack.pop()
        if node_id in visited:
            continue
        if max_nodes is not None and len(nodes) >= max_nodes:
            truncated = True
            break
        visited.add(node_id)

        parsed = parse_node_id(node_id)
        nodes.append(BaseNode(id=node_id, depth=depth, person_hash=parsed.person_hash, version_index=parsed.version_index))
        if parent_id is not None:
            edges.append(BaseEdge(from_id=parent_id, to_id=node_id))

        children = get_projected_child_ids(node_id, children_mode, options, stores, nodes_data)
        if children:
            children_by_parent[node_id] = children
        for child_id in reversed(children):
            stack.append((child_id, depth + 1, node_id))

    if truncated:
        logger.warning("Graph walk from %s truncated at %d nodes", root_id, len(nodes))
        children_by_parent = {
            parent: kept
            for parent, children in children_by_parent.items()
            if (kept := [c for c in children if c in visited])
        }

    return TreeGraphData(nodes=nodes, edges=edges, children_by_parent=children_by_parent, truncated=truncated)


def _flatten(
    root_id: NodeId | None,
    expanded: Collection[NodeId],
    children_of: Callable[[NodeId], list[NodeId]],
) -> list[TreeRow]:
    if not root_id:
        return []

    rows: list[TreeRow] = []
    seen: set[NodeId] = set()
    stack: list[tuple[NodeId, int, bool]] = [(root_id, 0, True)]
    while stack:
        node_id, depth, is_last = stack.pop()
        if node_id in seen:
            continue
        seen.add(node_id)
        children = children_of(node_id)
        rows.append(TreeRow(node_id=node_id, depth=depth, is_last=is_last, has_children=bool(children)))
        if node_id not in expanded or not children:
            continue
        last = len(children) - 1
        for i in range(last, -1, -1):
            stack.append((children[i], depth + 1, i == last))
    return rows


def build_tree_rows(
    root_id: NodeId | None,
    expanded: Collection[NodeId],
    children_mode: ChildrenMode | str,
    options: ProjectionOptions,
    stores: EdgeStores,
    nodes_data: Mapping[NodeId, NodeData],
) -> list[TreeRow]:
    """Flatten the projected tree into rows, descending only into expanded ids."""
    memo: dict[NodeId, list[NodeId]] = {}

    def children_of(node_id: NodeId) -> list[NodeId]:
        if node_id not in memo:
            memo[node_id] = get_projected_child_ids(node_id, children_mode, options, stores, nodes_data)
        return memo[node_id]

    return _flatten(root_id, expanded, children_of)


def build_tree_rows_from_graph(
    root_id: NodeId | None,
    expanded: Collection[NodeId],
    graph: TreeGraphData,
) -> list[TreeRow]:
    """Same flattening as :func:`build_tree_rows`, from a materialized graph."""
    return _flatten(root_id, expanded, lambda node_id: graph.children_by_parent.get(node_id, []))
