"""Data models: NodeIds, edge stores, graph views and ledger records."""
from .graph import BaseEdge, BaseNode, NodeData, TreeGraphData, TreeRow, format_ymd
from .ledger import (
    BasicInfo,
    ChildrenPage,
    CoreInfo,
    NftDetails,
    SupplementInfo,
    VersionDetails,
    VersionRecord,
    decode_children_page,
    decode_nft_details,
    decode_total_versions,
    decode_version_details,
)
from .node_id import NodeId, ParsedNodeId, make_node_id, parse_node_id, short_hash
from .store import (
    ChildrenMode,
    EdgeStoreStrict,
    EdgeStoreUnion,
    EdgeStores,
    EdgeStrictEntry,
    EdgeUnionEntry,
    union_parent_key,
)

__all__ = [
    # NodeId
    "NodeId",
    "ParsedNodeId",
    "make_node_id",
    "parse_node_id",
    "short_hash",
    # Edge stores
    "ChildrenMode",
    "EdgeStores",
    "EdgeStoreStrict",
    "EdgeStoreUnion",
    "EdgeStrictEntry",
    "EdgeUnionEntry",
    "union_parent_key",
    # Graph views
    "BaseEdge",
    "BaseNode",
    "NodeData",
    "TreeGraphData",
    "TreeRow",
    "format_ymd",
    # Ledger records
    "BasicInfo",
    "ChildrenPage",
    "CoreInfo",
    "NftDetails",
    "SupplementInfo",
    "VersionDetails",
    "VersionRecord",
    "decode_children_page",
    "decode_nft_details",
    "decode_total_versions",
    "decode_version_details",
]
