"""Tree session: the per-application context for one ledger.

A session owns the query cache, both edge stores and the node attribute map,
so nothing is shared through module globals and tests get isolated state by
building a fresh session.

Only the session writes the stores (after successful fetches) and deletes
from them (on invalidation). Projection and the walkers just read.
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from lineage_ledger.cache.keys import cs_key, cs_prefix, cu_key
from lineage_ledger.cache.query_cache import QueryCache
from lineage_ledger.config import CONFIG, TreeConfig
from lineage_ledger.ledger.api import CheckAbort, LedgerQueryApi
from lineage_ledger.ledger.contract import LedgerContract
from lineage_ledger.logging import get_logger
from lineage_ledger.models.graph import NodeData, TreeGraphData, TreeRow
from lineage_ledger.models.ledger import NftDetails, VersionDetails
from lineage_ledger.models.node_id import NODE_ID_SEPARATOR, NodeId, make_node_id, parse_node_id
from lineage_ledger.models.store import (
    ChildrenMode,
    EdgeStores,
    EdgeStrictEntry,
    EdgeUnionEntry,
    union_parent_key,
)

from .invalidation import InvalidationKeys, PersonVersionAdded, get_invalidate_keys_after_person_version_added
from .projection import UNVERSIONED_INDEX, ProjectionOptions, get_projected_child_ids
from .walker import build_tree_rows, build_view_graph_data

logger = get_logger(__name__)


@dataclass
class LoadResult:
    """Outcome of a subtree crawl."""
    root_id: NodeId
    node_ids: list[NodeId] = field(default_factory=list)
    depth_reached: int = 0
    truncated: bool = False  # hit the node limit
    load_time_ms: float = 0.0


class TreeSession:
    """Cache, edge stores and node data for one ledger.

    Example:
        >>> async with HttpLedgerContract(config) as contract:
        ...     session = TreeSession(contract, config)
        ...     root = make_node_id("0xabc...", 1)
        ...     await session.load_subtree(root, ChildrenMode.UNION)
        ...     await session.load_endorsements()
        ...     graph = session.view_graph(root, ChildrenMode.UNION, deduplicate_children=True)
    """

    def __init__(
        self,
        contract: LedgerContract,
        config: TreeConfig | None = None,
        cache: QueryCache | None = None,
    ) -> None:
        """Initialize an empty session.

        Args:
            contract: Ledger RPC surface
            config: Page size, TTLs and walk bounds. Defaults to env config.
            cache: Query cache to use. A fresh one is created by default.
        """
        self.config = config or CONFIG
        self.cache = cache or QueryCache()
        self.api = LedgerQueryApi(contract, self.cache)
        self.stores = EdgeStores()
        self.nodes_data: dict[NodeId, NodeData] = {}
        self.endorsements_ready = False
        # bumped per lower-cased person hash whenever its edges are invalidated
        self._generations: dict[str, int] = {}

    @property
    def edges_union(self) -> dict[str, EdgeUnionEntry]:
        return self.stores.union

    @property
    def edges_strict(self) -> dict[NodeId, EdgeStrictEntry]:
        return self.stores.strict

    # =========================================================================
    # Edge store population
    # =========================================================================

    def _generation(self, person_hash: str) -> int:
        return self._generations.get(union_parent_key(person_hash), 0)

    def _bump_generation(self, person_hash: str) -> None:
        key = union_parent_key(person_hash)
        self._generations[key] = self._generations.get(key, 0) + 1

    def _is_fresh(self, fetched_at: float) -> bool:
        ttl = self.config.edge_ttl_ms
        return ttl <= 0 or self.cache.now() - fetched_at <= ttl

    async def ensure_union_children(
        self,
        person_hash: str,
        *,
        force: bool = False,
        check_abort: CheckAbort | None = None,
    ) -> EdgeUnionEntry:
        """Union child list for a person, fetched on miss or expiry."""
        key = union_parent_key(person_hash)
        entry = self.stores.union.get(key)
        if entry is not None and not force and self._is_fresh(entry.fetched_at):
            return entry

        generation = self._generation(person_hash)
        result = await self.api.list_children_union_all(
            person_hash,
            page_limit=self.config.page_limit,
            total_versions_ttl_ms=self.config.total_versions_ttl_ms,
            check_abort=check_abort,
        )
        entry = EdgeUnionEntry(
            child_ids=tuple(result.child_ids),
            fetched_at=self.cache.now(),
            total_versions=result.total_versions,
        )
        if self._generation(person_hash) == generation:
            self.stores.union[key] = entry
        else:
            logger.info("tree.stale_fetch_dropped", store="union", key=key)
        return entry

    async def ensure_strict_children(
        self,
        parent_id: NodeId,
        *,
        force: bool = False,
        check_abort: CheckAbort | None = None,
    ) -> EdgeStrictEntry:
        """Strict child list for one exact parent version."""
        entry = self.stores.strict.get(parent_id)
        if entry is not None and not force and self._is_fresh(entry.fetched_at):
            return entry

        parsed = parse_node_id(parent_id)
        generation = self._generation(parsed.person_hash)
        child_ids = await self.api.list_children_strict_all(
            parsed.person_hash,
            parsed.version_index,
            page_limit=self.config.page_limit,
            check_abort=check_abort,
        )
        entry = EdgeStrictEntry(
            child_ids=tuple(child_ids),
            fetched_at=self.cache.now(),
            total_count=len(child_ids),
        )
        if self._generation(parsed.person_hash) == generation:
            self.stores.strict[parent_id] = entry
        else:
            logger.info("tree.stale_fetch_dropped", store="strict", key=parent_id)
        return entry

    async def ensure_children(
        self,
        parent_id: NodeId,
        children_mode: ChildrenMode | str,
        *,
        strict_include_unversioned_children: bool = False,
        check_abort: CheckAbort | None = None,
    ) -> None:
        """Populate whichever store entries projection reads for ``parent_id``."""
        parsed = parse_node_id(parent_id)
        if ChildrenMode(children_mode) is ChildrenMode.UNION:
            await self.ensure_union_children(parsed.person_hash, check_abort=check_abort)
            return
        await self.ensure_strict_children(parent_id, check_abort=check_abort)
        if strict_include_unversioned_children and parsed.version_index != UNVERSIONED_INDEX:
            await self.ensure_strict_children(
                make_node_id(parsed.person_hash, UNVERSIONED_INDEX), check_abort=check_abort
            )

    # =========================================================================
    # Crawling
    # =========================================================================

    def projection_options(
        self,
        *,
        deduplicate_children: bool = False,
        strict_include_unversioned_children: bool = False,
    ) -> ProjectionOptions:
        return ProjectionOptions(
            strict_include_unversioned_children=strict_include_unversioned_children,
            deduplicate_children=deduplicate_children,
            endorsements_ready=self.endorsements_ready,
        )

    def _register_node(self, node_id: NodeId) -> None:
        if node_id not in self.nodes_data:
            parsed = parse_node_id(node_id)
            self.nodes_data[node_id] = NodeData(
                id=node_id,
                person_hash=parsed.person_hash,
                version_index=parsed.version_index,
            )

    async def load_subtree(
        self,
        root_id: NodeId,
        children_mode: ChildrenMode | str = ChildrenMode.UNION,
        *,
        deduplicate_children: bool = False,
        strict_include_unversioned_children: bool = False,
        max_depth: int | None = None,
        max_nodes: int | None = None,
        check_abort: CheckAbort | None = None,
    ) -> LoadResult:
        """Fetch children for every node reachable from ``root_id``.

        Crawls level by level; fetches within one level run concurrently, at
        most ``config.parallel`` at a time. Each node's *projected* children
        form the next frontier, so a deduplicated view only crawls the
        versions it will show.

        Args:
            root_id: Crawl root
            children_mode: Edge store to populate and follow
            deduplicate_children: Follow only canonical child versions
            strict_include_unversioned_children: Also fetch version-0 buckets
            max_depth: Deepest level whose children are fetched (default config)
            max_nodes: Hard cap on visited nodes (default config)
            check_abort: Cooperative cancellation hook, raised through

        Returns:
            LoadResult listing visited ids in crawl order
        """
        start_time = time.time()
        max_depth = self.config.max_depth if max_depth is None else max_depth
        max_nodes = self.config.hard_node_limit if max_nodes is None else max_nodes
        options = self.projection_options(
            deduplicate_children=deduplicate_children,
            strict_include_unversioned_children=strict_include_unversioned_children,
        )
        result = LoadResult(root_id=root_id)
        if not root_id:
            return result

        semaphore = asyncio.Semaphore(max(1, self.config.parallel))

        async def fetch(node_id: NodeId) -> None:
            async with semaphore:
                await self.ensure_children(
                    node_id,
                    children_mode,
                    strict_include_unversioned_children=strict_include_unversioned_children,
                    check_abort=check_abort,
                )

        visited: set[NodeId] = set()
        frontier: list[NodeId] = [root_id]
        depth = 0
        while frontier:
            if check_abort is not None:
                check_abort()
            level: list[NodeId] = []
            for node_id in frontier:
                if node_id in visited:
                    continue
                if len(visited) >= max_nodes:
                    result.truncated = True
                    break
                visited.add(node_id)
                level.append(node_id)
                self._register_node(node_id)
            result.node_ids.extend(level)
            result.depth_reached = depth
            if result.truncated or depth >= max_depth or not level:
                break

            await asyncio.gather(*(fetch(node_id) for node_id in level))

            next_frontier: list[NodeId] = []
            for node_id in level:
                next_frontier.extend(
                    get_projected_child_ids(node_id, children_mode, options, self.stores, self.nodes_data)
                )
            frontier = next_frontier
            depth += 1

        result.load_time_ms = (time.time() - start_time) * 1000
        if result.truncated:
            logger.warning("tree.load_truncated", root=root_id, nodes=len(result.node_ids), limit=max_nodes)
        logger.info(
            "tree.loaded",
            root=root_id,
            mode=ChildrenMode(children_mode).value,
            nodes=len(result.node_ids),
            depth=result.depth_reached,
            ms=round(result.load_time_ms, 1),
        )
        return result

    # =========================================================================
    # Node details
    # =========================================================================

    def _apply_version_details(self, node_id: NodeId, details: VersionDetails) -> None:
        current = self.nodes_data[node_id]
        version = details.version
        self.nodes_data[node_id] = current.patch(
            endorsement_count=details.endorsement_count,
            token_id=details.token_id,
            father_hash=version.father_hash,
            mother_hash=version.mother_hash,
            father_version_index=version.father_version_index,
            mother_version_index=version.mother_version_index,
            added_by=version.added_by,
            timestamp=version.timestamp,
            tag=version.tag or None,
            metadata_cid=version.metadata_cid,
        )

    def _apply_nft_details(self, node_id: NodeId, nft: NftDetails) -> None:
        current = self.nodes_data[node_id]
        basic = nft.core.basic_info
        supplement = nft.core.supplement_info
        self.nodes_data[node_id] = current.patch(
            endorsement_count=nft.endorsement_count,
            full_name=nft.core.full_name,
            gender=basic.gender,
            birth_year=basic.birth_year,
            birth_month=basic.birth_month,
            birth_day=basic.birth_day,
            is_birth_bc=basic.is_birth_bc,
            birth_place=supplement.birth_place,
            death_year=supplement.death_year,
            death_month=supplement.death_month,
            death_day=supplement.death_day,
            death_place=supplement.death_place,
            is_death_bc=supplement.is_death_bc,
            story=supplement.story,
            nft_token_uri=nft.nft_token_uri,
        )

    async def load_endorsements(
        self,
        node_ids: Iterable[NodeId] | None = None,
        *,
        check_abort: CheckAbort | None = None,
    ) -> int:
        """Fetch version and NFT details for nodes, then mark endorsements ready.

        Args:
            node_ids: Nodes to refresh. Defaults to every known node.
            check_abort: Cooperative cancellation hook, checked per batch

        Returns:
            Number of nodes whose version details were applied
        """
        ids = list(self.nodes_data) if node_ids is None else list(node_ids)
        for node_id in ids:
            self._register_node(node_id)

        batch = max(1, self.config.endorsement_batch)
        minted: list[NodeId] = []
        for i in range(0, len(ids), batch):
            if check_abort is not None:
                check_abort()
            chunk = ids[i:i + batch]
            details = await asyncio.gather(*(
                self.api.get_version_details(
                    self.nodes_data[node_id].person_hash,
                    self.nodes_data[node_id].version_index,
                    ttl_ms=self.config.version_details_ttl_ms,
                )
                for node_id in chunk
            ))
            for node_id, detail in zip(chunk, details):
                self._apply_version_details(node_id, detail)
                if self.nodes_data[node_id].is_minted and self.nodes_data[node_id].full_name is None:
                    minted.append(node_id)

        for node_id in minted:
            if check_abort is not None:
                check_abort()
            token_id = self.nodes_data[node_id].token_id
            nft = await self.api.get_nft_details(token_id, ttl_ms=self.config.nft_details_ttl_ms)
            self._apply_nft_details(node_id, nft)

        self.endorsements_ready = True
        logger.info("tree.endorsements_loaded", nodes=len(ids), minted=len(minted))
        return len(ids)

    # =========================================================================
    # Views
    # =========================================================================

    def view_graph(
        self,
        root_id: NodeId | None,
        children_mode: ChildrenMode | str = ChildrenMode.UNION,
        *,
        deduplicate_children: bool = False,
        strict_include_unversioned_children: bool = False,
        max_nodes: int | None = None,
    ) -> TreeGraphData:
        options = self.projection_options(
            deduplicate_children=deduplicate_children,
            strict_include_unversioned_children=strict_include_unversioned_children,
        )
        return build_view_graph_data(
            root_id,
            children_mode,
            options,
            self.stores,
            self.nodes_data,
            max_nodes=self.config.hard_node_limit if max_nodes is None else max_nodes,
        )

    def tree_rows(
        self,
        root_id: NodeId | None,
        expanded: Iterable[NodeId],
        children_mode: ChildrenMode | str = ChildrenMode.UNION,
        *,
        deduplicate_children: bool = False,
        strict_include_unversioned_children: bool = False,
    ) -> list[TreeRow]:
        options = self.projection_options(
            deduplicate_children=deduplicate_children,
            strict_include_unversioned_children=strict_include_unversioned_children,
        )
        return build_tree_rows(root_id, set(expanded), children_mode, options, self.stores, self.nodes_data)

    # =========================================================================
    # Invalidation
    # =========================================================================

    def apply_person_version_added(self, event: PersonVersionAdded) -> InvalidationKeys:
        """Drop every entry a newly recorded person version makes stale.

        Edge fetches for the affected parents that are still running return
        their result to the caller but no longer write it to the stores.
        """
        keys = get_invalidate_keys_after_person_version_added(event)

        for key in keys.union_keys:
            self._bump_generation(key)
        for key in keys.strict_keys:
            self._bump_generation(parse_node_id(key).person_hash)
        for prefix in keys.strict_prefixes:
            self._bump_generation(prefix[: -len(NODE_ID_SEPARATOR)])

        for key in keys.total_versions_keys:
            self.cache.delete(key)
            self.cache.delete_inflight(key)

        for key in keys.union_keys:
            self.stores.union.pop(key, None)
            self.cache.delete_inflight(cu_key(key))

        exact = {key.lower() for key in keys.strict_keys}
        prefixes = tuple(keys.strict_prefixes)
        for store_key in list(self.stores.strict):
            lowered = store_key.lower()
            if lowered in exact or (prefixes and lowered.startswith(prefixes)):
                del self.stores.strict[store_key]

        for key in keys.strict_keys:
            parsed = parse_node_id(key)
            self.cache.delete_inflight(cs_key(parsed.person_hash, parsed.version_index))
        for prefix in prefixes:
            parent_hash = prefix[: -len(NODE_ID_SEPARATOR)]
            self.cache.clear(prefix=cs_prefix(parent_hash))

        logger.info(
            "tree.invalidated",
            person=event.person_hash,
            version=event.version_index,
            union=len(keys.union_keys),
            strict=len(keys.strict_keys),
            prefixes=len(keys.strict_prefixes),
        )
        return keys

    def clear(self) -> None:
        """Forget everything: cache, both stores and node data."""
        self.cache.clear()
        self.stores.clear()
        self.nodes_data.clear()
        self.endorsements_ready = False

    def stats(self) -> dict[str, Any]:
        """Return a snapshot of cache and store sizes for debugging."""
        return {
            "cache_entries": len(self.cache),
            "inflight": self.cache.inflight_count(),
            "union_entries": len(self.stores.union),
            "strict_entries": len(self.stores.strict),
            "nodes": len(self.nodes_data),
            "endorsements_ready": self.endorsements_ready,
        }
