"""Whole-collection fetchers over the ledger's paginated RPC surface.

Every fetcher follows the same coalescing contract against the
:class:`QueryCache`: check the value cache, then the in-flight registry, and
only then start a fetch, registering it immediately and always unregistering
it when it settles. Concurrent callers for one key share one round trip.

Failures are never cached and never retried here.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple, TypeVar

from lineage_ledger.cache.keys import cs_key, cu_key, nft_key, tv_key, vd_key
from lineage_ledger.cache.query_cache import QueryCache
from lineage_ledger.logging import get_logger
from lineage_ledger.models.ledger import (
    NftDetails,
    VersionDetails,
    decode_children_page,
    decode_nft_details,
    decode_total_versions,
    decode_version_details,
)
from lineage_ledger.models.node_id import NodeId, make_node_id

from .contract import LedgerContract

logger = get_logger(__name__)

T = TypeVar("T")

CheckAbort = Callable[[], None]
CacheHook = Callable[[], None]

DEFAULT_PAGE_LIMIT = 25


class UnionChildren(NamedTuple):
    child_ids: list[NodeId]
    total_versions: int


def _fire(hook: Callable[..., None] | None, *args: Any) -> None:
    if hook is not None:
        hook(*args)


class LedgerQueryApi:
    """Cached, coalesced queries against one ledger contract.

    Example:
        >>> api = LedgerQueryApi(contract, QueryCache())
        >>> children = await api.list_children_union_all(
        ...     "0xparent", page_limit=25, total_versions_ttl_ms=60_000,
        ... )
        >>> children.child_ids
        ['0xaaa-v-1', '0xbbb-v-1']
    """

    def __init__(self, contract: LedgerContract, cache: QueryCache) -> None:
        self.contract = contract
        self.cache = cache

    async def _coalesced(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        inflight = self.cache.get_inflight(key)
        if inflight is not None:
            logger.debug("ledger.coalesced", key=key)
            return await asyncio.shield(inflight)

        task = asyncio.ensure_future(fetch())
        self.cache.set_inflight(key, task)
        task.add_done_callback(lambda done: self._release(key, done))
        # A cancelled caller must not cancel the fetch its peers are sharing
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Future) -> None:
        if not task.cancelled():
            task.exception()  # every caller may have gone; mark it retrieved
        # An invalidation may have replaced the registration meanwhile
        if self.cache.get_inflight(key) is task:
            self.cache.delete_inflight(key)

    async def _collect_children(
        self,
        parent_hash: str,
        parent_version_index: int,
        page_limit: int,
        check_abort: CheckAbort | None,
        seen: set[NodeId],
        out: list[NodeId],
    ) -> None:
        offset = 0
        page = 0
        while True:
            _fire(check_abort)
            raw = await self.contract.list_children(parent_hash, int(parent_version_index), offset, page_limit)
            resp = decode_children_page(raw)
            for child_hash, child_version in zip(resp.child_hashes, resp.child_versions):
                node_id = make_node_id(child_hash, child_version)
                if node_id in seen:
                    continue
                seen.add(node_id)
                out.append(node_id)
            page += 1
            if not resp.has_more:
                break
            if resp.next_offset <= offset:
                logger.warning(
                    "ledger.pagination_stalled",
                    parent=parent_hash,
                    version=parent_version_index,
                    offset=offset,
                    next_offset=resp.next_offset,
                    page=page,
                )
                break
            offset = resp.next_offset

    async def get_total_versions(
        self,
        person_hash: str,
        *,
        ttl_ms: float,
        on_cache_hit: CacheHook | None = None,
        on_cache_miss: CacheHook | None = None,
        on_fetched: CacheHook | None = None,
    ) -> int:
        """Number of recorded versions for a person (clamped to >= 0)."""
        key = tv_key(person_hash)
        cached = self.cache.get(key, ttl_ms)
        if cached is not None:
            logger.debug("ledger.cache_hit", key=key)
            _fire(on_cache_hit)
            return int(cached)
        logger.debug("ledger.cache_miss", key=key)
        _fire(on_cache_miss)

        async def fetch() -> int:
            raw = await self.contract.list_person_versions(person_hash, 0, 0)
            total = decode_total_versions(raw)
            self.cache.set(key, total)
            _fire(on_fetched)
            logger.debug("ledger.total_versions", key=key, total=total)
            return total

        return await self._coalesced(key, fetch)

    async def list_children_strict_all(
        self,
        parent_hash: str,
        parent_version_index: int,
        *,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        check_abort: CheckAbort | None = None,
    ) -> list[NodeId]:
        """All children recorded against one exact parent version, sorted."""
        key = cs_key(parent_hash, parent_version_index)

        async def fetch() -> list[NodeId]:
            child_ids: list[NodeId] = []
            await self._collect_children(
                parent_hash, parent_version_index, page_limit, check_abort, set(), child_ids
            )
            child_ids.sort()
            logger.debug("ledger.children_strict", key=key, count=len(child_ids))
            return child_ids

        return await self._coalesced(key, fetch)

    async def list_children_union_all(
        self,
        parent_hash: str,
        *,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        total_versions_ttl_ms: float,
        check_abort: CheckAbort | None = None,
        on_total_versions: Callable[[int], None] | None = None,
    ) -> UnionChildren:
        """Children across every version of a person (0..total inclusive), sorted."""
        key = cu_key(parent_hash)

        async def fetch() -> UnionChildren:
            total_versions = await self.get_total_versions(parent_hash, ttl_ms=total_versions_ttl_ms)
            _fire(on_total_versions, total_versions)
            child_ids: list[NodeId] = []
            seen: set[NodeId] = set()
            for parent_version in range(0, total_versions + 1):
                await self._collect_children(
                    parent_hash, parent_version, page_limit, check_abort, seen, child_ids
                )
            child_ids.sort()
            logger.debug(
                "ledger.children_union", key=key, count=len(child_ids), total_versions=total_versions
            )
            return UnionChildren(child_ids=child_ids, total_versions=total_versions)

        return await self._coalesced(key, fetch)

    async def get_version_details(
        self,
        person_hash: str,
        version_index: int,
        *,
        ttl_ms: float | None = None,
        on_cache_hit: CacheHook | None = None,
        on_cache_miss: CacheHook | None = None,
        on_fetched: CacheHook | None = None,
    ) -> VersionDetails:
        """Version struct, endorsement count and token id.

        The value cache is only consulted and written when ``ttl_ms`` is given.
        """
        key = vd_key(person_hash, version_index)
        if ttl_ms is not None:
            cached = self.cache.get(key, ttl_ms)
            if cached is not None:
                logger.debug("ledger.cache_hit", key=key)
                _fire(on_cache_hit)
                return cached
            logger.debug("ledger.cache_miss", key=key)
            _fire(on_cache_miss)

        async def fetch() -> VersionDetails:
            raw = await self.contract.get_version_details(person_hash, int(version_index))
            parsed = decode_version_details(raw)
            if ttl_ms is not None:
                self.cache.set(key, parsed)
            _fire(on_fetched)
            return parsed

        return await self._coalesced(key, fetch)

    async def get_nft_details(
        self,
        token_id: str,
        *,
        ttl_ms: float | None = None,
        on_cache_hit: CacheHook | None = None,
        on_cache_miss: CacheHook | None = None,
        on_fetched: CacheHook | None = None,
    ) -> NftDetails:
        """NFT-bound person version with its core info."""
        key = nft_key(token_id)
        if ttl_ms is not None:
            cached = self.cache.get(key, ttl_ms)
            if cached is not None:
                logger.debug("ledger.cache_hit", key=key)
                _fire(on_cache_hit)
                return cached
            logger.debug("ledger.cache_miss", key=key)
            _fire(on_cache_miss)

        async def fetch() -> NftDetails:
            raw = await self.contract.get_nft_details(str(token_id))
            parsed = decode_nft_details(raw)
            if ttl_ms is not None:
                self.cache.set(key, parsed)
            _fire(on_fetched)
            return parsed

        return await self._coalesced(key, fetch)
