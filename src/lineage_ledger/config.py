from __future__ import annotations

import os
from dataclasses import dataclass, replace


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _s(name: str, default: str) -> str:
    return os.getenv(name) or default


@dataclass(frozen=True)
class TreeConfig:
    """Runtime settings for ledger access and tree materialization.

    TTLs are milliseconds; a TTL <= 0 never expires.
    """

    rpc_url: str = "http://localhost:8545"
    rpc_timeout: float = 30.0

    # Pagination
    page_limit: int = 25

    # Cache staleness
    total_versions_ttl_ms: int = 60_000
    edge_ttl_ms: int = 120_000
    version_details_ttl_ms: int = 300_000
    nft_details_ttl_ms: int = 86_400_000

    # Walk bounds
    max_depth: int = 30
    hard_node_limit: int = 20_000
    endorsement_batch: int = 40
    parallel: int = 6

    @classmethod
    def from_env(cls) -> TreeConfig:
        """Build a config from ``LINEAGE_LEDGER_*`` environment variables."""
        d = cls()
        return cls(
            rpc_url=_s("LINEAGE_LEDGER_RPC_URL", d.rpc_url),
            rpc_timeout=_f("LINEAGE_LEDGER_RPC_TIMEOUT", d.rpc_timeout),
            page_limit=_i("LINEAGE_LEDGER_PAGE_SIZE", d.page_limit),
            total_versions_ttl_ms=_i("LINEAGE_LEDGER_TV_TTL_MS", d.total_versions_ttl_ms),
            edge_ttl_ms=_i("LINEAGE_LEDGER_EDGE_TTL_MS", d.edge_ttl_ms),
            version_details_ttl_ms=_i("LINEAGE_LEDGER_VD_TTL_MS", d.version_details_ttl_ms),
            nft_details_ttl_ms=_i("LINEAGE_LEDGER_NFT_TTL_MS", d.nft_details_ttl_ms),
            max_depth=_i("LINEAGE_LEDGER_MAX_DEPTH", d.max_depth),
            hard_node_limit=_i("LINEAGE_LEDGER_HARD_NODE_LIMIT", d.hard_node_limit),
            endorsement_batch=_i("LINEAGE_LEDGER_ENDORSE_BATCH", d.endorsement_batch),
            parallel=_i("LINEAGE_LEDGER_PARALLEL", d.parallel),
        )

    def with_overrides(self, **changes) -> TreeConfig:
        return replace(self, **changes)


CONFIG = TreeConfig.from_env()
