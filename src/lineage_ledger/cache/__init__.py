"""Query caching: TTL values, in-flight coalescing and key formats."""
from .keys import cs_key, cs_prefix, cu_key, nft_key, normalize_hash_key, parse_vd_key, tv_key, vd_key
from .query_cache import CacheEntry, QueryCache

__all__ = [
    "CacheEntry",
    "QueryCache",
    "cs_key",
    "cs_prefix",
    "cu_key",
    "nft_key",
    "normalize_hash_key",
    "parse_vd_key",
    "tv_key",
    "vd_key",
]
