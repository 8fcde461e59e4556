"""QueryCache key helpers.

All hash-based keys are lower-cased so mixed-case hex strings share entries.

Key formats:
- Total versions: ``tv:{hash}``
- Children strict: ``cs:{hash}:{parent_version_index}``
- Children union: ``cu:{hash}``
- Version details: ``vd:{hash}:{version_index}``
- NFT details: ``nft:{token_id}``
"""
from __future__ import annotations

import math

TOTAL_VERSIONS_PREFIX = "tv:"
CHILDREN_STRICT_PREFIX = "cs:"
CHILDREN_UNION_PREFIX = "cu:"
VERSION_DETAILS_PREFIX = "vd:"
NFT_DETAILS_PREFIX = "nft:"


def normalize_hash_key(person_hash: str | None) -> str:
    return str(person_hash or "").lower()


def tv_key(person_hash: str) -> str:
    return f"{TOTAL_VERSIONS_PREFIX}{normalize_hash_key(person_hash)}"


def cs_key(parent_hash: str, parent_version_index: int) -> str:
    return f"{CHILDREN_STRICT_PREFIX}{normalize_hash_key(parent_hash)}:{int(parent_version_index)}"


def cu_key(parent_hash: str) -> str:
    return f"{CHILDREN_UNION_PREFIX}{normalize_hash_key(parent_hash)}"


def vd_key(person_hash: str, version_index: int) -> str:
    return f"{VERSION_DETAILS_PREFIX}{normalize_hash_key(person_hash)}:{int(version_index)}"


def nft_key(token_id: str | int) -> str:
    return f"{NFT_DETAILS_PREFIX}{token_id}"


def parse_vd_key(key: str) -> tuple[str, int] | None:
    """Split a ``vd:`` key into (hash, version); ``None`` if it is not one."""
    parts = str(key or "").split(":")
    if len(parts) != 3 or parts[0] != "vd":
        return None
    hash_lower = parts[1].lower()
    try:
        version = float(parts[2])
    except ValueError:
        return None
    if not hash_lower or not math.isfinite(version) or version <= 0:
        return None
    return hash_lower, int(version)


def cs_prefix(parent_hash: str) -> str:
    """Prefix shared by strict-children keys of every version of a parent."""
    return f"{CHILDREN_STRICT_PREFIX}{normalize_hash_key(parent_hash)}:"
