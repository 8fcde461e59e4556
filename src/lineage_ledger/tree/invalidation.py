"""Cache keys to drop after a new person version is recorded on the ledger."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field

from lineage_ledger.cache.keys import tv_key
from lineage_ledger.models.node_id import NODE_ID_SEPARATOR, make_node_id
from lineage_ledger.models.store import union_parent_key

_ZERO_HASH = re.compile(r"^0x0{64}$", re.IGNORECASE)


@dataclass(frozen=True)
class PersonVersionAdded:
    """Ledger event: ``person_hash`` gained version ``version_index``."""
    person_hash: str
    version_index: int
    father_hash: str | None = None
    father_version_index: int | None = None
    mother_hash: str | None = None
    mother_version_index: int | None = None


@dataclass
class InvalidationKeys:
    total_versions_keys: list[str] = field(default_factory=list)
    union_keys: list[str] = field(default_factory=list)
    strict_keys: list[str] = field(default_factory=list)
    strict_prefixes: list[str] = field(default_factory=list)


def is_zero_hash(value: str | None) -> bool:
    """Empty, ``0x`` and the 32-byte zero hash all mean "no parent"."""
    if not value or value == "0x":
        return True
    return bool(_ZERO_HASH.match(value))


def _known_version(value: float | None) -> bool:
    if value is None:
        return False
    try:
        v = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(v) and v > 0


def get_invalidate_keys_after_person_version_added(event: PersonVersionAdded) -> InvalidationKeys:
    """Compute which cache and edge-store entries a new version makes stale.

    Parents with an unknown version (missing, zero or non-finite) get a strict
    *prefix* covering every version of that parent instead of an exact key.
    """
    total_versions: dict[str, None] = {}
    union: dict[str, None] = {}
    strict: dict[str, None] = {}
    prefixes: dict[str, None] = {}

    parents = [
        (event.father_hash, event.father_version_index),
        (event.mother_hash, event.mother_version_index),
    ]
    for person_hash in [event.person_hash, *(h for h, _ in parents)]:
        if not is_zero_hash(person_hash):
            total_versions[tv_key(person_hash)] = None

    for parent_hash, parent_version in parents:
        if is_zero_hash(parent_hash):
            continue
        union[union_parent_key(parent_hash)] = None
        if _known_version(parent_version):
            strict[make_node_id(parent_hash, int(parent_version))] = None
        else:
            prefixes[f"{parent_hash.lower()}{NODE_ID_SEPARATOR}"] = None

    return InvalidationKeys(
        total_versions_keys=list(total_versions),
        union_keys=list(union),
        strict_keys=list(strict),
        strict_prefixes=list(prefixes),
    )
