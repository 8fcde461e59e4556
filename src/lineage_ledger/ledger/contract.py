"""The ledger's narrow RPC surface.

Transport is opaque: anything with these four coroutines can back a
:class:`~lineage_ledger.ledger.api.LedgerQueryApi`. Return values are raw and
are decoded by :mod:`lineage_ledger.models.ledger`.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LedgerContract(Protocol):
    async def list_person_versions(self, person_hash: str, offset: int, limit: int) -> Any:
        """Raw ``{"totalVersions": n, ...}``."""
        ...

    async def list_children(
        self,
        parent_hash: str,
        parent_version_index: int,
        offset: int,
        limit: int,
    ) -> Any:
        """Raw ``[hashes, versions, _, has_more, next_offset]``."""
        ...

    async def get_version_details(self, person_hash: str, version_index: int) -> Any:
        """Raw ``[version, endorsement_count, token_id]``."""
        ...

    async def get_nft_details(self, token_id: str) -> Any:
        """Raw ``[person_hash, version_index, version, core_info, endorsements, uri]``."""
        ...
