"""Strict decoders for raw ledger RPC responses.

Each ledger method has exactly one accepted wire shape. Outer results are
positional arrays; embedded structs are JSON objects keyed by their ledger
field names. Anything else raises :class:`LedgerDecodeError` at the boundary
instead of leaking half-parsed data into the caches.

Numeric fields accept integers or decimal strings, since big integers are
usually serialized as strings.
"""
from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from lineage_ledger.errors import LedgerDecodeError


def _token_str(value: Any) -> Any:
    if value is None:
        return "0"
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


class _LedgerRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class VersionRecord(_LedgerRecord):
    """One recorded version of a person."""

    person_hash: str | None = Field(default=None, alias="personHash")
    father_hash: str | None = Field(default=None, alias="fatherHash")
    mother_hash: str | None = Field(default=None, alias="motherHash")
    version_index: int | None = Field(default=None, alias="versionIndex")
    father_version_index: int | None = Field(default=None, alias="fatherVersionIndex")
    mother_version_index: int | None = Field(default=None, alias="motherVersionIndex")
    added_by: str | None = Field(default=None, alias="addedBy")
    timestamp: int | None = None
    tag: str | None = None
    metadata_cid: str | None = Field(default=None, alias="metadataCID")


class BasicInfo(_LedgerRecord):
    full_name: str | None = Field(default=None, alias="fullName")
    gender: int | None = None
    birth_year: int | None = Field(default=None, alias="birthYear")
    birth_month: int | None = Field(default=None, alias="birthMonth")
    birth_day: int | None = Field(default=None, alias="birthDay")
    is_birth_bc: bool | None = Field(default=None, alias="isBirthBC")


class SupplementInfo(_LedgerRecord):
    full_name: str | None = Field(default=None, alias="fullName")
    birth_place: str | None = Field(default=None, alias="birthPlace")
    death_year: int | None = Field(default=None, alias="deathYear")
    death_month: int | None = Field(default=None, alias="deathMonth")
    death_day: int | None = Field(default=None, alias="deathDay")
    death_place: str | None = Field(default=None, alias="deathPlace")
    is_death_bc: bool | None = Field(default=None, alias="isDeathBC")
    story: str | None = None


class CoreInfo(_LedgerRecord):
    basic_info: BasicInfo = Field(default_factory=BasicInfo, alias="basicInfo")
    supplement_info: SupplementInfo = Field(default_factory=SupplementInfo, alias="supplementInfo")

    @property
    def full_name(self) -> str | None:
        return self.supplement_info.full_name or self.basic_info.full_name


class ChildrenPage(_LedgerRecord):
    """One page of ``listChildren``."""

    child_hashes: list[str]
    child_versions: list[int]
    has_more: bool
    next_offset: int

    @model_validator(mode="after")
    def check_lengths(self) -> ChildrenPage:
        if len(self.child_hashes) != len(self.child_versions):
            raise ValueError(
                f"{len(self.child_hashes)} child hashes but {len(self.child_versions)} versions"
            )
        return self


class VersionDetails(_LedgerRecord):
    version: VersionRecord
    endorsement_count: int = 0
    token_id: str = "0"

    @field_validator("token_id", mode="before")
    @classmethod
    def normalize_token_id(cls, value: Any) -> Any:
        return _token_str(value)


class NftDetails(_LedgerRecord):
    person_hash: str
    version_index: int
    version: VersionRecord
    core: CoreInfo
    endorsement_count: int | None = None
    nft_token_uri: str | None = None


def _positional(method: str, raw: Any, length: int) -> Sequence[Any]:
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise LedgerDecodeError(f"{method}: expected a {length}-element array", method, raw)
    if len(raw) != length:
        raise LedgerDecodeError(
            f"{method}: expected {length} elements, got {len(raw)}", method, raw
        )
    return raw


def decode_total_versions(raw: Any) -> int:
    """Decode ``listPersonVersions``; non-finite or negative counts clamp to 0."""
    if not isinstance(raw, Mapping) or "totalVersions" not in raw:
        raise LedgerDecodeError("listPersonVersions: missing totalVersions", "listPersonVersions", raw)
    value = raw["totalVersions"]
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise LedgerDecodeError("listPersonVersions: totalVersions is not a number", "listPersonVersions", raw)
    try:
        total = float(value)
    except ValueError as e:
        raise LedgerDecodeError(
            f"listPersonVersions: totalVersions {value!r} is not a number", "listPersonVersions", raw
        ) from e
    if not math.isfinite(total) or total < 0:
        return 0
    return int(total)


def decode_children_page(raw: Any) -> ChildrenPage:
    hashes, versions, _unused, has_more, next_offset = _positional("listChildren", raw, 5)
    try:
        return ChildrenPage(
            child_hashes=hashes,
            child_versions=versions,
            has_more=has_more,
            next_offset=next_offset,
        )
    except ValidationError as e:
        raise LedgerDecodeError(f"listChildren: {e}", "listChildren", raw) from e


def decode_version_details(raw: Any) -> VersionDetails:
    version, endorsement_count, token_id = _positional("getVersionDetails", raw, 3)
    try:
        return VersionDetails(
            version=version,
            endorsement_count=endorsement_count if endorsement_count is not None else 0,
            token_id=token_id,
        )
    except ValidationError as e:
        raise LedgerDecodeError(f"getVersionDetails: {e}", "getVersionDetails", raw) from e


def decode_nft_details(raw: Any) -> NftDetails:
    person_hash, version_index, version, core, endorsement_count, token_uri = _positional(
        "getNFTDetails", raw, 6
    )
    try:
        return NftDetails(
            person_hash=person_hash,
            version_index=version_index,
            version=version,
            core=core,
            endorsement_count=endorsement_count,
            nft_token_uri=token_uri,
        )
    except ValidationError as e:
        raise LedgerDecodeError(f"getNFTDetails: {e}", "getNFTDetails", raw) from e
