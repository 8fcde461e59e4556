"""NodeId encoding: one recorded version of one person.

A NodeId is the plain string ``"{person_hash}-v-{version_index}"``. Person
hashes are hex strings, so decoding splits on the *last* separator.
"""
from __future__ import annotations

import math
from typing import NamedTuple

NodeId = str

NODE_ID_SEPARATOR = "-v-"


class ParsedNodeId(NamedTuple):
    person_hash: str
    version_index: int


def make_node_id(person_hash: str, version_index: int) -> NodeId:
    return f"{person_hash}{NODE_ID_SEPARATOR}{int(version_index)}"


def parse_node_id(node_id: NodeId) -> ParsedNodeId:
    """Decode a NodeId; undecodable ids degrade to version 0."""
    idx = node_id.rfind(NODE_ID_SEPARATOR)
    if idx <= 0:
        return ParsedNodeId(node_id, 0)
    person_hash = node_id[:idx]
    suffix = node_id[idx + len(NODE_ID_SEPARATOR):]
    try:
        value = float(suffix)
    except ValueError:
        return ParsedNodeId(person_hash, 0)
    if not math.isfinite(value):
        return ParsedNodeId(person_hash, 0)
    return ParsedNodeId(person_hash, int(value))


def short_hash(person_hash: str, shown: int = 4) -> str:
    if not person_hash:
        return ""
    start = 2 if person_hash.startswith("0x") else 0
    return f"0x{person_hash[start:start + shown]}…"
