"""Tests for NodeId encoding, ledger decoders and node data."""
import pytest

from lineage_ledger.errors import LedgerDecodeError
from lineage_ledger.models import (
    NodeData,
    TreeGraphData,
    BaseEdge,
    BaseNode,
    decode_children_page,
    decode_nft_details,
    decode_total_versions,
    decode_version_details,
    format_ymd,
    make_node_id,
    parse_node_id,
    short_hash,
)


# =============================================================================
# NodeId
# =============================================================================


class TestNodeId:
    """Tests for NodeId encode/decode."""

    def test_make(self):
        """Test the canonical string form."""
        assert make_node_id("0xabc", 2) == "0xabc-v-2"

    def test_parse(self):
        """Test decoding a well-formed id."""
        parsed = parse_node_id("0xabc-v-2")
        assert parsed.person_hash == "0xabc"
        assert parsed.version_index == 2

    def test_parse_splits_on_last_separator(self):
        """Test hashes containing the separator still decode."""
        parsed = parse_node_id("0xa-v-b-v-7")
        assert parsed == ("0xa-v-b", 7)

    def test_parse_without_separator(self):
        """Test a bare hash degrades to version 0."""
        assert parse_node_id("0xabc") == ("0xabc", 0)

    def test_parse_separator_at_start(self):
        """Test an id that starts with the separator keeps the whole string."""
        assert parse_node_id("-v-3") == ("-v-3", 0)

    @pytest.mark.parametrize("suffix", ["x", "", "inf", "nan"])
    def test_parse_bad_version(self, suffix):
        """Test non-numeric or non-finite suffixes degrade to version 0."""
        assert parse_node_id(f"0xabc-v-{suffix}") == ("0xabc", 0)

    def test_short_hash(self):
        """Test hash abbreviation for display."""
        assert short_hash("0xabcdef12") == "0xabcd…"
        assert short_hash("") == ""


# =============================================================================
# Decoders
# =============================================================================


class TestDecodeTotalVersions:
    """Tests for listPersonVersions decoding."""

    def test_integer(self):
        assert decode_total_versions({"totalVersions": 3}) == 3

    def test_decimal_string(self):
        """Test big integers serialized as strings."""
        assert decode_total_versions({"totalVersions": "12"}) == 12

    @pytest.mark.parametrize("value", [-1, float("inf"), float("nan")])
    def test_clamps_to_zero(self, value):
        """Test negative or non-finite counts clamp to 0."""
        assert decode_total_versions({"totalVersions": value}) == 0

    @pytest.mark.parametrize("raw", [None, [], {"versions": 1}, {"totalVersions": "abc"}, {"totalVersions": True}])
    def test_rejects(self, raw):
        """Test malformed shapes raise a decode error."""
        with pytest.raises(LedgerDecodeError):
            decode_total_versions(raw)


class TestDecodeChildrenPage:
    """Tests for listChildren decoding."""

    def test_decode(self):
        page = decode_children_page([["0xa", "0xb"], [1, "2"], 2, True, 2])
        assert page.child_hashes == ["0xa", "0xb"]
        assert page.child_versions == [1, 2]
        assert page.has_more is True
        assert page.next_offset == 2

    def test_wrong_arity(self):
        """Test anything other than five elements is rejected."""
        with pytest.raises(LedgerDecodeError) as exc_info:
            decode_children_page([[], [], 0, False])
        assert exc_info.value.method == "listChildren"

    def test_mismatched_lengths(self):
        """Test hash and version arrays must line up."""
        with pytest.raises(LedgerDecodeError):
            decode_children_page([["0xa", "0xb"], [1], 2, False, 2])

    def test_not_an_array(self):
        with pytest.raises(LedgerDecodeError):
            decode_children_page({"childHashes": []})


class TestDecodeVersionDetails:
    """Tests for getVersionDetails decoding."""

    def test_decode(self):
        details = decode_version_details([
            {
                "personHash": "0xabc",
                "fatherHash": "0xdad",
                "versionIndex": 2,
                "fatherVersionIndex": 1,
                "addedBy": "0xsender",
                "timestamp": 1700000000,
                "tag": "v2",
                "metadataCID": "bafy",
            },
            "5",
            7,
        ])
        assert details.version.person_hash == "0xabc"
        assert details.version.father_version_index == 1
        assert details.version.metadata_cid == "bafy"
        assert details.endorsement_count == 5
        assert details.token_id == "7"

    def test_defaults(self):
        """Test missing count and token id fall back to 0."""
        details = decode_version_details([{}, None, None])
        assert details.endorsement_count == 0
        assert details.token_id == "0"

    def test_bad_struct(self):
        with pytest.raises(LedgerDecodeError):
            decode_version_details(["not a struct", 0, "0"])


class TestDecodeNftDetails:
    """Tests for getNFTDetails decoding."""

    def test_decode(self):
        nft = decode_nft_details([
            "0xabc",
            1,
            {"personHash": "0xabc", "versionIndex": 1},
            {
                "basicInfo": {"fullName": "Ada", "gender": 2, "birthYear": 1815, "birthMonth": 12, "birthDay": 10},
                "supplementInfo": {"fullName": "Ada Lovelace", "deathYear": 1852},
            },
            9,
            "ipfs://token",
        ])
        assert nft.person_hash == "0xabc"
        assert nft.core.full_name == "Ada Lovelace"
        assert nft.core.basic_info.birth_year == 1815
        assert nft.endorsement_count == 9
        assert nft.nft_token_uri == "ipfs://token"

    def test_wrong_arity(self):
        with pytest.raises(LedgerDecodeError):
            decode_nft_details(["0xabc", 1, {}, {}])


# =============================================================================
# Graph models
# =============================================================================


class TestNodeData:
    """Tests for NodeData helpers."""

    def test_is_minted(self):
        base = NodeData(id="0xa-v-1", person_hash="0xa", version_index=1)
        assert not base.is_minted
        assert not base.patch(token_id="0").is_minted
        assert base.patch(token_id="12").is_minted

    def test_patch_skips_none(self):
        """Test None values never erase known fields."""
        data = NodeData(id="0xa-v-1", person_hash="0xa", version_index=1, endorsement_count=3)
        patched = data.patch(endorsement_count=None, tag="t")
        assert patched.endorsement_count == 3
        assert patched.tag == "t"
        assert data.tag is None

    def test_patch_nothing_returns_self(self):
        data = NodeData(id="0xa-v-1", person_hash="0xa", version_index=1)
        assert data.patch(tag=None) is data

    def test_date_strings(self):
        data = NodeData(
            id="0xa-v-1",
            person_hash="0xa",
            version_index=1,
            birth_year=1815,
            birth_month=12,
            birth_day=10,
            death_year=44,
            is_death_bc=True,
        )
        assert data.birth_date_string == "1815-12-10"
        assert data.death_date_string == "BC 44"

    def test_format_ymd_empty(self):
        assert format_ymd(None) == ""
        assert format_ymd(0, 5, 5) == ""


class TestTreeGraphData:
    """Tests for graph serialization."""

    def test_to_dict(self):
        graph = TreeGraphData(
            nodes=[
                BaseNode(id="0xa-v-1", depth=0, person_hash="0xa", version_index=1),
                BaseNode(id="0xb-v-1", depth=1, person_hash="0xb", version_index=1),
            ],
            edges=[BaseEdge(from_id="0xa-v-1", to_id="0xb-v-1")],
            children_by_parent={"0xa-v-1": ["0xb-v-1"]},
        )
        data = graph.to_dict()
        assert [n["id"] for n in data["nodes"]] == ["0xa-v-1", "0xb-v-1"]
        assert data["edges"] == [{"from": "0xa-v-1", "to": "0xb-v-1"}]
        assert data["children_by_parent"] == {"0xa-v-1": ["0xb-v-1"]}
        assert data["truncated"] is False
