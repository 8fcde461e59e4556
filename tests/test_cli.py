from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from lineage_ledger.cli import app
from lineage_ledger.errors import LedgerRpcError

runner = CliRunner()


class FakeHttpLedger:
    """Stands in for HttpLedgerContract: root -> two children."""

    children = {
        ("0xroot", 0): [],
        ("0xroot", 1): [("0xaaaa", 1), ("0xbbbb", 1)],
    }

    def __init__(self, config=None, client=None):
        self.config = config

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def list_person_versions(self, person_hash, offset, limit):
        return {"totalVersions": 1 if person_hash.lower() == "0xroot" else 0}

    async def list_children(self, parent_hash, parent_version_index, offset, limit):
        rows = self.children.get((parent_hash.lower(), parent_version_index), [])
        return [[h for h, _ in rows], [v for _, v in rows], len(rows), False, len(rows)]

    async def get_version_details(self, person_hash, version_index):
        return [{"personHash": person_hash, "versionIndex": version_index}, 3, "0"]

    async def get_nft_details(self, token_id):
        raise AssertionError("nothing is minted")


class FailingHttpLedger(FakeHttpLedger):
    async def list_person_versions(self, person_hash, offset, limit):
        raise LedgerRpcError("connection refused", method="listPersonVersions")


def test_tree_prints_rows() -> None:
    with patch("lineage_ledger.ledger.http.HttpLedgerContract", FakeHttpLedger):
        result = runner.invoke(app, ["tree", "0xroot", "--version", "1", "--endorsements"])

    assert result.exit_code == 0, result.output
    assert "0xaaaa" in result.output
    assert "0xbbbb" in result.output
    assert "3 nodes, depth 1" in result.output


def test_tree_rejects_unknown_mode() -> None:
    result = runner.invoke(app, ["tree", "0xroot", "--mode", "sideways"])
    assert result.exit_code == 1
    assert "Invalid mode" in result.output


def test_tree_reports_ledger_errors() -> None:
    with patch("lineage_ledger.ledger.http.HttpLedgerContract", FailingHttpLedger):
        result = runner.invoke(app, ["tree", "0xroot"])

    assert result.exit_code == 1
    assert "connection refused" in result.output


def test_export_writes_graph(tmp_path: Path) -> None:
    output = tmp_path / "graph.json"
    with patch("lineage_ledger.ledger.http.HttpLedgerContract", FakeHttpLedger):
        result = runner.invoke(app, ["export", "0xroot", "--output", str(output), "--mode", "strict"])

    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text())
    assert [n["id"] for n in data["nodes"]] == ["0xroot-v-1", "0xaaaa-v-1", "0xbbbb-v-1"]
    assert data["edges"][0] == {"from": "0xroot-v-1", "to": "0xaaaa-v-1"}
    assert data["truncated"] is False


def test_invalidate_keys_table() -> None:
    result = runner.invoke(
        app,
        ["invalidate-keys", "0xchild", "--father", "0xFather", "--father-version", "2", "--mother", "0xmother"],
    )

    assert result.exit_code == 0, result.output
    assert "tv:0xchild" in result.output
    assert "0xFather-v-2" in result.output
    assert "0xmother-v-" in result.output


def test_commands_log_in_console_format() -> None:
    with patch("lineage_ledger.ledger.http.HttpLedgerContract", FakeHttpLedger), patch(
        "lineage_ledger.logging.configure_logging"
    ) as configure:
        result = runner.invoke(app, ["tree", "0xroot"])

    assert result.exit_code == 0, result.output
    configure.assert_called_once_with(json_output=False)
