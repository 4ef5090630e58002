"""
Tests for the CLI helpers.

Run with: pytest src/roadmapdb/cli_test.py -v
"""

import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from roadmapdb import cli


class TestParseValue:
    @pytest.mark.parametrize("raw,expected", [("7", 7), ("-1", -1), ("Acme", "Acme"), ("7a", "7a")])
    def test_parse_value(self, raw, expected):
        assert cli.parse_value(raw) == expected


class TestRenderRecord:
    def test_one_row_per_column(self):
        table = cli.render_record("roadmaps", {"id": 1, "name": "Acme", "data": [1]})

        assert table.title == "roadmaps"
        assert table.row_count == 3


class TestMain:
    def test_count_passes_typed_pairs(self):
        with patch.object(sys, "argv", ["roadmapdb", "count", "roadmaps", "user_id", "7"]), patch(
            "roadmapdb.cli.count_records", new=MagicMock(return_value=None)
        ) as count_records, patch("roadmapdb.cli.asyncio.run") as run:
            cli.main()

        count_records.assert_called_once_with("roadmaps", ["user_id", 7])
        run.assert_called_once()

    def test_count_rejects_odd_pairs(self):
        with patch.object(sys, "argv", ["roadmapdb", "count", "roadmaps", "user_id"]):
            with pytest.raises(SystemExit):
                cli.main()

    def test_help_describes_browse_lookup(self, capsys):
        with patch.object(sys, "argv", ["roadmapdb", "--help"]):
            with pytest.raises(SystemExit):
                cli.main()

        assert "look up records by id" in capsys.readouterr().out


class TestShowRecord:
    @pytest.mark.asyncio
    async def test_missing_record(self, capsys):
        store = AsyncMock()
        store.get.return_value = None
        store.__aenter__.return_value = store

        with patch("roadmapdb.cli.RecordStore", return_value=store), patch("roadmapdb.cli.Database"):
            await cli.show_record("roadmaps", 3)

        store.get.assert_awaited_once_with("roadmaps", 3)
        assert "No record 3 in roadmaps" in capsys.readouterr().out
