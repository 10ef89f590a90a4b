from typing import Any, Dict
from unittest import mock

import simplejson as json
from click.testing import CliRunner

import kdbview.cli.heatmap
import kdbview.cli.query
import kdbview.cli.tables
from kdbview import settings
from kdbview.cli import main
from kdbview.cli.admin import admin
from kdbview.cli.heatmap import heatmap
from kdbview.cli.query import query
from kdbview.cli.tables import tables
from kdbview.kdb.connection import KdbConnection
from kdbview.kdb.errors import KdbConnectionError


def test_lists_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0, result.output
    for command in ("admin", "heatmap", "query", "tables"):
        assert command in result.output


def test_unknown_command() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["bogus"])
    assert result.exit_code != 0


def test_query(kdb_connection: KdbConnection) -> None:
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.query, "connect_from_settings", return_value=kdb_connection
    ) as connect:
        result = runner.invoke(query, ["select from trade", "--port", "5001"])

    assert result.exit_code == 0, result.output
    connect.assert_called_once_with(None, 5001)
    data = json.loads(result.output)
    assert data["columns"] == ["time", "sym", "price", "size"]
    assert data["meta"]["count"] == 3


def test_query_failure(
    kdb_connection: KdbConnection, fake_responses: Dict[str, Any]
) -> None:
    fake_responses["bad"] = RuntimeError("type")
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.query, "connect_from_settings", return_value=kdb_connection
    ):
        result = runner.invoke(query, ["bad"])

    assert result.exit_code == 1
    assert "Query execution failed: type" in result.output


def test_unreachable_server() -> None:
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.query,
        "connect_from_settings",
        side_effect=KdbConnectionError("refused", host="localhost", port=5000),
    ):
        result = runner.invoke(query, ["tables[]"])

    assert result.exit_code == 1
    assert "Failed to connect to KDB+ at localhost:5000 - refused" in result.output


def test_heatmap(kdb_connection: KdbConnection) -> None:
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.heatmap, "connect_from_settings", return_value=kdb_connection
    ):
        result = runner.invoke(
            heatmap,
            ["select from trade", "--x-column", "time", "--y-column", "price"],
        )

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["title"] == "price over Time"
    assert data["x"] == ["09:30:00", "09:30:01", "09:30:02"]


def test_heatmap_default_axes(kdb_connection: KdbConnection) -> None:
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.heatmap, "connect_from_settings", return_value=kdb_connection
    ):
        result = runner.invoke(heatmap, ["select from trade"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["shape"] == "time_volume"


def test_heatmap_unknown_column(kdb_connection: KdbConnection) -> None:
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.heatmap, "connect_from_settings", return_value=kdb_connection
    ):
        result = runner.invoke(
            heatmap, ["select from trade", "--x-column", "time", "--y-column", "bid"]
        )

    assert result.exit_code == 1
    assert "Invalid column selection: bid" in result.output


def test_tables(kdb_connection: KdbConnection) -> None:
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.tables, "connect_from_settings", return_value=kdb_connection
    ):
        result = runner.invoke(tables, [])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == [
        "trade\t3 rows\ttime, sym, price, size",
        "quote\t0 rows\ttime, bid, ask",
    ]


def test_table_page(kdb_connection: KdbConnection) -> None:
    runner = CliRunner()
    with mock.patch.object(
        kdbview.cli.tables, "connect_from_settings", return_value=kdb_connection
    ):
        result = runner.invoke(tables, ["--show", "trade"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["pagination"]["returned"] == 3


def test_admin_serves_with_granian() -> None:
    runner = CliRunner()
    with mock.patch("kdbview.utils.server.serve") as serve:
        result = runner.invoke(admin, ["--processes", "2"])

    assert result.exit_code == 0, result.output
    serve.assert_called_once_with(
        "kdbview.admin.wsgi:application",
        f"{settings.ADMIN_HOST}:{settings.ADMIN_PORT}",
        processes=2,
        threads=1,
    )


def test_admin_debug_is_single_process() -> None:
    runner = CliRunner()
    result = runner.invoke(admin, ["--debug", "--processes", "2"])
    assert result.exit_code == 1
    assert "processes/threads can only be 1 in debug" in result.output
