from typing import Optional, Sequence

import click
import simplejson as json

from kdbview.heatmap.classifier import classify_table, default_axes
from kdbview.heatmap.matrix import InvalidColumnSelection, build_matrix
from kdbview.kdb.connection import connect_from_settings
from kdbview.kdb.errors import KdbError
from kdbview.results.normalizer import normalize


@click.command()
@click.argument("query_text", metavar="QUERY")
@click.option("--host", help="kdb+ host, defaults to KDB_HOST.")
@click.option("--port", type=int, help="kdb+ port, defaults to KDB_PORT.")
@click.option("--x-column", help="Column plotted along X.")
@click.option(
    "--y-column",
    "y_columns",
    multiple=True,
    help="Column plotted along Y, may be repeated.",
)
@click.option("--indent", type=int, default=None, help="Pretty print the JSON.")
def heatmap(
    *,
    query_text: str,
    host: Optional[str],
    port: Optional[int],
    x_column: Optional[str],
    y_columns: Sequence[str],
    indent: Optional[int],
) -> None:
    """
    Run a q query and print the heatmap of its result as JSON. Axes that are
    not given are picked from the shape of the result.
    """
    try:
        connection = connect_from_settings(host, port)
        try:
            table = normalize(connection.execute(query_text))
        finally:
            connection.close()
    except KdbError as e:
        raise click.ClickException(e.message)

    decision = classify_table(table, x_column, list(y_columns) or None)
    if x_column is None or not y_columns:
        default_x, default_y = default_axes(table, decision)
        x_column = x_column or default_x
        y_columns = y_columns or default_y
        if x_column is None or not y_columns:
            raise click.ClickException("No columns suitable for a heatmap")
        decision = classify_table(table, x_column, list(y_columns))

    try:
        matrix = build_matrix(table, x_column, list(y_columns), decision)
    except InvalidColumnSelection as e:
        raise click.ClickException(e.message)

    click.echo(json.dumps(matrix.to_dict(), indent=indent))
