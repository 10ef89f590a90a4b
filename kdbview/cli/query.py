from typing import Optional

import click
import simplejson as json

from kdbview.kdb.connection import connect_from_settings
from kdbview.kdb.errors import KdbError
from kdbview.results.normalizer import normalize


@click.command()
@click.argument("query_text", metavar="QUERY")
@click.option("--host", help="kdb+ host, defaults to KDB_HOST.")
@click.option("--port", type=int, help="kdb+ port, defaults to KDB_PORT.")
@click.option("--indent", type=int, default=None, help="Pretty print the JSON.")
def query(
    *,
    query_text: str,
    host: Optional[str],
    port: Optional[int],
    indent: Optional[int],
) -> None:
    """
    Run a q query and print the normalized result table as JSON.
    """
    try:
        connection = connect_from_settings(host, port)
        try:
            table = normalize(connection.execute(query_text))
        finally:
            connection.close()
    except KdbError as e:
        raise click.ClickException(e.message)

    click.echo(json.dumps(table.to_dict(), ignore_nan=True, indent=indent))
