from typing import Optional

import click
import simplejson as json

from kdbview.kdb.connection import connect_from_settings
from kdbview.kdb.errors import KdbError
from kdbview.kdb.tables import fetch_page, list_tables_with_metadata


@click.command()
@click.option("--host", help="kdb+ host, defaults to KDB_HOST.")
@click.option("--port", type=int, help="kdb+ port, defaults to KDB_PORT.")
@click.option("--show", "table_name", help="Print a page of this table instead.")
@click.option("--offset", type=int, default=0)
@click.option("--limit", type=int, default=None)
def tables(
    *,
    host: Optional[str],
    port: Optional[int],
    table_name: Optional[str],
    offset: int,
    limit: Optional[int],
) -> None:
    """
    List the tables of a kdb+ process with their columns and row counts.
    """
    try:
        connection = connect_from_settings(host, port)
        try:
            if table_name is not None:
                page = fetch_page(connection, table_name, offset, limit)
                click.echo(json.dumps(page.to_dict(), ignore_nan=True))
                return

            for info in list_tables_with_metadata(connection):
                click.echo(
                    f"{info.name}\t{info.row_count} rows\t{', '.join(info.columns)}"
                )
        finally:
            connection.close()
    except KdbError as e:
        raise click.ClickException(e.message)
