from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, cast

import sentry_sdk
import simplejson as json
import structlog
from flask import Flask, Response, current_app, request
from structlog.contextvars import bind_contextvars, clear_contextvars

from kdbview import environment
from kdbview.heatmap.classifier import classify_table, default_axes
from kdbview.heatmap.matrix import InvalidColumnSelection, build_matrix
from kdbview.kdb.connection import ConnectionManager, TransportFactory
from kdbview.kdb.errors import (
    InvalidPagination,
    InvalidTableName,
    KdbConnectionError,
    KdbError,
    NotConnected,
)
from kdbview.kdb.tables import fetch_page, list_tables_with_metadata
from kdbview.results.normalizer import normalize
from kdbview.utils.metrics.wrapper import MetricsWrapper
from kdbview.utils.serializable_exception import SerializableException

logger = structlog.get_logger().bind(module=__name__)

metrics = MetricsWrapper(environment.metrics, "api")

CONNECTIONS_KEY = "kdbview.connections"


def _json(payload: Any, status: int = 200) -> Response:
    return Response(
        json.dumps(payload, ignore_nan=True),
        status,
        {"Content-Type": "application/json"},
    )


def _error(message: str, status: int, **extra: Any) -> Response:
    return _json({"success": False, "error": message, **extra}, status)


def _request_body() -> Mapping[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, Mapping) else {}


def connections() -> ConnectionManager:
    return cast(ConnectionManager, current_app.extensions[CONNECTIONS_KEY])


def _y_columns(value: Any) -> Optional[Sequence[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def create_application(
    transport_factory: Optional[TransportFactory] = None,
) -> Flask:
    """
    Build the HTTP API. Every application owns its own ConnectionManager, so
    two applications (or two test clients) never share a kdb+ connection.
    """
    application = Flask(__name__)
    application.extensions[CONNECTIONS_KEY] = ConnectionManager(transport_factory)

    @application.errorhandler(NotConnected)
    def handle_not_connected(exception: NotConnected) -> Response:
        return _error(exception.message, 400)

    @application.errorhandler(InvalidColumnSelection)
    @application.errorhandler(InvalidPagination)
    @application.errorhandler(InvalidTableName)
    def handle_invalid_request(exception: SerializableException) -> Response:
        return _error(exception.message, 400)

    @application.errorhandler(KdbError)
    def handle_kdb_error(exception: KdbError) -> Response:
        logger.error("kdb.error", error=exception.message)
        return _error(exception.message, 500)

    @application.before_request
    def set_logging_context() -> None:
        clear_contextvars()
        bind_contextvars(endpoint=request.endpoint, user_ip=request.remote_addr)
        metrics.increment("request", tags={"endpoint": str(request.endpoint)})

    @application.route("/health")
    def health() -> Response:
        return Response("OK", 200)

    @application.route("/api/health")
    def api_health() -> Response:
        return _json(
            {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "kdbConnection": connections().status(),
            }
        )

    # curl -X POST -H 'Content-Type: application/json' \
    #   -d '{"host": "localhost", "port": 5000}' http://127.0.0.1:3001/api/connect
    @application.route("/api/connect", methods=["POST"])
    def connect() -> Response:
        body = _request_body()
        try:
            host = str(body["host"])
            port = int(body["port"])
        except (KeyError, TypeError, ValueError):
            return _error("Invalid request, host and port are required", 400)

        try:
            connections().connect(host, port)
        except KdbConnectionError as err:
            logger.warning("connect.failed", host=host, port=port)
            return _error(err.message, 500)

        return _json(
            {
                "success": True,
                "message": f"Connected to KDB+ at {host}:{port}",
                "connection": {"host": host, "port": port},
            }
        )

    @application.route("/api/tables")
    def tables() -> Response:
        connection = connections().get()
        try:
            infos = list_tables_with_metadata(connection)
        except KdbError as err:
            return _error(err.message, 500, tables=[])
        return _json({"success": True, "tables": [info.to_dict() for info in infos]})

    @application.route("/api/tables/<table_name>/data")
    def table_data(table_name: str) -> Response:
        page = fetch_page(
            connections().get(),
            table_name,
            request.args.get("offset", 0),
            request.args.get("limit"),
        )
        return _json({"success": True, **page.to_dict()})

    # curl -X POST -H 'Content-Type: application/json' \
    #   -d '{"query": "select from trade"}' http://127.0.0.1:3001/api/query
    @application.route("/api/query", methods=["POST"])
    def query() -> Response:
        body = _request_body()
        raw_query = body.get("query")
        if not isinstance(raw_query, str) or not raw_query.strip():
            return _error("Invalid request, missing key query", 400)

        with sentry_sdk.start_span(op="kdb.query"):
            result = connections().get().execute(raw_query)
        table = normalize(result)
        return _json({"success": True, "data": table.to_dict()})

    # curl -X POST -H 'Content-Type: application/json' \
    #   -d '{"query": "select from trade", "x_column": "time"}' \
    #   http://127.0.0.1:3001/api/heatmap
    @application.route("/api/heatmap", methods=["POST"])
    def heatmap() -> Response:
        body = _request_body()
        raw_query = body.get("query")
        if not isinstance(raw_query, str) or not raw_query.strip():
            return _error("Invalid request, missing key query", 400)

        table = normalize(connections().get().execute(raw_query))
        x_column = body.get("x_column")
        y_columns = _y_columns(body.get("y_columns"))

        decision = classify_table(table, x_column, y_columns)
        if x_column is None or not y_columns:
            default_x, default_y = default_axes(table, decision)
            x_column = x_column or default_x
            y_columns = y_columns or default_y
            if x_column is None or not y_columns:
                return _error("No columns suitable for a heatmap", 400)
            decision = classify_table(table, x_column, y_columns)

        matrix = build_matrix(table, str(x_column), y_columns, decision)
        metrics.gauge("heatmap.cells", len(matrix.x_axis) * len(matrix.y_axis))
        return _json(
            {
                "success": True,
                "data": table.to_dict(),
                "heatmap": matrix.to_dict(),
                "selection": {"x_column": x_column, "y_columns": list(y_columns)},
            }
        )

    return application
