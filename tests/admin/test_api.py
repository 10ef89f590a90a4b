from typing import Any, Callable, Dict

import pytest
import simplejson as json
from flask.testing import FlaskClient

from kdbview.admin.views import create_application
from kdbview.utils.metrics.backends.testing import get_recorded_metric_calls


@pytest.fixture
def admin_api(transport_factory: Callable[..., Any]) -> FlaskClient:
    application = create_application(transport_factory)
    return application.test_client()


@pytest.fixture
def connected_api(admin_api: FlaskClient) -> FlaskClient:
    response = admin_api.post("/api/connect", json={"host": "localhost", "port": 5000})
    assert response.status_code == 200
    return admin_api


def test_health(admin_api: FlaskClient) -> None:
    response = admin_api.get("/health")
    assert response.status_code == 200
    assert response.data == b"OK"

    response = admin_api.get("/api/health")
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data["status"] == "healthy"
    assert data["kdbConnection"] == {"connected": False, "config": None}

    calls = get_recorded_metric_calls("increment", "api.request")
    assert calls is not None
    assert len(calls) == 2


def test_connect(admin_api: FlaskClient) -> None:
    response = admin_api.post("/api/connect", json={"host": "localhost", "port": 5000})
    assert response.status_code == 200
    assert json.loads(response.data) == {
        "success": True,
        "message": "Connected to KDB+ at localhost:5000",
        "connection": {"host": "localhost", "port": 5000},
    }

    data = json.loads(admin_api.get("/api/health").data)
    assert data["kdbConnection"] == {
        "connected": True,
        "config": {"host": "localhost", "port": 5000},
    }


@pytest.mark.parametrize(
    "body", [{}, {"host": "localhost"}, {"host": "localhost", "port": "abc"}]
)
def test_connect_bad_request(admin_api: FlaskClient, body: Dict[str, Any]) -> None:
    response = admin_api.post("/api/connect", json=body)
    assert response.status_code == 400
    assert json.loads(response.data)["success"] is False


def test_connect_failure() -> None:
    def refuse(*args: Any) -> Any:
        raise ConnectionRefusedError("refused")

    client = create_application(refuse).test_client()
    response = client.post("/api/connect", json={"host": "localhost", "port": 5000})
    assert response.status_code == 500
    assert json.loads(response.data) == {
        "success": False,
        "error": "Failed to connect to KDB+ at localhost:5000 - refused",
    }


@pytest.mark.parametrize(
    "method, url",
    [
        ("get", "/api/tables"),
        ("get", "/api/tables/trade/data"),
        ("post", "/api/query"),
    ],
)
def test_requires_connection(admin_api: FlaskClient, method: str, url: str) -> None:
    response = getattr(admin_api, method)(url, json={"query": "select from trade"})
    assert response.status_code == 400
    assert json.loads(response.data) == {
        "success": False,
        "error": "Not connected to KDB+ server",
    }


def test_applications_do_not_share_connections(
    connected_api: FlaskClient, transport_factory: Callable[..., Any]
) -> None:
    other = create_application(transport_factory).test_client()
    response = other.get("/api/tables")
    assert response.status_code == 400


def test_tables(connected_api: FlaskClient) -> None:
    response = connected_api.get("/api/tables")
    assert response.status_code == 200
    assert json.loads(response.data) == {
        "success": True,
        "tables": [
            {
                "name": "trade",
                "columns": ["time", "sym", "price", "size"],
                "rowCount": 3,
            },
            {"name": "quote", "columns": ["time", "bid", "ask"], "rowCount": 0},
        ],
    }


def test_table_data(connected_api: FlaskClient) -> None:
    response = connected_api.get("/api/tables/trade/data")
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data["success"] is True
    assert data["pagination"] == {"offset": 0, "limit": 50, "returned": 3}
    assert data["data"]["columns"] == ["time", "sym", "price", "size"]
    assert data["data"]["meta"]["types"] == ["second", "symbol", "number", "number"]
    assert data["data"]["data"][0] == ["09:30:00", "AAPL", 150.0, 100]


LIMIT_ERROR = "Invalid limit parameter (must be 1-10000)"


@pytest.mark.parametrize(
    "url, error",
    [
        ("/api/tables/trade/data?limit=0", LIMIT_ERROR),
        ("/api/tables/trade/data?limit=10001", LIMIT_ERROR),
        ("/api/tables/trade/data?offset=-5", "Invalid offset parameter"),
        ("/api/tables/1trade/data", "'1trade' is not a valid table name"),
    ],
)
def test_table_data_bad_request(
    connected_api: FlaskClient, url: str, error: str
) -> None:
    response = connected_api.get(url)
    assert response.status_code == 400
    assert json.loads(response.data) == {"success": False, "error": error}


def test_query(connected_api: FlaskClient) -> None:
    response = connected_api.post("/api/query", json={"query": "select from trade"})
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data["success"] is True
    assert data["data"]["meta"]["count"] == 3
    # null long sentinel
    assert data["data"]["data"][2][3] is None


def test_query_missing(connected_api: FlaskClient) -> None:
    response = connected_api.post("/api/query", json={})
    assert response.status_code == 400
    assert json.loads(response.data)["success"] is False


def test_query_failure(
    connected_api: FlaskClient, fake_responses: Dict[str, Any]
) -> None:
    fake_responses["select from nope"] = RuntimeError("nope")

    response = connected_api.post("/api/query", json={"query": "select from nope"})
    assert response.status_code == 500
    assert json.loads(response.data) == {
        "success": False,
        "error": "Query execution failed: nope",
    }


def test_heatmap_with_default_axes(connected_api: FlaskClient) -> None:
    response = connected_api.post(
        "/api/heatmap", json={"query": "select from trade"}
    )
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data["selection"] == {"x_column": "time", "y_columns": ["size"]}
    heatmap = data["heatmap"]
    assert heatmap["shape"] == "time_volume"
    assert heatmap["type"] == "simple_values"
    assert heatmap["x"] == ["09:30:00", "09:30:01"]
    assert heatmap["z"] == [[0.0, 100.0]]


def test_heatmap_with_selection(connected_api: FlaskClient) -> None:
    response = connected_api.post(
        "/api/heatmap",
        json={"query": "select from trade", "x_column": "time", "y_columns": "price"},
    )
    assert response.status_code == 200
    heatmap = json.loads(response.data)["heatmap"]
    assert heatmap["y"] == ["Values"]
    assert heatmap["title"] == "price over Time"
    assert len(heatmap["z"][0]) == 3


def test_heatmap_unknown_column(connected_api: FlaskClient) -> None:
    response = connected_api.post(
        "/api/heatmap",
        json={"query": "select from trade", "x_column": "time", "y_columns": ["bid"]},
    )
    assert response.status_code == 400
    assert json.loads(response.data) == {
        "success": False,
        "error": "Invalid column selection: bid",
    }


def test_heatmap_without_plottable_columns(
    connected_api: FlaskClient, fake_responses: Dict[str, Any]
) -> None:
    fake_responses["select from notes"] = {"a": ["x"], "b": ["y"]}

    response = connected_api.post("/api/heatmap", json={"query": "select from notes"})
    assert response.status_code == 400
    assert json.loads(response.data)["error"] == "No columns suitable for a heatmap"


def test_wsgi_application() -> None:
    from kdbview.admin.wsgi import application

    response = application.test_client().get("/health")
    assert response.status_code == 200
