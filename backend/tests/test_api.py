from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from conftest import FakeBrowser, ajax_page
from autowait.api.routes import execution
from autowait.main import app


@pytest.fixture
def sessions():
    opened = []

    @asynccontextmanager
    async def fake_session(options):
        opened.append(options)
        yield FakeBrowser(ajax_page)

    app.dependency_overrides[execution.get_session_factory] = lambda: fake_session
    yield opened
    app.dependency_overrides.clear()
    execution._execution_history.clear()


@pytest.fixture
def client(sessions):
    return TestClient(app)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["api"] == "/api/v1"
    assert response.json()["suites"] == ["auto-waiting", "locators", "timeouts"]


def test_startup_validates_suites(sessions):
    with TestClient(app) as started:
        assert started.get("/api/v1/health").status_code == 200


def test_health(client):
    data = client.get("/api/v1/health").json()
    assert data["status"] == "healthy"


def test_ready(client):
    data = client.get("/api/v1/health/ready").json()
    assert data["ready"] is True
    assert data["checks"]["suites_registered"] is True


def test_list_suites(client):
    data = client.get("/api/v1/suites").json()
    assert [s["name"] for s in data] == ["auto-waiting", "locators", "timeouts"]


def test_get_suite(client):
    data = client.get("/api/v1/suites/timeouts").json()
    assert len(data["tests"]) == 4
    assert data["tests"][0]["expect_failure"] is True


def test_get_unknown_suite(client):
    assert client.get("/api/v1/suites/nope").status_code == 404


def test_run_unknown_suite(client):
    response = client.post("/api/v1/execution/run", json={"suite": "nope"})
    assert response.status_code == 404


def test_run_bad_browser(client):
    response = client.post(
        "/api/v1/execution/run", json={"suite": "auto-waiting", "browser": "opera"}
    )
    assert response.status_code == 400


def test_run_rejects_negative_timeout(client):
    response = client.post(
        "/api/v1/execution/run",
        json={"suite": "auto-waiting", "timeouts": {"expect_timeout": -1}},
    )
    assert response.status_code == 422


def test_run_suite_and_history(client, sessions):
    response = client.post(
        "/api/v1/execution/run",
        json={
            "suite": "auto-waiting",
            "browser": "firefox",
            "timeouts": {"expect_timeout": 10000},
        },
    )

    assert response.status_code == 200
    run = response.json()
    assert run["status"] == "passed"
    assert run["passed"] == 2
    assert run["config"]["expect_timeout"] == 10000
    assert sessions[0].browser_type.value == "firefox"

    history = client.get("/api/v1/execution/history").json()
    assert [r["run_id"] for r in history] == [run["run_id"]]

    detail = client.get(f"/api/v1/execution/{run['run_id']}").json()
    assert detail["suite"] == "auto-waiting"
    assert [t["title"] for t in detail["test_results"]] == [
        "Auto-waiting demonstration on AJAX page",
        "Alternative waits",
    ]


def test_run_with_grep(client):
    response = client.post(
        "/api/v1/execution/run",
        json={"suite": "auto-waiting", "grep": "alternative"},
    )
    assert response.json()["total"] == 1


def test_unknown_run(client):
    assert client.get("/api/v1/execution/missing").status_code == 404


def test_browser_launch_failure_is_reported_as_error(client):
    @asynccontextmanager
    async def broken_session(options):
        raise RuntimeError("browser launch failed")
        yield

    app.dependency_overrides[execution.get_session_factory] = lambda: broken_session

    response = client.post(
        "/api/v1/execution/run",
        json={"suite": "timeouts", "timeouts": {"expect_timeout": 10000}},
    )

    assert response.status_code == 200
    run = response.json()
    assert run["status"] == "error"
    assert run["total"] == 0
    assert "browser launch failed" in run["error_message"]
    assert run["config"]["expect_timeout"] == 10000

    history = client.get("/api/v1/execution/history").json()
    assert [r["run_id"] for r in history] == [run["run_id"]]
