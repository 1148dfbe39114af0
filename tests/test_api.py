import pytest
from fastapi.testclient import TestClient

from coderunner.api.app import create_app


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def test_health_and_languages(client):
    assert client.get("/health").json() == {"ok": True}
    assert "python" in client.get("/languages").json()["languages"]


def test_execute_hello(client, leftovers):
    r = client.post("/", json={"code": "print('hello')", "language": "python", "input": ""})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["verdict"] == "Executed"
    assert body["output"].strip() == "hello"
    assert body["memoryUsedBytes"] == 0
    assert body["executionTimeMs"] > 0
    assert leftovers() == []


def test_execute_alias_route_and_caller_header(client):
    r = client.post(
        "/execute",
        json={"code": "print(input())", "language": "python", "input": "ping"},
        headers={"X-Caller-Id": "user-7"},
    )
    assert r.json()["output"].strip() == "ping"


@pytest.mark.parametrize(
    "payload",
    [
        {"language": "python"},
        {"code": "print(1)"},
        {"code": "print(1)", "language": "brainfuck"},
    ],
)
def test_bad_request(client, payload):
    r = client.post("/", json=payload)
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["verdict"] == "Bad Request"


def test_runtime_error_hides_paths(client, settings):
    r = client.post("/", json={"code": "raise ValueError('bad')", "language": "python"})
    body = r.json()
    assert r.status_code == 200
    assert body["verdict"] == "Runtime Error"
    assert "ValueError: bad" in body["error"]
    assert str(settings.sandbox_dir) not in body["error"]


def test_submit_stops_at_first_failure(client):
    cases = [{"input": str(i), "expectedOutput": str(i * 2)} for i in range(1, 6)]
    cases[2]["expectedOutput"] = "999"
    r = client.post(
        "/submit",
        json={"code": "print(int(input()) * 2)", "language": "python", "testCases": cases},
    )
    body = r.json()
    assert body["verdict"] == "Wrong Answer"
    assert body["casesRun"] == 3
    assert body["failedTestCase"]["index"] == 3
    assert body["failedTestCase"]["actualOutput"] == "6"


def test_submit_accepted(client):
    cases = [{"input": "2 3", "expectedOutput": "5\n"}]
    r = client.post(
        "/submit",
        json={"code": "print(sum(map(int, input().split())))", "language": "python", "testCases": cases},
    )
    assert r.json()["verdict"] == "Accepted"


def test_run_against_sample(client):
    r = client.post(
        "/run",
        json={
            "code": "print(int(input()) + 1)",
            "language": "python",
            "sample": {"input": "1", "expectedOutput": "2"},
        },
    )
    body = r.json()
    assert body["verdict"] == "Accepted"
    assert body["failedTestCase"]["passed"] is True


def test_rate_limit_per_client(settings):
    limited = settings.model_copy(update={"rate_limit_max": 2, "rate_limit_window_s": 900})
    with TestClient(create_app(limited)) as c:
        payload = {"code": "print(1)", "language": "python"}
        assert c.post("/", json=payload).status_code == 200
        assert c.post("/execute", json=payload).status_code == 200
        r = c.post("/", json=payload)
        assert r.status_code == 429
        assert r.json() == {"detail": "Too Many Requests"}
        # health không bị tính
        assert c.get("/health").status_code == 200
