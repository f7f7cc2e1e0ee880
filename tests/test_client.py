"""Tests for resharper_sonar/client.py"""

import pytest
import requests

from resharper_sonar.client import (
    PAGE_SIZE,
    RULE_FIELDS,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    SonarClient,
    SonarClientError,
)

BASE = "https://sonar.example.com"
RULES = f"{BASE}/api/rules/search"


@pytest.fixture
def client() -> SonarClient:
    return SonarClient(url=BASE + "/", token="squ_test")


def _rule(n: int) -> dict:
    return {"key": f"resharper-cs:Rule{n}", "internalKey": f"ReSharperInspectCode#Rule{n}"}


# ---------------------------------------------------------------------------
# search_rules: request
# ---------------------------------------------------------------------------

def test_search_rules_queries_repository_fields(client, requests_mock):
    adapter = requests_mock.get(RULES, json={"rules": [_rule(1)], "total": 1})
    client.search_rules("resharper-vbnet")

    qs = adapter.last_request.qs
    assert qs["repositories"] == ["resharper-vbnet"]
    assert qs["f"] == [RULE_FIELDS.lower()]
    assert qs["ps"] == [str(PAGE_SIZE)]
    assert qs["p"] == ["1"]


def test_search_rules_sends_token_and_user_agent(client, requests_mock):
    adapter = requests_mock.get(RULES, json={"rules": [], "total": 0})
    client.search_rules("resharper-cs")

    headers = adapter.last_request.headers
    assert headers["Authorization"].startswith("Basic ")
    assert headers["User-Agent"].startswith("resharper-sonar/")


# ---------------------------------------------------------------------------
# search_rules: paging
# ---------------------------------------------------------------------------

def test_search_rules_follows_top_level_total(client, requests_mock):
    adapter = requests_mock.get(RULES, [
        {"json": {"rules": [_rule(n) for n in range(PAGE_SIZE)], "total": PAGE_SIZE + 2}},
        {"json": {"rules": [_rule(PAGE_SIZE), _rule(PAGE_SIZE + 1)], "total": PAGE_SIZE + 2}},
    ])
    rules = client.search_rules("resharper-cs")

    assert len(rules) == PAGE_SIZE + 2
    assert adapter.call_count == 2
    assert adapter.request_history[1].qs["p"] == ["2"]


def test_search_rules_prefers_paging_block(client, requests_mock):
    adapter = requests_mock.get(RULES, json={
        "rules": [_rule(1)], "total": 999, "paging": {"pageIndex": 1, "total": 1},
    })
    assert client.search_rules("resharper-cs") == [_rule(1)]
    assert adapter.call_count == 1


def test_search_rules_without_total_reads_one_page(client, requests_mock):
    adapter = requests_mock.get(RULES, json={"rules": [_rule(1), _rule(2)]})
    assert len(client.search_rules("resharper-cs")) == 2
    assert adapter.call_count == 1


def test_search_rules_stops_on_empty_page(client, requests_mock):
    # server claims more rules than it returns
    adapter = requests_mock.get(RULES, [
        {"json": {"rules": [_rule(1)], "total": 40}},
        {"json": {"rules": [], "total": 40}},
    ])
    assert client.search_rules("resharper-cs") == [_rule(1)]
    assert adapter.call_count == 2


def test_search_rules_unknown_repository_is_empty(client, requests_mock):
    requests_mock.get(RULES, json={"rules": [], "total": 0})
    assert client.search_rules("resharper-fsharp") == []


# ---------------------------------------------------------------------------
# search_rules: failures
# ---------------------------------------------------------------------------

def test_rejected_token_raises_authentication_error(client, requests_mock):
    requests_mock.get(RULES, status_code=401)
    with pytest.raises(AuthenticationError, match="sonar.example.com"):
        client.search_rules("resharper-cs")


def test_missing_rules_api_raises_not_found(client, requests_mock):
    requests_mock.get(RULES, status_code=404)
    with pytest.raises(NotFoundError, match="/api/rules/search"):
        client.search_rules("resharper-cs")


def test_server_error_raises_client_error(client, requests_mock):
    requests_mock.get(RULES, status_code=503, text="Maintenance")
    with pytest.raises(SonarClientError, match="503"):
        client.search_rules("resharper-cs")


def test_error_on_second_page_propagates(client, requests_mock):
    requests_mock.get(RULES, [
        {"json": {"rules": [_rule(1)], "total": 2}},
        {"status_code": 500, "text": "boom"},
    ])
    with pytest.raises(SonarClientError, match="500"):
        client.search_rules("resharper-cs")


def test_timeout_raises_network_error(client, requests_mock):
    requests_mock.get(RULES, exc=requests.exceptions.Timeout)
    with pytest.raises(NetworkError, match="timed out"):
        client.search_rules("resharper-cs")


def test_connection_error_raises_network_error(client, requests_mock):
    requests_mock.get(RULES, exc=requests.exceptions.ConnectionError)
    with pytest.raises(NetworkError, match="Unable to reach"):
        client.search_rules("resharper-cs")
