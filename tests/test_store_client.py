"""
Unit Tests for the Transaction Store Client

The HTTP session is replaced with a scripted fake, so no request leaves the
process.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import json
import pytest
from decimal import Decimal

import requests

from core.config import LedgerConfig
from core.errors import MalformedResponseError, StoreRejectedError, StoreUnavailableError
from services.store_client import StorePage, TransactionStoreClient
from factories import make_buy, make_sell, at

STORE_URL = "https://store.example/exec"


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=None):
        self.payload = payload
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.text is not None:
            return json.loads(self.text)
        return self.payload


class FakeSession:
    """Records every request and answers from a queue of responses or exceptions."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _records(*txns):
    return [txn.to_record() for txn in txns]


@pytest.fixture
def config():
    return LedgerConfig(store_url=STORE_URL, page_size=2, http_timeout=5.0)


def _client(session, config):
    return TransactionStoreClient(session=session, config=config)


class TestConstruction:
    def test_requires_url(self):
        with pytest.raises(ValueError):
            TransactionStoreClient(session=FakeSession(), config=LedgerConfig())

    def test_explicit_arguments_win(self, config):
        client = TransactionStoreClient(
            base_url="https://other.example", page_size=10, timeout=1.0, session=FakeSession(), config=config
        )
        assert client.base_url == "https://other.example"
        assert client.page_size == 10
        assert client.timeout == 1.0

    def test_session_headers(self, config):
        session = FakeSession()
        _client(session, config)
        assert session.headers["Accept"] == "application/json"


class TestListPage:
    @pytest.fixture
    def ledger(self):
        return [
            make_buy("b1", when=at(2024, 1, 10)),
            make_sell("s1", "b1", rate="1320", when=at(2024, 2, 20)),
            make_buy("b2", currency="JPY", amount="10000", rate="900", when=at(2024, 2, 21)),
        ]

    def test_full_payload(self, config, ledger):
        session = FakeSession(FakeResponse({
            "status": "success",
            "records": _records(*ledger[:2]),
            "totalRecords": 3,
            "allRecordsForFilter": _records(*ledger),
            "analytics": {
                "totalPL": 2000,
                "currentMonthPL": 2000,
                "monthlyPL": {"2024-02": 2000},
                "holdings": {"JPY": 10000},
                "avgBuyPrices": {"JPY": 900},
                "limitUsage": {"daily": {"SW": 90000, "HR": 0}, "monthly": {"SW": 90000, "HR": 0}},
                "soldBuyIds": ["b1"],
            },
        }))
        page = _client(session, config).list_page(1)

        assert isinstance(page, StorePage)
        assert [t.id for t in page.records] == ["b1", "s1"]
        assert [t.id for t in page.all_records] == ["b1", "s1", "b2"]
        assert page.total_records == 3
        assert page.total_pages == 2
        assert page.analytics.total_realized_pl == Decimal("2000")
        assert page.analytics.closed_lot_ids == frozenset({"b1"})

    def test_request_shape(self, config):
        session = FakeSession(FakeResponse({"records": [], "totalRecords": 0}))
        _client(session, config).list_page(3)

        method, url, kwargs = session.calls[0]
        assert method == "GET"
        assert url == STORE_URL
        assert kwargs["params"] == {"page": 3, "limit": 2}
        assert kwargs["timeout"] == 5.0

    def test_optional_sections_absent(self, config):
        session = FakeSession(FakeResponse({"records": [], "totalRecords": 0}))
        page = _client(session, config).list_page(1)

        assert page.all_records is None
        assert page.analytics is None
        assert page.total_pages == 1

    def test_page_must_be_positive(self, config):
        with pytest.raises(ValueError):
            _client(FakeSession(), config).list_page(0)

    def test_missing_keys(self, config):
        session = FakeSession(FakeResponse({"records": []}))
        with pytest.raises(MalformedResponseError):
            _client(session, config).list_page(1)

    def test_unparsable_record(self, config):
        session = FakeSession(FakeResponse({
            "records": [{"id": "x", "trader": "ZZ", "type": "buy"}],
            "totalRecords": 1,
        }))
        with pytest.raises(MalformedResponseError):
            _client(session, config).list_page(1)

    def test_records_not_a_list(self, config):
        session = FakeSession(FakeResponse({"records": {"a": 1}, "totalRecords": 1}))
        with pytest.raises(MalformedResponseError):
            _client(session, config).list_page(1)

    def test_bad_analytics(self, config):
        session = FakeSession(FakeResponse({"records": [], "totalRecords": 0, "analytics": {"totalPL": "n/a"}}))
        with pytest.raises(MalformedResponseError):
            _client(session, config).list_page(1)

    def test_non_json(self, config):
        session = FakeSession(FakeResponse(text="<html>Sign in</html>"))
        with pytest.raises(MalformedResponseError):
            _client(session, config).list_page(1)

    def test_non_object(self, config):
        session = FakeSession(FakeResponse([1, 2, 3]))
        with pytest.raises(MalformedResponseError):
            _client(session, config).list_page(1)

    def test_rejected(self, config):
        session = FakeSession(FakeResponse({"status": "error", "message": "sheet locked"}))
        with pytest.raises(StoreRejectedError) as exc_info:
            _client(session, config).list_page(1)
        assert "sheet locked" in str(exc_info.value)


class TestTransportFailures:
    @pytest.mark.parametrize("failure", [
        requests.exceptions.ConnectionError("refused"),
        requests.exceptions.Timeout("slow"),
    ])
    def test_unreachable(self, config, failure):
        with pytest.raises(StoreUnavailableError):
            _client(FakeSession(failure), config).list_page(1)

    def test_http_error(self, config):
        with pytest.raises(StoreUnavailableError):
            _client(FakeSession(FakeResponse({}, status_code=502)), config).list_page(1)

    def test_no_retry(self, config):
        session = FakeSession(requests.exceptions.ConnectionError("refused"), FakeResponse({}))
        with pytest.raises(StoreUnavailableError):
            _client(session, config).list_page(1)
        assert len(session.calls) == 1


class TestMutations:
    def test_create(self, config):
        session = FakeSession(FakeResponse({"status": "success"}))
        buy = make_buy("t1704855600000")
        result = _client(session, config).create(buy)

        method, _, kwargs = session.calls[0]
        body = json.loads(kwargs["data"])
        assert method == "POST"
        assert body == {"action": "create", "data": buy.to_record()}
        assert result.action == "create"
        assert result.txn_id == "t1704855600000"

    def test_update(self, config):
        session = FakeSession(FakeResponse({"status": "success"}))
        sell = make_sell("s1", "b1")
        _client(session, config).update(sell)

        body = json.loads(session.calls[0][2]["data"])
        assert body["action"] == "update"
        assert body["data"]["linked_buy_id"] == "b1"

    def test_delete(self, config):
        session = FakeSession(FakeResponse({"status": "success"}))
        _client(session, config).delete("b1")

        assert json.loads(session.calls[0][2]["data"]) == {"action": "delete", "id": "b1"}

    def test_rejected_mutation(self, config):
        session = FakeSession(FakeResponse({"status": "failed", "error": "id exists"}))
        with pytest.raises(StoreRejectedError):
            _client(session, config).create(make_buy("b1"))
