"""
Transaction Store Client

HTTP+JSON client for the external transaction store (a spreadsheet-backed
web app). Shape of the contract:

- List:   GET  ?page=N&limit=M
          -> {status, records, analytics, totalRecords, allRecordsForFilter?}
- Create: POST {"action": "create", "data": <record>}
- Update: POST {"action": "update", "data": <record>}
- Delete: POST {"action": "delete", "id": <id>}

One request per call, no retries: the caller decides whether to try again.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from parsers.transaction import Transaction
from calculators.engine import AnalyticsSnapshot
from core.config import LedgerConfig, load_config
from core.errors import StoreUnavailableError, MalformedResponseError, StoreRejectedError
from utils.logging_config import setup_logger, get_perf_logger

logger = setup_logger(__name__)

FAILURE_STATUSES = {"error", "fail", "failed"}


@dataclass
class StorePage:
    """One page of the list response."""

    page: int
    page_size: int
    records: List[Transaction]
    total_records: int
    analytics: Optional[AnalyticsSnapshot] = None
    all_records: Optional[List[Transaction]] = None

    @property
    def total_pages(self) -> int:
        if self.total_records <= 0:
            return 1
        return -(-self.total_records // self.page_size)


@dataclass
class MutationResult:
    action: str
    txn_id: str
    payload: Dict[str, Any] = field(default_factory=dict)


class TransactionStoreClient:
    """
    Thin request/response client for the transaction store.

    Features:
    - Paged listing with the server-side analytics payload
    - Create / update / delete with full records
    - Store failures mapped to StoreError subclasses
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        config: Optional[LedgerConfig] = None
    ):
        config = config or load_config()
        self.base_url = base_url or config.store_url
        if not self.base_url:
            raise ValueError("Transaction store URL is not configured (set LEDGER_STORE_URL)")

        self.page_size = page_size or config.page_size
        self.timeout = timeout or config.http_timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "ExchangeLedger/1.0",
            "Accept": "application/json"
        })

    def _decode(self, response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except (ValueError, json.JSONDecodeError) as e:
            raise MalformedResponseError(f"Store returned non-JSON response: {e}") from e

        if not isinstance(payload, dict):
            raise MalformedResponseError(f"Store returned {type(payload).__name__}, expected an object")

        status = str(payload.get("status", "success")).lower()
        if status in FAILURE_STATUSES:
            message = payload.get("message") or payload.get("error") or "no details"
            raise StoreRejectedError(f"Store rejected request: {message}")

        return payload

    def _send(self, method: str, **kwargs) -> Dict[str, Any]:
        try:
            with get_perf_logger(logger, f"store {method}", threshold_ms=3000):
                response = self.session.request(method, self.base_url, timeout=self.timeout, **kwargs)
                response.raise_for_status()
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout talking to transaction store: {e}")
            raise StoreUnavailableError(f"Transaction store timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error talking to transaction store: {e}")
            raise StoreUnavailableError(f"Transaction store unreachable: {e}") from e

        return self._decode(response)

    @staticmethod
    def _parse_records(raw: Any, label: str) -> List[Transaction]:
        if not isinstance(raw, list):
            raise MalformedResponseError(f"'{label}' is not a list")
        try:
            return [Transaction.from_record(record) for record in raw]
        except (ValidationError, TypeError) as e:
            raise MalformedResponseError(f"Unparsable record in '{label}': {e}") from e

    def list_page(self, page: int = 1) -> StorePage:
        """
        Fetch one page of records plus the server-side analytics.

        Raises:
            StoreUnavailableError, MalformedResponseError, StoreRejectedError
        """
        if page < 1:
            raise ValueError(f"Page numbers start at 1, got {page}")

        payload = self._send("GET", params={"page": page, "limit": self.page_size})

        if "records" not in payload or "totalRecords" not in payload:
            raise MalformedResponseError("List response lacks 'records' or 'totalRecords'")

        records = self._parse_records(payload["records"], "records")

        all_records = None
        if payload.get("allRecordsForFilter") is not None:
            all_records = self._parse_records(payload["allRecordsForFilter"], "allRecordsForFilter")

        analytics = None
        if payload.get("analytics") is not None:
            try:
                analytics = AnalyticsSnapshot.from_dict(payload["analytics"])
            except (KeyError, ValueError, TypeError, ArithmeticError) as e:
                raise MalformedResponseError(f"Unparsable analytics payload: {e}") from e

        try:
            total_records = int(payload["totalRecords"])
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(f"Invalid totalRecords: {payload['totalRecords']!r}") from e

        logger.info(f"Fetched page {page}: {len(records)} of {total_records} records")

        return StorePage(
            page=page,
            page_size=self.page_size,
            records=records,
            total_records=total_records,
            analytics=analytics,
            all_records=all_records,
        )

    def _mutate(self, body: Dict[str, Any], txn_id: str) -> MutationResult:
        # Apps Script web apps read the raw body; a JSON string is what they expect
        payload = self._send("POST", data=json.dumps(body))
        logger.info(f"Store {body['action']} {txn_id} accepted")
        return MutationResult(action=body["action"], txn_id=txn_id, payload=payload)

    def create(self, txn: Transaction) -> MutationResult:
        return self._mutate({"action": "create", "data": txn.to_record()}, txn.id)

    def update(self, txn: Transaction) -> MutationResult:
        return self._mutate({"action": "update", "data": txn.to_record()}, txn.id)

    def delete(self, txn_id: str) -> MutationResult:
        return self._mutate({"action": "delete", "id": txn_id}, txn_id)
