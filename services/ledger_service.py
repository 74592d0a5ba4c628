"""
Ledger Service

Request/response orchestration around the transaction store:
- refresh(): fetch a page, recompute the snapshot over the full collection,
  then swap it in. A failed refresh leaves the last good state in place.
- submit() / delete(): under the mutation lock, check write-time lot rules
  against the last good collection and its closed-lot set, send exactly
  one mutation, then refresh in full before releasing the lock.

Also turns raw form input into Transactions (user input errors are raised
here, before anything reaches the engine).

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from parsers.transaction import Transaction, TransactionType, Trader, parse_decimal
from calculators.engine import AnalyticsSnapshot, compute_snapshot
from calculators.matcher import check_can_record, check_can_delete, open_lots
from calculators.scenario import ScenarioResult, simulate, DEFAULT_OFFSETS
from core.config import LedgerConfig, load_config
from core.currency_policy import expected_domestic_amount
from core.errors import (
    MalformedResponseError,
    MutationInProgressError,
    UnresolvedLinkError,
    UserInputError,
    LotAlreadyClosedError,
)
from services.store_client import TransactionStoreClient
from utils.logging_config import setup_logger, log_snapshot_summary

logger = setup_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_transaction_id(now: datetime) -> str:
    """'t' + epoch milliseconds, the id scheme of records created by hand."""
    return f"t{int(now.timestamp() * 1000)}"


@dataclass
class TransactionForm:
    """Raw entry form values, as typed (amounts may carry thousands separators)."""

    trader: Optional[str] = None
    type: str = TransactionType.BUY.value
    currency: str = "USD"
    date: Union[str, date, datetime, None] = None
    foreign_amount: str = ""
    rate: str = ""
    fee: str = ""
    linked_acquisition_id: Optional[str] = None
    id: Optional[str] = None  # set when editing

    @classmethod
    def from_transaction(cls, txn: Transaction) -> 'TransactionForm':
        return cls(
            trader=txn.trader.value,
            type=txn.type.value,
            currency=txn.currency,
            date=txn.utc_timestamp().date().isoformat(),
            foreign_amount=str(txn.foreign_amount),
            rate=str(txn.rate),
            fee=str(txn.fee) if txn.fee else "",
            linked_acquisition_id=txn.linked_acquisition_id,
            id=txn.id,
        )


def _parse_form_date(value, now: datetime) -> datetime:
    if value is None or value == "":
        return datetime.combine(now.astimezone(timezone.utc).date(), time(0), tzinfo=timezone.utc)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time(0), tzinfo=timezone.utc)
    try:
        # A bare calendar date means midnight UTC of that day
        return datetime.combine(date.fromisoformat(str(value)[:10]), time(0), tzinfo=timezone.utc)
    except ValueError:
        raise UserInputError(f"Invalid date: {value!r}") from None


def _parse_form_number(label: str, value) -> Decimal:
    try:
        return parse_decimal(value)
    except ValueError:
        raise UserInputError(f"{label} is not a number: {value!r}") from None


def build_transaction(
    form: TransactionForm,
    lots_by_id: Optional[Dict[str, Transaction]] = None,
    now: Optional[datetime] = None
) -> Transaction:
    """
    Turn an entry form into a Transaction.

    - a trader must be chosen, and a sell must name the lot it closes
    - an empty sell amount defaults to the chosen lot's amount
    - the domestic amount is derived (gross +/- fee, whole units)

    Raises:
        UserInputError: on missing or unparsable input
    """
    now = now or _utcnow()
    lots_by_id = lots_by_id or {}

    if not form.trader:
        raise UserInputError("Select a trader")

    try:
        txn_type = TransactionType.normalize(form.type)
    except ValueError as e:
        raise UserInputError(str(e)) from e

    link = (form.linked_acquisition_id or "").strip() or None
    if txn_type == TransactionType.SELL and link is None:
        raise UserInputError("Select the buy lot this sale closes")
    if txn_type == TransactionType.BUY:
        link = None

    foreign_amount = _parse_form_number("Foreign amount", form.foreign_amount)
    if txn_type == TransactionType.SELL and foreign_amount == 0 and link in lots_by_id:
        foreign_amount = lots_by_id[link].foreign_amount

    rate = _parse_form_number("Rate", form.rate)
    fee = _parse_form_number("Fee", form.fee)

    if foreign_amount <= 0:
        raise UserInputError("Enter a positive foreign amount")
    if rate <= 0:
        raise UserInputError("Enter a positive rate")

    try:
        domestic_amount = expected_domestic_amount(
            foreign_amount, rate, form.currency, txn_type == TransactionType.BUY, fee
        )
        return Transaction(
            id=form.id or new_transaction_id(now),
            trader=form.trader,
            type=txn_type,
            timestamp=_parse_form_date(form.date, now),
            currency=form.currency,
            foreign_amount=foreign_amount,
            rate=rate,
            domestic_amount=domestic_amount,
            fee=fee,
            linked_acquisition_id=link,
        )
    except ValidationError as e:
        raise UserInputError(f"Invalid transaction: {e}") from e
    except ValueError as e:
        raise UserInputError(str(e)) from e


@dataclass
class LedgerState:
    """Last successfully refreshed view of the store."""

    page: int
    total_pages: int
    total_records: int
    records: List[Transaction]
    all_records: List[Transaction]
    snapshot: AnalyticsSnapshot
    fetched_at: datetime
    complete: bool = True  # False when the store only returned one page

    def records_by_id(self) -> Dict[str, Transaction]:
        return {t.id: t for t in self.all_records}


class LedgerService:
    """Keeps the last good LedgerState and routes mutations through the store."""

    def __init__(
        self,
        client: TransactionStoreClient,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.client = client
        self.config = config or load_config()
        self.clock = clock or _utcnow
        self.state: Optional[LedgerState] = None
        self._mutation_lock = threading.Lock()

    def refresh(self, page: Optional[int] = None) -> LedgerState:
        """
        Fetch a page and rebuild the snapshot over the whole collection.

        Store failures and integrity errors propagate; self.state is only
        replaced once the new snapshot is complete.
        """
        if page is None:
            page = self.state.page if self.state else 1

        now = self.clock()
        store_page = self.client.list_page(page)

        if store_page.all_records is not None:
            all_records = store_page.all_records
            snapshot = compute_snapshot(all_records, now=now, config=self.config)
            complete = True
            self._compare_with_server(snapshot, store_page.analytics)
        elif store_page.analytics is not None:
            logger.warning("Store omitted the full collection; using server analytics and the current page only")
            all_records = store_page.records
            snapshot = store_page.analytics
            complete = False
        else:
            raise MalformedResponseError("List response carries neither the full collection nor analytics")

        if self.state is not None and self.state.snapshot.fingerprint() == snapshot.fingerprint():
            logger.debug("Snapshot unchanged since last refresh")

        self.state = LedgerState(
            page=page,
            total_pages=store_page.total_pages,
            total_records=store_page.total_records,
            records=store_page.records,
            all_records=list(all_records),
            snapshot=snapshot,
            fetched_at=now,
            complete=complete,
        )
        log_snapshot_summary(logger, snapshot, name=f"Snapshot (page {page})")
        return self.state

    @staticmethod
    def _compare_with_server(local: AnalyticsSnapshot, server: Optional[AnalyticsSnapshot]):
        if server is None:
            return
        if local.closed_lot_ids != server.closed_lot_ids:
            logger.warning("Server closed-lot set differs from local matching")
        if abs(local.total_realized_pl - server.total_realized_pl) > 1:
            logger.warning(
                f"Server total P/L {server.total_realized_pl} differs from local {local.total_realized_pl}"
            )

    def _require_state(self) -> LedgerState:
        if self.state is None:
            return self.refresh(1)
        return self.state

    def available_lots(self, trader: Union[Trader, str], currency: Optional[str] = None) -> List[Transaction]:
        """Open lots a new sell (or the simulator) can pick from."""
        state = self._require_state()
        return open_lots(state.all_records, state.snapshot.closed_lot_ids, trader=trader, currency=currency)

    def edit_form(self, txn_id: str) -> TransactionForm:
        state = self._require_state()
        txn = state.records_by_id().get(txn_id)
        if txn is None:
            raise UserInputError(f"Unknown transaction {txn_id}")
        return TransactionForm.from_transaction(txn)

    def submit(self, form: TransactionForm) -> Transaction:
        """
        Create (form.id is None) or fully replace a transaction, then refresh.

        The mutation lock is held from the guard check through the refresh,
        so a concurrent write is refused rather than checked against a
        collection that is about to change.

        Raises:
            MutationInProgressError: another change is still in flight
            UserInputError: incomplete form
            LedgerIntegrityError subclasses: the write would break lot links
            StoreError subclasses: the store call failed
        """
        is_update = form.id is not None

        with self._exclusive("update" if is_update else "create"):
            state = self._require_state()
            txn = build_transaction(form, state.records_by_id(), now=self.clock())
            check_can_record(
                txn, state.all_records, is_update=is_update, closed_ids=state.snapshot.closed_lot_ids
            )

            if is_update:
                self.client.update(txn)
            else:
                self.client.create(txn)
            logger.info(f"{'Updated' if is_update else 'Created'} {txn!r}")

            self.refresh(state.page)
        return txn

    def delete(self, txn_id: str):
        """Delete a transaction (not a lot still closed by a sell), then refresh."""
        with self._exclusive("delete"):
            state = self._require_state()
            check_can_delete(txn_id, state.all_records, closed_ids=state.snapshot.closed_lot_ids)

            self.client.delete(txn_id)
            logger.info(f"Deleted {txn_id}")

            self.refresh(state.page)

    def simulate_lot(self, lot_id: str, offsets: Iterable[int] = DEFAULT_OFFSETS) -> ScenarioResult:
        """What-if band for one open lot of the current collection."""
        state = self._require_state()
        lot = state.records_by_id().get(lot_id)
        if lot is None or not lot.is_acquisition():
            raise UnresolvedLinkError(f"No buy lot with id {lot_id}")
        if state.snapshot.is_closed(lot_id):
            raise LotAlreadyClosedError(f"Lot {lot_id} is already closed")
        return simulate(lot, offsets)

    @contextmanager
    def _exclusive(self, action: str):
        """One mutation in flight at a time; a second one is refused, not queued."""
        if not self._mutation_lock.acquire(blocking=False):
            raise MutationInProgressError(f"Cannot {action}: another change is still in flight")
        try:
            yield
        finally:
            self._mutation_lock.release()
