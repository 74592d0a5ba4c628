"""
Lot Matcher - Explicit Sell-to-Buy Linkage

Every sell names the buy lot it closes through linked_acquisition_id. The
matcher resolves those links, never infers one (no FIFO/LIFO fallback), and
derives the closed-lot set. A lot can be closed by at most one sell.

The same rules are exposed as write-time preconditions
(check_can_record / check_can_delete) so a bad link is rejected before it
reaches the store.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from parsers.transaction import Transaction, Trader
from calculators.validators import ValidationIssue
from core.errors import (
    LedgerIntegrityError,
    UnresolvedLinkError,
    LinkMismatchError,
    LotAlreadyClosedError,
    LotInUseError,
    DuplicateTransactionIdError,
)
from utils.logging_config import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class LotMatch:
    """Resolved linkage: sell id -> (sell, buy), plus the closed-lot set."""

    links: Dict[str, tuple] = field(default_factory=dict)
    closed_lot_ids: FrozenSet[str] = frozenset()

    def lot_for(self, sell_id: str) -> Transaction:
        return self.links[sell_id][1]

    def pairs(self) -> List[tuple]:
        """(sell, buy) pairs ordered by sell timestamp, then id."""
        return sorted(self.links.values(), key=lambda pair: (pair[0].timestamp, pair[0].id))


def _link_issue(category: str, message: str, sell: Transaction) -> ValidationIssue:
    return ValidationIssue(ValidationIssue.SEVERITY_ERROR, category, message, sell)


def _check_link(sell: Transaction, by_id: Dict[str, Transaction]) -> Optional[ValidationIssue]:
    """Return the problem with one sell's link, or None if it resolves cleanly."""
    lot_id = sell.linked_acquisition_id
    if lot_id is None:
        return _link_issue("Unresolved Link", f"Sell {sell.id} does not name the lot it closes", sell)

    lot = by_id.get(lot_id)
    if lot is None:
        return _link_issue("Unresolved Link", f"Sell {sell.id} closes unknown lot {lot_id}", sell)
    if not lot.is_acquisition():
        return _link_issue("Unresolved Link", f"Sell {sell.id} links to {lot_id}, which is not a buy", sell)
    if lot.trader != sell.trader:
        return _link_issue(
            "Link Mismatch",
            f"Sell {sell.id} by {sell.trader.value} closes lot {lot_id} of {lot.trader.value}",
            sell
        )
    if lot.currency != sell.currency:
        return _link_issue(
            "Link Mismatch",
            f"Sell {sell.id} in {sell.currency} closes {lot.currency} lot {lot_id}",
            sell
        )
    return None


def _raise_for(issues: List[ValidationIssue]):
    categories = {issue.category for issue in issues}
    if categories == {"Unresolved Link"}:
        raise UnresolvedLinkError("Unresolved lot links", issues)
    if categories == {"Link Mismatch"}:
        raise LinkMismatchError("Lot links across traders or currencies", issues)
    if categories == {"Double Closure"}:
        raise LotAlreadyClosedError("Lots closed more than once", issues)
    raise LedgerIntegrityError("Invalid lot links", issues)


def match_disposals(transactions: Sequence[Transaction]) -> LotMatch:
    """
    Resolve every sell to the buy it closes.

    Raises:
        LedgerIntegrityError (or a subclass): if any sell has a missing,
            dangling, mismatched or duplicate link. All problems are
            collected before raising; nothing is partially matched.
    """
    by_id = {txn.id: txn for txn in transactions}
    links: Dict[str, tuple] = {}
    closed_by: Dict[str, Transaction] = {}
    issues: List[ValidationIssue] = []

    sells = sorted((t for t in transactions if t.is_disposal()), key=lambda t: (t.timestamp, t.id))

    for sell in sells:
        issue = _check_link(sell, by_id)
        if issue is not None:
            issues.append(issue)
            continue

        lot_id = sell.linked_acquisition_id
        if lot_id in closed_by:
            issues.append(_link_issue(
                "Double Closure",
                f"Lot {lot_id} is closed by both {closed_by[lot_id].id} and {sell.id}",
                sell
            ))
            continue

        closed_by[lot_id] = sell
        links[sell.id] = (sell, by_id[lot_id])

    if issues:
        for issue in issues:
            logger.error(f"Matcher [{issue.category}] {issue.message}")
        _raise_for(issues)

    logger.debug(f"Matched {len(links)} sells to lots")
    return LotMatch(links=links, closed_lot_ids=frozenset(closed_by))


def closed_lot_ids(transactions: Iterable[Transaction]) -> FrozenSet[str]:
    """Ids referenced by any sell (no validation)."""
    return frozenset(
        t.linked_acquisition_id for t in transactions
        if t.is_disposal() and t.linked_acquisition_id is not None
    )


def open_lots(
    transactions: Iterable[Transaction],
    closed_ids: Iterable[str],
    trader: Optional[Trader] = None,
    currency: Optional[str] = None
) -> List[Transaction]:
    """Buys not yet closed, optionally for one trader/currency, oldest first."""
    closed = set(closed_ids)
    lots = [
        t for t in transactions
        if t.is_acquisition()
        and t.id not in closed
        and (trader is None or t.trader == Trader.normalize(trader))
        and (currency is None or t.currency == currency.upper())
    ]
    return sorted(lots, key=lambda t: (t.timestamp, t.id))


def check_can_record(
    candidate: Transaction,
    transactions: Sequence[Transaction],
    is_update: bool = False,
    closed_ids: Optional[Iterable[str]] = None
):
    """
    Precondition for creating or updating a transaction.

    On create the id must be new; on update it must exist and the record is
    checked as if it already replaced the stored one.

    Args:
        candidate: The record about to be written
        transactions: The known collection (may be a single page)
        is_update: Replace an existing record instead of adding one
        closed_ids: Lot ids known to be closed beyond what `transactions`
            shows, e.g. the server's closed-lot set when only one page of
            records is available

    Raises:
        DuplicateTransactionIdError, UnresolvedLinkError, LinkMismatchError,
        LotAlreadyClosedError, LotInUseError
    """
    by_id = {t.id: t for t in transactions}
    existing = by_id.get(candidate.id)

    if not is_update and existing is not None:
        issue = _link_issue("Duplicate Id", f"Transaction id {candidate.id} already exists", candidate)
        raise DuplicateTransactionIdError(issue.message, [issue])
    if is_update and existing is None:
        issue = _link_issue("Unresolved Link", f"Cannot update unknown transaction {candidate.id}", candidate)
        raise UnresolvedLinkError(issue.message, [issue])

    others = [t for t in transactions if t.id != candidate.id]

    closed = set(closed_lot_ids(others))
    if closed_ids is not None:
        known = set(closed_ids)
        # The record being replaced no longer closes its old lot
        if existing is not None and existing.is_disposal():
            known.discard(existing.linked_acquisition_id)
        closed |= known

    if existing is not None and existing.is_acquisition() and existing.id in closed:
        breaks_link = (
            not candidate.is_acquisition()
            or candidate.trader != existing.trader
            or candidate.currency != existing.currency
        )
        if breaks_link:
            issue = _link_issue(
                "Lot In Use",
                f"Lot {existing.id} is closed by a sell; its type, trader and currency are fixed",
                candidate
            )
            raise LotInUseError(issue.message, [issue])

    if not candidate.is_disposal():
        return

    issue = _check_link(candidate, {t.id: t for t in others})
    if issue is not None:
        if issue.category == "Link Mismatch":
            raise LinkMismatchError(issue.message, [issue])
        raise UnresolvedLinkError(issue.message, [issue])

    if candidate.linked_acquisition_id in closed:
        issue = _link_issue(
            "Double Closure",
            f"Lot {candidate.linked_acquisition_id} is already closed",
            candidate
        )
        raise LotAlreadyClosedError(issue.message, [issue])


def check_can_delete(
    txn_id: str,
    transactions: Sequence[Transaction],
    closed_ids: Optional[Iterable[str]] = None
):
    """
    Precondition for deleting a transaction: a closed lot cannot be removed
    while its sell still references it.

    Args:
        closed_ids: Lot ids known to be closed beyond what `transactions` shows

    Raises:
        UnresolvedLinkError: unknown id
        LotInUseError: the id is a lot closed by an existing sell
    """
    target = next((t for t in transactions if t.id == txn_id), None)
    if target is None:
        issue = ValidationIssue(ValidationIssue.SEVERITY_ERROR, "Unresolved Link", f"Cannot delete unknown transaction {txn_id}")
        raise UnresolvedLinkError(issue.message, [issue])

    closers = [t for t in transactions if t.is_disposal() and t.linked_acquisition_id == txn_id]
    if closers or (target.is_acquisition() and txn_id in set(closed_ids or ())):
        closer = closers[0].id if closers else "a sell"
        issue = _link_issue(
            "Lot In Use",
            f"Lot {txn_id} is closed by {closer}; delete the sell first",
            target
        )
        raise LotInUseError(issue.message, [issue])
