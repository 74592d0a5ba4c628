"""
Ledger Integrity Validation

Checks a transaction collection before any analytics are derived from it.
ERROR issues block snapshot computation; WARNING issues travel with the
snapshot so a consumer can show them.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from parsers.transaction import Transaction
from core.currency_policy import expected_domestic_amount
from core.errors import LedgerIntegrityError, DuplicateTransactionIdError
from utils.logging_config import setup_logger

logger = setup_logger(__name__)

# Stored amounts are rounded to whole domestic units by the entry form
DOMESTIC_AMOUNT_TOLERANCE = Decimal(1)


class ValidationIssue:
    """Represents a data quality issue."""

    SEVERITY_ERROR = "ERROR"
    SEVERITY_WARNING = "WARNING"
    SEVERITY_INFO = "INFO"

    def __init__(self, severity: str, category: str, message: str, transaction: Optional[Transaction] = None):
        self.severity = severity
        self.category = category
        self.message = message
        self.transaction = transaction
        self.transaction_ref = transaction.id if transaction else None

    @property
    def is_error(self) -> bool:
        return self.severity == self.SEVERITY_ERROR

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            'severity': self.severity,
            'category': self.category,
            'message': self.message,
            'transaction_id': self.transaction_ref,
        }

    def __repr__(self) -> str:
        return f"ValidationIssue({self.severity}, {self.category}, {self.message!r})"


class LedgerValidator:
    """Validates value-level ledger rules (links are checked by the matcher)."""

    def __init__(self, strict_amounts: bool = False):
        self.strict_amounts = strict_amounts
        self.issues: List[ValidationIssue] = []

    def validate_all(self, transactions: Sequence[Transaction]) -> List[ValidationIssue]:
        """Run all validation checks."""
        self.issues = []

        self.check_duplicate_ids(transactions)
        self.check_positive_values(transactions)
        self.check_domestic_amounts(transactions)
        self.check_quantity_mismatch(transactions)

        return self.issues

    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    def warnings(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == ValidationIssue.SEVERITY_WARNING]

    def check_duplicate_ids(self, transactions: Sequence[Transaction]):
        seen = set()
        for trans in transactions:
            if trans.id in seen:
                self.issues.append(ValidationIssue(
                    ValidationIssue.SEVERITY_ERROR,
                    "Duplicate Id",
                    f"Transaction id {trans.id} appears more than once",
                    trans
                ))
            seen.add(trans.id)

    def check_positive_values(self, transactions: Sequence[Transaction]):
        for trans in transactions:
            if trans.foreign_amount <= 0:
                self.issues.append(ValidationIssue(
                    ValidationIssue.SEVERITY_ERROR,
                    "Non-Positive Amount",
                    f"{trans.id}: foreign amount must be positive, got {trans.foreign_amount}",
                    trans
                ))
            if trans.rate <= 0:
                self.issues.append(ValidationIssue(
                    ValidationIssue.SEVERITY_ERROR,
                    "Non-Positive Rate",
                    f"{trans.id}: rate must be positive, got {trans.rate}",
                    trans
                ))

    def check_domestic_amounts(self, transactions: Sequence[Transaction]):
        """Compare the stored domestic amount with the one implied by amount, rate and fee."""
        severity = ValidationIssue.SEVERITY_ERROR if self.strict_amounts else ValidationIssue.SEVERITY_WARNING

        for trans in transactions:
            if trans.foreign_amount <= 0 or trans.rate <= 0:
                continue  # already reported

            expected = expected_domestic_amount(
                trans.foreign_amount,
                trans.rate,
                trans.currency,
                trans.is_acquisition(),
                trans.fee
            )
            if abs(trans.domestic_amount - expected) > DOMESTIC_AMOUNT_TOLERANCE:
                self.issues.append(ValidationIssue(
                    severity,
                    "Domestic Amount",
                    f"{trans.id}: stored domestic amount {trans.domestic_amount} "
                    f"differs from recomputed {expected}",
                    trans
                ))

    def check_quantity_mismatch(self, transactions: Sequence[Transaction]):
        """A sell closes its whole lot; flag sells whose amount differs from the lot's."""
        by_id = {trans.id: trans for trans in transactions}

        for trans in transactions:
            if not trans.is_disposal() or trans.linked_acquisition_id is None:
                continue
            lot = by_id.get(trans.linked_acquisition_id)
            if lot is None or not lot.is_acquisition():
                continue  # reported by the matcher
            if lot.foreign_amount != trans.foreign_amount:
                self.issues.append(ValidationIssue(
                    ValidationIssue.SEVERITY_WARNING,
                    "Quantity Mismatch",
                    f"{trans.id}: sells {trans.foreign_amount} {trans.currency} "
                    f"but lot {lot.id} holds {lot.foreign_amount}; the lot is closed in full",
                    trans
                ))

    def get_summary(self) -> Dict[str, int]:
        """Count issues by severity."""
        summary = {
            ValidationIssue.SEVERITY_ERROR: 0,
            ValidationIssue.SEVERITY_WARNING: 0,
            ValidationIssue.SEVERITY_INFO: 0,
        }
        for issue in self.issues:
            summary[issue.severity] = summary.get(issue.severity, 0) + 1
        return summary

    def raise_for_errors(self):
        """Raise LedgerIntegrityError (or a more specific subclass) if any ERROR was found."""
        errors = self.errors()
        if not errors:
            return

        for issue in errors:
            logger.error(f"Integrity [{issue.category}] {issue.message}")

        if all(issue.category == "Duplicate Id" for issue in errors):
            raise DuplicateTransactionIdError("Duplicate transaction ids", errors)
        raise LedgerIntegrityError(f"{len(errors)} integrity error(s) in transaction collection", errors)
