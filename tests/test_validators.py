"""
Unit Tests for Ledger Integrity Validation

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import pytest

from calculators.validators import LedgerValidator, ValidationIssue
from core.errors import DuplicateTransactionIdError, LedgerIntegrityError
from factories import make_buy, make_sell, at


class TestLedgerValidator:
    @pytest.fixture
    def validator(self):
        return LedgerValidator()

    def test_clean_ledger(self, validator, usd_round_trip):
        assert validator.validate_all(usd_round_trip) == []
        validator.raise_for_errors()

    def test_summary_counts(self, validator):
        txns = [
            make_buy("b1", amount="0", domestic="0"),
            make_buy("b2", amount="100", rate="1300", domestic="1"),
            make_sell("s1", "b2", amount="50", when=at(2024, 2, 1)),
        ]
        validator.validate_all(txns)

        assert validator.get_summary() == {"ERROR": 1, "WARNING": 2, "INFO": 0}
        assert {w.category for w in validator.warnings()} == {"Domestic Amount", "Quantity Mismatch"}

    def test_duplicates_only(self, validator):
        validator.validate_all([make_buy("b1"), make_buy("b1")])
        with pytest.raises(DuplicateTransactionIdError):
            validator.raise_for_errors()

    def test_mixed_errors(self, validator):
        validator.validate_all([make_buy("b1"), make_buy("b1", rate="0", domestic="0")])
        with pytest.raises(LedgerIntegrityError) as exc_info:
            validator.raise_for_errors()
        assert type(exc_info.value) is LedgerIntegrityError
        assert len(exc_info.value.issues) == 2

    def test_strict_amounts(self):
        validator = LedgerValidator(strict_amounts=True)
        validator.validate_all([make_buy("b1", amount="100", rate="1300", domestic="1")])
        assert [issue.severity for issue in validator.issues] == [ValidationIssue.SEVERITY_ERROR]

    def test_issue_as_dict(self):
        issue = ValidationIssue(ValidationIssue.SEVERITY_WARNING, "Domestic Amount", "off by 5", make_buy("b1"))
        assert issue.as_dict() == {
            "severity": "WARNING",
            "category": "Domestic Amount",
            "message": "off by 5",
            "transaction_id": "b1",
        }
        assert not issue.is_error
