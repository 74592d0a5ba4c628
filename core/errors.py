"""
Ledger Error Taxonomy

Three families of failures:
- Integrity errors: the transaction collection (or a candidate write) breaks
  a ledger rule. Snapshot computation is aborted, never coerced to zero.
- Store errors: the external transaction store could not be reached or
  answered with something unusable. Surfaced as a failed refresh, no retry.
- User input errors: a form is incomplete or unparsable. Raised before a
  Transaction is ever constructed.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from typing import List, Optional


class LedgerIntegrityError(Exception):
    """Raised when the transaction collection violates a ledger invariant."""

    def __init__(self, message: str, issues: Optional[List] = None):
        super().__init__(message)
        self.issues = list(issues or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.issues:
            return base
        details = "; ".join(issue.message for issue in self.issues)
        return f"{base}: {details}"


class UnresolvedLinkError(LedgerIntegrityError):
    """A sell names no lot, or names a lot that does not exist or is not a buy."""


class LinkMismatchError(LedgerIntegrityError):
    """A sell names a lot of a different trader or currency."""


class LotAlreadyClosedError(LedgerIntegrityError):
    """A lot is (or would be) closed by more than one sell."""


class LotInUseError(LedgerIntegrityError):
    """A closed lot would be deleted or changed in a way that breaks its sell."""


class DuplicateTransactionIdError(LedgerIntegrityError):
    """Two transactions share the same id."""


class StoreError(Exception):
    """Base class for transaction store failures."""


class StoreUnavailableError(StoreError):
    """The store could not be reached (connection, timeout, HTTP error)."""


class MalformedResponseError(StoreError):
    """The store answered with a payload that cannot be interpreted."""


class StoreRejectedError(StoreError):
    """The store understood the request but reported a failure status."""


class MutationInProgressError(StoreError):
    """A create/update/delete was submitted while another one is in flight."""


class UserInputError(ValueError):
    """A form is missing required input or carries unparsable values."""
