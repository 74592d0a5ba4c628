"""
Services Module

Transaction store client and the ledger service that drives refreshes and
mutations.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['store_client', 'ledger_service']
