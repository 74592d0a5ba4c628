"""
Parsers Module

Ledger transaction model and wire-record parsing.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['transaction']
