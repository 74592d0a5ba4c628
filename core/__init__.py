"""
Core Kernel Module

Foundational pieces shared by the calculators and services.

Components:
- currency_policy: per-currency quoting and fee rules
- config: environment-driven deployment settings
- errors: integrity / store / user input exception taxonomy
- hashing: canonical JSON and SHA256 snapshot fingerprints

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['currency_policy', 'config', 'errors', 'hashing']
