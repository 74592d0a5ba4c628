"""
Calculators Module

The analytics pipeline: validation, lot matching, realized P/L, holdings,
monthly aggregation, limit usage, scenarios and the snapshot engine.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = [
    'validators', 'matcher', 'pl_calculator', 'holdings', 'aggregator',
    'limits', 'scenario', 'engine', 'reporting',
]
