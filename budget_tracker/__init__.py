"""
Budget Tracker - Source Package

A personal finance tracker built around one monthly ledger.
Expenses are entered once under the month they were created; recurring
ones are projected into every later month until they are stopped.

DESIGN PRINCIPLES:
1. The ledger is the only source of truth
2. Month views are always re-derived, never stored
3. Invalid input changes nothing
4. Every mutation is audited and persisted as a full snapshot
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Tracker Team"
