"""
Finance Tracker - Source Package

A personal finance tracker: monthly salary, itemised monthly expenses,
balances and spending analytics, for one or several users.

DESIGN PRINCIPLES:
1. Validate before anything reaches storage
2. Fail early, fail visibly
3. Totals are derived from items, never typed in
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
