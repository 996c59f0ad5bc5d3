"""
Finance Tracker - Core Package

The calculation core of a personal finance tracker: expenses, recurring
subscriptions, additional income, bills with period-based payments, and
money lent to people.

DESIGN PRINCIPLES:
1. Every total is derived from stored records, never stored itself
2. Fail early, fail visibly
3. No silent corrections
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
