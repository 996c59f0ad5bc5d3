"""Query execution package."""

from finance_tracker.queries.executor import FinanceQueryExecutor

__all__ = ["FinanceQueryExecutor"]
