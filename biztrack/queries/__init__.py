"""Report queries."""

from biztrack.queries.executor import ReportQueryExecutor

__all__ = ["ReportQueryExecutor"]
