"""Database client and repository layer."""

from src.db.query_executor import QueryTimer, timed_query
from src.db.repository import CoachingRepository

__all__ = [
    "QueryTimer",
    "timed_query",
    "CoachingRepository",
]
