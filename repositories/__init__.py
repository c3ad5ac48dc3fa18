"""
Collaborator interfaces for data access abstraction.
"""

from repositories.interfaces import (
    IHistoryProvider,
    IRatingStore,
    IResultSink,
    IRosterProvider,
)

__all__ = [
    "IRosterProvider",
    "IHistoryProvider",
    "IRatingStore",
    "IResultSink",
]
