"""
searchreplace - Bulk search/replace across database tables

Resolves which tables to scan from include/exclude rules, pages through
their rows in bounded batches, and writes back only the rows a
substitution actually changed.
"""

__version__ = "0.1.0"
__author__ = "Local Pipeline Team"


__all__ = [
    "SearchReplace",
    "ExecutionReport",
    "TableReport",
    "RunState",
    "SearchReplaceConfig",
    "load_config",
    "get_searchreplace_home",
]

from .search_replace import SearchReplace
from .report import ExecutionReport, TableReport, RunState
from .config import SearchReplaceConfig, load_config, get_searchreplace_home
