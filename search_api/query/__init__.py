"""
Query module: keyword parsing, condition trees, results and execution.

Provides the Query object that collects keys, conditions, sorts and
options, and runs them through processors and the index's backend.
"""

from .keyword_parser import KeywordGroup, PARSE_MODES, parse_keys
from .condition_group import Condition, ConditionGroup, OPERATORS
from .result_set import ResultItem, ResultSet
from .results_cache import ResultsCache, get_results_cache
from .query import Query

__all__ = [
    "KeywordGroup",
    "PARSE_MODES",
    "parse_keys",
    "Condition",
    "ConditionGroup",
    "OPERATORS",
    "ResultItem",
    "ResultSet",
    "ResultsCache",
    "get_results_cache",
    "Query"
]
