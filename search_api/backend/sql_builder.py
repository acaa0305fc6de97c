"""
Translation of queries into SQLite FTS5 and SQL fragments.

Keyword groups become FTS5 MATCH expressions; condition groups become
WHERE clauses over the JSON field data of the item table.
"""

from typing import Iterable, List, Optional, Tuple

from ..core import SearchError
from ..query.condition_group import Condition, ConditionGroup
from ..query.keyword_parser import KeywordGroup

ID_FIELD = "search_api_id"
LANGUAGE_FIELD = "search_api_language"
RELEVANCE_FIELD = "search_api_relevance"

SPECIAL_COLUMNS = {
    ID_FIELD: "i.item_id",
    LANGUAGE_FIELD: "i.language",
}

NEGATED_OPERATORS = {
    "<>": "=",
    "NOT IN": "IN",
    "NOT BETWEEN": "BETWEEN",
}


def quote_term(term: str) -> str:
    """Quote a term as an FTS5 string, so it matches as a phrase."""
    return '"' + term.replace('"', '""') + '"'


def build_match_expression(keys, fields: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Build the FTS5 MATCH expression for a query's keys.

    Args:
        keys: Parsed keys: None, a raw string ("direct" mode, passed
              unchanged) or a KeywordGroup.
        fields: Columns to restrict matching to, or None for all.

    Returns:
        The expression, or None if there is nothing to match.

    Raises:
        SearchError: If a negated group has no positive terms to apply to.
    """
    if keys is None:
        return None

    if isinstance(keys, KeywordGroup):
        if keys.negation:
            raise SearchError("Negated search keys need at least one positive term")
        expression = _group_expression(keys)
    else:
        expression = str(keys).strip() or None

    if expression and fields is not None:
        expression = "{" + " ".join(fields) + "} : (" + expression + ")"

    return expression


def _group_expression(group: KeywordGroup) -> Optional[str]:
    positive = []
    negative = []

    for item in group:
        if isinstance(item, KeywordGroup):
            nested = _group_expression(item)
            if nested:
                (negative if item.negation else positive).append(f"({nested})")
        elif item:
            positive.append(quote_term(item))

    if not positive:
        # FTS5 has no unary NOT.
        return None

    expression = f" {group.conjunction.upper()} ".join(positive)
    if negative:
        if len(positive) > 1:
            expression = f"({expression})"
        for term in negative:
            expression += f" NOT {term}"

    return expression


def build_condition_sql(group: ConditionGroup) -> Tuple[str, list]:
    """
    Build a WHERE fragment for a condition tree.

    Returns:
        Tuple of (SQL fragment, parameters). The fragment is empty for an
        empty tree.
    """
    parts = []
    params = []

    for child in group.get_conditions():
        if isinstance(child, ConditionGroup):
            sql, child_params = build_condition_sql(child)
        else:
            sql, child_params = _condition_sql(child)
        if sql:
            parts.append(f"({sql})")
            params.extend(child_params)

    return f" {group.get_conjunction()} ".join(parts), params


def _condition_sql(condition: Condition) -> Tuple[str, list]:
    if condition.field in SPECIAL_COLUMNS:
        return _compare(SPECIAL_COLUMNS[condition.field], condition.operator, condition.value)

    # Multi-valued fields match if any of their values does.
    path = _json_path(condition.field)
    values = "SELECT 1 FROM json_each(i.data, ?) WHERE"

    if condition.value is None and condition.operator in ("=", "<>"):
        exists = "NOT EXISTS" if condition.operator == "=" else "EXISTS"
        return f"{exists} ({values} value IS NOT NULL)", [path]

    if condition.operator in NEGATED_OPERATORS:
        sql, params = _compare("value", NEGATED_OPERATORS[condition.operator], condition.value)
        return f"NOT EXISTS ({values} {sql})", [path] + params

    sql, params = _compare("value", condition.operator, condition.value)
    return f"EXISTS ({values} {sql})", [path] + params


def _compare(column: str, operator: str, value) -> Tuple[str, list]:
    if operator in ("=", "<>") and value is None:
        return f"{column} IS {'NOT ' if operator == '<>' else ''}NULL", []

    if operator in ("IN", "NOT IN"):
        values = list(value) if isinstance(value, (list, tuple, set)) else [value]
        if not values:
            return ("0" if operator == "IN" else "1"), []
        placeholders = ", ".join("?" for _ in values)
        return f"{column} {operator} ({placeholders})", values

    if operator in ("BETWEEN", "NOT BETWEEN"):
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise SearchError(
                f"Operator {operator} needs exactly two values",
                details={"value": repr(value)}
            )
        return f"{column} {operator} ? AND ?", list(value)

    return f"{column} {operator} ?", [value]


def _json_path(field: str) -> str:
    return '$."' + field.replace('"', '\\"') + '"'


def build_order_by(sorts: dict, has_keys: bool) -> Tuple[str, List[str]]:
    """
    Build the ORDER BY clause.

    Without explicit sorts, keyword searches sort by relevance. The item
    row id is always the final tie-breaker.

    Returns:
        Tuple of (clause without the ORDER BY keywords, parameters).
    """
    terms = []
    params = []

    if not sorts and has_keys:
        sorts = {RELEVANCE_FIELD: "DESC"}

    for field, order in sorts.items():
        if field == RELEVANCE_FIELD:
            terms.append(f"score {order}")
        elif field in SPECIAL_COLUMNS:
            terms.append(f"{SPECIAL_COLUMNS[field]} {order}")
        else:
            terms.append(f"json_extract(i.data, ?) {order}")
            params.append(_json_path(field))

    terms.append("i.id ASC")
    return ", ".join(terms), params
