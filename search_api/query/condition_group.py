"""
Condition tree for search queries.

A ConditionGroup holds field conditions and nested groups combined by a
conjunction. Groups are append-only; translating them into a backend's
filter syntax is the backend's job.
"""

import pprint
from dataclasses import dataclass
from typing import Any, Iterable, List, Union

from ..core import InvalidQuery
from .keyword_parser import CONJUNCTIONS

OPERATORS = (
    "=",
    "<>",
    "<",
    "<=",
    ">=",
    ">",
    "IN",
    "NOT IN",
    "BETWEEN",
    "NOT BETWEEN",
)


@dataclass
class Condition:
    """
    A single field condition.

    Attributes:
        field: Field identifier.
        value: Value to compare against. A list for the IN and BETWEEN operators.
        operator: One of OPERATORS.
    """
    field: str
    value: Any
    operator: str = "="

    def __post_init__(self):
        operator = str(self.operator).strip().upper()
        if operator not in OPERATORS:
            raise InvalidQuery(
                f"Unknown condition operator '{self.operator}'",
                details={"field": self.field}
            )
        self.operator = operator

    def __str__(self) -> str:
        value = pprint.pformat(self.value).replace("\n", "\n    ")
        return f"{self.field} {self.operator} {value}"

    def to_dict(self) -> dict:
        return {"field": self.field, "value": self.value, "operator": self.operator}


class ConditionGroup:
    """
    Tree node combining conditions and nested groups.

    Insertion order is preserved so that the string form is deterministic.
    """

    def __init__(self, conjunction: str = "AND", tags: Iterable[str] = None):
        """
        Initialize an empty group.

        Args:
            conjunction: "AND" or "OR", case-insensitive.
            tags: Labels identifying the group for processors.

        Raises:
            InvalidQuery: If the conjunction is unknown.
        """
        normalized = str(conjunction).strip().upper()
        if normalized not in CONJUNCTIONS:
            raise InvalidQuery(f"Unknown conjunction '{conjunction}'")

        self.conjunction = normalized
        self.conditions: List[Union[Condition, "ConditionGroup"]] = []
        self.tags = dict.fromkeys(tags or ())

    def get_conjunction(self) -> str:
        return self.conjunction

    def add_condition(self, field: str, value: Any, operator: str = "=") -> "ConditionGroup":
        """
        Append a field condition.

        Args:
            field: Field identifier.
            value: Value to compare against.
            operator: Comparison operator.

        Returns:
            This group, for chaining.

        Raises:
            InvalidQuery: If the operator is unknown.
        """
        self.conditions.append(Condition(field, value, operator))
        return self

    def add_condition_group(self, condition_group: "ConditionGroup") -> "ConditionGroup":
        """Append a nested group. Returns this group, for chaining."""
        self.conditions.append(condition_group)
        return self

    def get_conditions(self) -> List[Union[Condition, "ConditionGroup"]]:
        """Return the children. The list is live: edits affect the group."""
        return self.conditions

    def is_empty(self) -> bool:
        return not self.conditions

    def get_tags(self) -> dict:
        return self.tags

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def to_dict(self) -> dict:
        """Convert the subtree to a JSON-compatible dict."""
        return {
            "conjunction": self.conjunction,
            "tags": list(self.tags),
            "conditions": [child.to_dict() for child in self.conditions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionGroup":
        """Rebuild a subtree produced by to_dict()."""
        group = cls(data.get("conjunction", "AND"), data.get("tags", ()))
        for child in data.get("conditions", []):
            if "conditions" in child:
                group.add_condition_group(cls.from_dict(child))
            else:
                group.add_condition(child["field"], child["value"], child.get("operator", "="))
        return group

    def __str__(self) -> str:
        # A group with a single child renders as that child.
        if len(self.conditions) == 1:
            return str(self.conditions[0])

        parts = []
        for child in self.conditions:
            if isinstance(child, ConditionGroup):
                nested = str(child).replace("\n", "\n  ")
                parts.append(f"[\n  {nested}\n]")
            else:
                parts.append(str(child))

        return f"\n{self.conjunction}\n".join(parts)

    def __repr__(self) -> str:
        return f"ConditionGroup({self.conjunction!r}, {len(self.conditions)} children)"


if __name__ == "__main__":
    group = ConditionGroup("AND")
    group.add_condition("status", 1)
    group.add_condition_group(
        ConditionGroup("OR", tags=["facet:type"])
        .add_condition("type", "article")
        .add_condition("type", "page")
    )
    group.add_condition("created", [2020, 2024], "BETWEEN")
    print(group)
