"""
Keyword parser for fulltext search keys.

Turns raw user input into a structured keyword expression according to a
parse mode. Stateless: the same input always yields an equal result.
"""

from typing import Iterable, Optional, Union

from ..core import get_logger

logger = get_logger(__name__)


CONJUNCTIONS = ("AND", "OR")

PARSE_MODES = {
    "direct": {
        "name": "Direct query",
        "description": (
            "Don't parse the query, just hand it to the search server unaltered. "
            "Might fail if the query contains syntax errors in regard to the "
            "specific server's query syntax."
        ),
    },
    "single": {
        "name": "Single term",
        "description": (
            "The query is interpreted as a single keyword, maybe containing "
            "spaces or special characters."
        ),
    },
    "terms": {
        "name": "Multiple terms",
        "description": (
            "The query is interpreted as multiple keywords separated by spaces. "
            'Keywords containing spaces may be "quoted". Quoted keywords must '
            "still be separated by spaces."
        ),
    },
}


class KeywordGroup(list):
    """
    Ordered keyword terms combined by a conjunction.

    Items are plain strings (words or phrases) or nested KeywordGroups.
    Behaves as a list, so callers can edit terms in place.

    Attributes:
        conjunction: "AND" or "OR".
        negation: Whether the whole group is negated.
    """

    def __init__(
        self,
        terms: Iterable[Union[str, "KeywordGroup"]] = (),
        conjunction: str = "AND",
        negation: bool = False
    ):
        super().__init__(terms)
        self.conjunction = conjunction
        self.negation = negation

    def __eq__(self, other):
        if isinstance(other, KeywordGroup):
            return (
                list.__eq__(self, other)
                and self.conjunction == other.conjunction
                and self.negation == other.negation
            )
        return list.__eq__(self, other)

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = None

    def __repr__(self) -> str:
        negation = ", negation=True" if self.negation else ""
        return f"KeywordGroup({list.__repr__(self)}, conjunction={self.conjunction!r}{negation})"

    def copy(self) -> "KeywordGroup":
        return KeywordGroup(self, self.conjunction, self.negation)

    def terms(self):
        """Yield all plain terms, descending into nested groups."""
        for item in self:
            if isinstance(item, KeywordGroup):
                yield from item.terms()
            else:
                yield item

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dict."""
        return {
            "conjunction": self.conjunction,
            "negation": self.negation,
            "terms": [
                item.to_dict() if isinstance(item, KeywordGroup) else item
                for item in self
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "KeywordGroup":
        """Rebuild a group produced by to_dict()."""
        return cls(
            [
                cls.from_dict(item) if isinstance(item, dict) else item
                for item in data.get("terms", [])
            ],
            conjunction=data.get("conjunction", "AND"),
            negation=data.get("negation", False),
        )


ParsedKeys = Union[None, str, KeywordGroup]


def parse_keys(keys, mode: str = "terms", conjunction: str = "AND") -> ParsedKeys:
    """
    Parse search keys input by the user according to the given parse mode.

    Args:
        keys: Raw keys. None and already structured KeywordGroups are
              returned unchanged; anything else is converted to a string.
        mode: One of "direct", "single" or "terms".
        conjunction: Conjunction tagged onto the structured result.

    Returns:
        None, the raw string ("direct") or a KeywordGroup. None is also
        returned for an unknown parse mode.
    """
    if keys is None or isinstance(keys, KeywordGroup):
        return keys

    keys = str(keys)

    if mode == "direct":
        return keys

    if mode == "single":
        return KeywordGroup([keys], conjunction)

    if mode == "terms":
        return KeywordGroup(_split_terms(keys), conjunction)

    logger.warning(f"Unknown parse mode '{mode}', ignoring search keys")
    return None


def _split_terms(keys: str) -> list:
    """
    Split on whitespace, honouring "quoted phrases".

    An opening quote without a closing one still yields its phrase,
    built from everything that followed it.
    """
    terms = []
    phrase = ""
    quoted = False

    for token in keys.split():
        if quoted:
            if token.endswith('"'):
                phrase += " " + token[:-1]
                terms.append(phrase)
                quoted = False
            else:
                phrase += " " + token
        elif token.startswith('"'):
            if len(token) > 1 and token.endswith('"'):
                terms.append(token[1:-1])
            else:
                phrase = token[1:]
                quoted = True
        else:
            terms.append(token)

    if quoted:
        terms.append(phrase)

    return [term for term in terms if term]


def is_valid_conjunction(conjunction: Optional[str]) -> bool:
    return isinstance(conjunction, str) and conjunction.upper() in CONJUNCTIONS


if __name__ == "__main__":
    samples = [
        '"hello world" foo',
        'a "b',
        '  spaced    out  ',
        '"one" "two words" three',
    ]

    for mode in PARSE_MODES:
        print(f"=== {PARSE_MODES[mode]['name']} ===")
        for sample in samples:
            print(f"  {sample!r} -> {parse_keys(sample, mode)!r}")
