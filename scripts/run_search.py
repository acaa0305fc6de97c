"""
CLI script to index a JSON file of items and run a query against it.

Usage:
    python scripts/run_search.py --items items.json --fulltext title body --keys '"air traffic" control'
    python scripts/run_search.py --items items.json --condition year>=2020 --sort year:DESC
    python scripts/run_search.py --items items.json --keys aviation --debug
"""

import argparse
import json
import re
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from search_api.backend import SqliteBackend
from search_api.core import get_config, get_logger, ConfigurationError, SearchApiError
from search_api.core.config_loader import reload_config
from search_api.index import Index
from search_api.processor import IgnoreCharacter

_CONDITION = re.compile(r"^([^<>=]+)(<>|<=|>=|=|<|>)(.*)$")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Index items from a JSON file and search them"
    )

    parser.add_argument("--items", type=str, required=True,
                        help="JSON file mapping item ids to field values")
    parser.add_argument("--index", type=str, default="cli",
                        help="Index machine name")
    parser.add_argument("--fulltext", nargs="*", default=["title", "body"],
                        help="Fulltext fields of the index")
    parser.add_argument("--keys", type=str,
                        help="Search keys")
    parser.add_argument("--parse-mode", choices=["direct", "single", "terms"], default="terms",
                        help="How to parse the search keys")
    parser.add_argument("--conjunction", choices=["AND", "OR"], default="AND",
                        help="Conjunction used between search terms")
    parser.add_argument("--condition", action="append", default=[],
                        help="Filter like field=value or year>=2020 (repeatable)")
    parser.add_argument("--sort", action="append", default=[],
                        help="Sort like field or field:DESC (repeatable)")
    parser.add_argument("--language", action="append",
                        help="Restrict to a language (repeatable)")
    parser.add_argument("--limit", type=int, help="Maximum results")
    parser.add_argument("--offset", type=int, default=0, help="Results to skip")
    parser.add_argument("--ignore-characters", action="store_true",
                        help="Strip punctuation from items and keys")
    parser.add_argument("--db", type=str, help="SQLite database path")
    parser.add_argument("--config", type=str, help="Path to custom config.json file")
    parser.add_argument("--debug", action="store_true", help="Print the query before running it")

    return parser.parse_args(argv)


def parse_condition(text: str):
    """Split "field<op>value" into (field, value, operator); values are JSON when possible."""
    match = _CONDITION.match(text)
    if not match:
        raise ValueError(f"Invalid condition: {text}")

    field, operator, raw = match.groups()
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw

    return field.strip(), value, operator


def main(argv=None):
    """Main entry point for the search CLI."""
    args = parse_args(argv)

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}")
            sys.exit(1)
        try:
            reload_config(config_path)
            get_config()
        except ConfigurationError as e:
            print(f"Configuration error: {e.message}")
            sys.exit(1)

    logger = get_logger(__name__)

    items_path = Path(args.items)
    if not items_path.exists():
        print(f"Error: Items file not found: {items_path}")
        sys.exit(1)

    with open(items_path, "r", encoding="utf-8") as f:
        items = json.load(f)

    processors = [IgnoreCharacter()] if args.ignore_characters else []
    backend = SqliteBackend(Path(args.db) if args.db else None)
    index = Index(args.index, server=backend, fulltext_fields=args.fulltext, processors=processors)

    try:
        backend.add_index(index)
        index.clear()
        index.index_items(items)

        query = index.query({"conjunction": args.conjunction, "search id": "cli"})
        query.set_parse_mode(args.parse_mode)
        if args.keys is not None:
            query.keys(args.keys)
        for condition in args.condition:
            query.add_condition(*parse_condition(condition))
        for sort in args.sort:
            field, _, order = sort.partition(":")
            query.sort(field, order or "ASC")
        if args.language:
            query.set_languages(args.language)
        query.range(args.offset, args.limit)

        if args.debug:
            print(query)

        results = query.execute()
    except (SearchApiError, ValueError) as e:
        logger.error(f"Search failed: {e}")
        print(f"Error: {e}")
        sys.exit(1)

    print("=" * 60)
    print(f"Results: {len(results)} of {results.get_result_count()}")
    print("=" * 60)
    for item in results:
        excerpt = item.extra_data.get("excerpt", "")
        print(f"  {item.id:<12} {item.score:8.3f}  {excerpt}")

    for warning in results.get_warnings():
        print(f"Warning: {warning}")

    sys.exit(0)


if __name__ == "__main__":
    main()
