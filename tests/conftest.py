"""
Pytest fixtures and configuration for the test suite.

Provides temporary directories, mock configurations, and recording stubs
for indexes, backends and processors so tests stay isolated.
"""

import json
import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator, List

import sys
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from search_api.backend.base import SearchBackend  # noqa: E402
from search_api.events import EventDispatcher  # noqa: E402
from search_api.index import Index  # noqa: E402
from search_api.processor.base import Processor, STAGES  # noqa: E402
from search_api.query.result_set import ResultItem  # noqa: E402
from search_api.query.results_cache import ResultsCache  # noqa: E402


class RecordingBackend(SearchBackend):
    """Backend stub counting searches and returning canned results."""

    def __init__(self, item_ids: List[str] = None):
        self.item_ids = list(item_ids or [])
        self.search_calls = []

    def search(self, query) -> None:
        self.search_calls.append(query)
        results = query.get_results()
        for position, item_id in enumerate(self.item_ids):
            results.add_result_item(ResultItem(item_id, float(len(self.item_ids) - position)))
        results.set_result_count(len(self.item_ids))


class RecordingProcessor(Processor):
    """Processor logging every stage call it receives."""

    plugin_id = "recording"

    def __init__(self, configuration=None, plugin_id=None, weight=0, log=None):
        super().__init__(configuration, plugin_id, weight)
        self.calls = log if log is not None else []

    def supports_stage(self, stage: str) -> bool:
        return stage in STAGES

    def preprocess_index_items(self, index, items) -> None:
        self.calls.append((self.plugin_id, "preprocess_index_items", sorted(items)))

    def preprocess_search_query(self, query) -> None:
        self.calls.append((self.plugin_id, "preprocess_search_query", query))

    def postprocess_search_results(self, results) -> None:
        self.calls.append((self.plugin_id, "postprocess_search_results", results))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory, cleaned up after test.
    """
    tmp = tempfile.mkdtemp(prefix="search_api_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_config(temp_dir: Path) -> Generator[Path, None, None]:
    """
    Create a temporary config.json for testing.

    Args:
        temp_dir: Temporary directory fixture.

    Yields:
        Path to temporary config file.
    """
    config_dir = temp_dir / "config"
    config_dir.mkdir()

    output_dir = temp_dir / "output"
    output_dir.mkdir()

    logs_dir = output_dir / "logs"
    logs_dir.mkdir()

    config_data = {
        "paths": {
            "database_path": str(output_dir / "test.db"),
            "logs_directory": str(logs_dir)
        },
        "search": {
            "default_limit": 20,
            "max_limit": 100,
            "tokenizer": "unicode61"
        },
        "query": {
            "default_parse_mode": "terms",
            "default_conjunction": "AND",
            "default_search_id": "test.search"
        },
        "logging": {
            "level": "DEBUG",
            "format": "%(levelname)s - %(message)s",
            "max_file_size_mb": 1,
            "backup_count": 1
        }
    }

    config_path = config_dir / "config.json"
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config_data, f)

    yield config_path


@pytest.fixture
def temp_database(temp_dir: Path) -> Path:
    """
    Create path for a temporary database.

    Args:
        temp_dir: Temporary directory fixture.

    Returns:
        Path where test database should be created.
    """
    return temp_dir / "test.db"


@pytest.fixture
def db_manager(temp_database: Path):
    """
    Database manager on a temporary file with the item table created.

    Never touches the configured database path.
    """
    from search_api.database import DatabaseManager, init_schema

    manager = DatabaseManager(temp_database)
    init_schema(manager)
    return manager


@pytest.fixture
def reset_config_singleton():
    """
    Reset the config singleton between tests.

    This ensures each test gets a fresh config instance.
    """
    from search_api.core import config_loader
    config_loader._config_instance = None
    yield
    config_loader._config_instance = None


@pytest.fixture
def reset_logger_singleton():
    """
    Reset the logger initialization flag and package handlers between tests.
    """
    import logging
    from search_api.core import logger

    def _reset():
        package_logger = logging.getLogger(logger.PACKAGE_LOGGER)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        logger._logger_initialized = False

    _reset()
    yield
    _reset()


@pytest.fixture
def reset_registry():
    """
    Remove the active index registry before and after a test.
    """
    from search_api import registry
    registry.set_active_registry(None)
    yield
    registry.set_active_registry(None)


@pytest.fixture
def results_cache() -> ResultsCache:
    return ResultsCache()


@pytest.fixture
def dispatcher() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend(["item:1", "item:2", "item:3"])


@pytest.fixture
def processor_log() -> list:
    return []


@pytest.fixture
def index(backend: RecordingBackend, processor_log: list) -> Index:
    """Enabled index on a recording backend with one recording processor."""
    return Index(
        "test_index",
        label="Test index",
        server=backend,
        fulltext_fields=["title", "body"],
        processors=[RecordingProcessor(log=processor_log)]
    )


@pytest.fixture
def make_query(index, results_cache, dispatcher):
    """Factory building queries on the test index with isolated collaborators."""
    from search_api.query.query import Query

    def _make(options=None, target=None):
        return Query(target or index, results_cache, options, dispatcher)

    return _make
