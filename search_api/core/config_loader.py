"""
Configuration loader for the search API.

Loads settings from config.json and provides typed access via dataclasses.
Supports singleton pattern for global access and runtime reload capability.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


@dataclass
class PathsConfig:
    """Configuration for file system paths."""
    database_path: Path
    logs_directory: Path


@dataclass
class SearchConfig:
    """Configuration for the SQLite search backend."""
    default_limit: int
    max_limit: int
    tokenizer: str


@dataclass
class QueryConfig:
    """Defaults applied to newly created queries."""
    default_parse_mode: str
    default_conjunction: str
    default_search_id: str


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""
    level: str
    format: str
    max_file_size_mb: int
    backup_count: int


@dataclass
class Config:
    """
    Main configuration container holding all config sections.

    Provides singleton access via get_config() function.
    """
    paths: PathsConfig
    search: SearchConfig
    query: QueryConfig
    logging: LoggingConfig
    project_root: Path = field(default_factory=Path)

    @classmethod
    def from_file(cls, config_path: Path) -> "Config":
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the config.json file.

        Returns:
            Populated Config instance.

        Raises:
            ConfigurationError: If file is missing or invalid.
        """
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                {"path": str(config_path)}
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {e}",
                {"path": str(config_path)}
            )

        project_root = config_path.parent.parent

        return cls._parse_config(data, project_root)

    @classmethod
    def defaults(cls, project_root: Path = None) -> "Config":
        """Build a Config holding only default values."""
        return cls._parse_config({}, project_root or Path.cwd())

    @classmethod
    def _parse_config(cls, data: dict, project_root: Path) -> "Config":
        """Parse raw config dict into typed Config object."""
        paths_data = data.get("paths", {})
        paths = PathsConfig(
            database_path=cls._resolve_path(paths_data.get("database_path", "output/search_api.db"), project_root),
            logs_directory=cls._resolve_path(paths_data.get("logs_directory", "output/logs"), project_root)
        )

        search_data = data.get("search", {})
        search = SearchConfig(
            default_limit=search_data.get("default_limit", 10),
            max_limit=search_data.get("max_limit", 500),
            tokenizer=search_data.get("tokenizer", "unicode61")
        )

        query_data = data.get("query", {})
        query = QueryConfig(
            default_parse_mode=query_data.get("default_parse_mode", "terms"),
            default_conjunction=query_data.get("default_conjunction", "AND"),
            default_search_id=query_data.get("default_search_id", "search_api.query")
        )

        if query.default_conjunction.upper() not in ("AND", "OR"):
            raise ConfigurationError(
                f"Invalid default conjunction: {query.default_conjunction}",
                {"section": "query"}
            )
        query.default_conjunction = query.default_conjunction.upper()

        log_data = data.get("logging", {})
        logging_cfg = LoggingConfig(
            level=log_data.get("level", "INFO"),
            format=log_data.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            max_file_size_mb=log_data.get("max_file_size_mb", 10),
            backup_count=log_data.get("backup_count", 5)
        )

        return cls(
            paths=paths,
            search=search,
            query=query,
            logging=logging_cfg,
            project_root=project_root
        )

    @staticmethod
    def _resolve_path(path_str: str, project_root: Path) -> Path:
        """Resolve a path string, making relative paths absolute."""
        path = Path(path_str)
        if path.is_absolute():
            return path
        return project_root / path


_config_instance: Optional[Config] = None


def get_config(config_path: Path = None) -> Config:
    """
    Get the singleton Config instance.

    Args:
        config_path: Optional path to config file. If not provided,
                    searches upward from current directory.

    Returns:
        The global Config instance.

    Raises:
        ConfigurationError: If config cannot be loaded.
    """
    global _config_instance

    if _config_instance is None or config_path is not None:
        if config_path is None:
            config_path = _find_config_file()
        _config_instance = Config.from_file(Path(config_path))

    return _config_instance


def get_config_or_defaults() -> Config:
    """
    Get the loaded Config, or a defaults-only Config if none can be found.

    Used by components that must keep working without a config file. The
    defaults are cached like a loaded config. A config file that exists but
    is invalid still raises.

    Raises:
        ConfigurationError: If a config file was found but cannot be loaded.
    """
    global _config_instance

    if _config_instance is None:
        try:
            config_path = _find_config_file()
        except ConfigurationError:
            _config_instance = Config.defaults()
        else:
            _config_instance = Config.from_file(config_path)

    return _config_instance


def _find_config_file() -> Path:
    """Search upward from current directory to find config/config.json."""
    current = Path.cwd()

    for _ in range(10):
        config_path = current / "config" / "config.json"
        if config_path.exists():
            return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    raise ConfigurationError(
        "Could not find config/config.json in current directory or parents"
    )


def reload_config(config_path: Path = None) -> Config:
    """
    Force reload of configuration.

    Args:
        config_path: Optional path to config file.

    Returns:
        Fresh Config instance.
    """
    global _config_instance
    _config_instance = None
    return get_config(config_path)


if __name__ == "__main__":
    try:
        config = get_config()
        print(f"Project root: {config.project_root}")
        print(f"Database path: {config.paths.database_path}")
        print(f"Tokenizer: {config.search.tokenizer}")
        print(f"Default parse mode: {config.query.default_parse_mode}")
    except ConfigurationError as e:
        print(f"Config error: {e.message}")
