"""
Base class for index processors.

Processors hook into three stages: items being indexed, queries before
they reach the backend, and result sets after the backend filled them.
"""

from typing import Any, Dict

STAGE_PREPROCESS_INDEX = "preprocess_index"
STAGE_PREPROCESS_QUERY = "preprocess_query"
STAGE_POSTPROCESS_QUERY = "postprocess_query"

STAGES = (
    STAGE_PREPROCESS_INDEX,
    STAGE_PREPROCESS_QUERY,
    STAGE_POSTPROCESS_QUERY,
)


class Processor:
    """
    A configurable processor attached to an index.

    Subclasses override the stage methods they need and report them
    through supports_stage(). All stage methods alter their argument in
    place.

    Attributes:
        plugin_id: Identifier of the processor type.
        weight: Processors run by ascending weight.
        configuration: Processor settings.
    """

    plugin_id = "processor"

    def __init__(self, configuration: Dict[str, Any] = None, plugin_id: str = None, weight: int = 0):
        self.set_configuration(configuration or {})
        if plugin_id is not None:
            self.plugin_id = plugin_id
        self.weight = weight

    def default_configuration(self) -> Dict[str, Any]:
        return {}

    def set_configuration(self, configuration: Dict[str, Any]) -> None:
        """Replace the configuration, keeping defaults for missing keys."""
        self.configuration = self.default_configuration()
        self.configuration.update(configuration)

    def supports_stage(self, stage: str) -> bool:
        return False

    def preprocess_index_items(self, index, items: Dict[str, Dict[str, Any]]) -> None:
        pass

    def preprocess_search_query(self, query) -> None:
        pass

    def postprocess_search_results(self, results) -> None:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(plugin_id={self.plugin_id!r}, weight={self.weight})"
