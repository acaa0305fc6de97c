"""
Tests for Query construction and the execution lifecycle.

Uses the recording backend and processor from conftest to observe which
stages ran, and in which order.
"""

import json
import pytest

from search_api.core.exceptions import InvalidQuery, SearchError
from search_api.events import EventKind
from search_api.index import Index
from search_api.query.keyword_parser import KeywordGroup
from search_api.query.query import Query
from search_api.registry import IndexRegistry, set_active_registry

from conftest import RecordingBackend, RecordingProcessor


def _methods(log):
    return [entry[1] for entry in log]


class FailingBackend(RecordingBackend):
    """Backend adding one result, then failing."""

    def search(self, query) -> None:
        super().search(query)
        raise SearchError("backend down")


class TestQueryConstruction:
    """Tests for creating queries."""

    def test_defaults(self, make_query, index):
        """Test the state of a freshly created query."""
        query = make_query()

        assert query.get_index() is index
        assert query.get_index_id() == "test_index"
        assert query.get_option("conjunction") == "AND"
        assert query.get_option("search id")
        assert query.get_parse_mode() == "terms"
        assert query.get_keys() is None
        assert query.get_languages() is None
        assert query.get_fulltext_fields() is None
        assert query.get_condition_group().is_empty()
        assert query.get_sorts() == {}
        assert not query.has_executed()
        assert not query.was_aborted()

    def test_options_are_merged_over_defaults(self, make_query):
        """Test that given options override defaults without dropping the rest."""
        query = make_query({"conjunction": "OR", "custom": 1})

        assert query.get_option("conjunction") == "OR"
        assert query.get_option("custom") == 1
        assert "search id" in query.get_options()

    def test_disabled_index_raises(self, backend, results_cache):
        """Test that queries on a disabled index are rejected."""
        index = Index("off", label="Disabled index", server=backend, status=False)

        with pytest.raises(InvalidQuery) as exc_info:
            Query(index, results_cache)

        assert exc_info.value.index_id == "off"
        assert "Disabled index" in exc_info.value.message

    def test_create_factory(self, index, results_cache):
        """Test that Query.create builds a query with the given options."""
        query = Query.create(index, results_cache, {"search id": "x"})

        assert isinstance(query, Query)
        assert query.get_option("search id") == "x"

    def test_create_factory_uses_dispatcher(self, index, results_cache, dispatcher):
        """Test that Query.create hands the given dispatcher to the query."""
        seen = []
        dispatcher.add_listener(EventKind.QUERY_ALTER, seen.append)

        query = Query.create(index, results_cache, None, dispatcher)
        query.execute()

        assert seen == [query]

    def test_index_query_helper(self, index, results_cache):
        """Test that Index.query creates a query on that index."""
        query = index.query({"search id": "helper"}, results_cache)

        assert query.get_index() is index
        assert query.get_option("search id") == "helper"

    def test_index_query_helper_uses_dispatcher(self, index, results_cache, dispatcher):
        """Test that Index.query forwards its dispatcher to the query."""
        seen = []
        dispatcher.add_listener(EventKind.RESULTS_ALTER, seen.append)

        results = index.query(None, results_cache, dispatcher).execute()

        assert seen == [results]

    def test_parse_modes_returns_copy(self):
        """Test that callers cannot alter the parse mode definitions."""
        modes = Query.parse_modes()
        modes["terms"]["name"] = "changed"

        assert Query.parse_modes()["terms"]["name"] == "Multiple terms"


class TestQueryKeys:
    """Tests for search keys handling."""

    def test_keys_parsed_with_conjunction(self, make_query):
        """Test that keys are parsed with the query's conjunction."""
        query = make_query({"conjunction": "OR"}).keys('"air traffic" control')

        assert query.get_keys() == KeywordGroup(["air traffic", "control"], "OR")
        assert query.get_original_keys() == '"air traffic" control'

    def test_setting_keys_twice_is_idempotent(self, make_query):
        """Test that setting the same keys again yields the same parsed keys."""
        query = make_query()
        query.keys("foo bar")
        first = query.get_keys()
        query.keys("foo bar")

        assert query.get_keys() == first

    def test_parse_mode_applies_to_later_keys(self, make_query):
        """Test that a parse mode change affects keys set afterwards."""
        query = make_query().set_parse_mode("single").keys("foo bar")

        assert list(query.get_keys()) == ["foo bar"]

        query.set_parse_mode("direct").keys("foo OR bar")
        assert query.get_keys() == "foo OR bar"

    def test_none_clears_keys(self, make_query):
        """Test that None removes both parsed and original keys."""
        query = make_query().keys("foo").keys(None)

        assert query.get_keys() is None
        assert query.get_original_keys() is None

    def test_keys_are_live(self, make_query):
        """Test that editing the returned group edits the query."""
        query = make_query().keys("a b")
        query.get_keys().append("c")

        assert list(query.get_keys()) == ["a", "b", "c"]

    def test_replace_keys_keeps_original(self, make_query):
        """Test that replacing parsed keys leaves the user input untouched."""
        query = make_query().set_parse_mode("direct").keys("Foo")
        query.replace_keys("foo")

        assert query.get_keys() == "foo"
        assert query.get_original_keys() == "Foo"

    def test_fulltext_fields_and_languages(self, make_query):
        """Test setting and clearing field and language restrictions."""
        query = make_query().set_fulltext_fields(["title"]).set_languages(("en", "fr"))

        assert query.get_fulltext_fields() == ["title"]
        assert query.get_languages() == ["en", "fr"]

        query.set_fulltext_fields(None).set_languages(None)
        assert query.get_fulltext_fields() is None
        assert query.get_languages() is None


class TestQuerySortsAndOptions:
    """Tests for sorting, range, options and tags."""

    def test_sort_normalizes_direction(self, make_query):
        """Test that directions are upper-cased and unknown ones become ASC."""
        query = make_query()
        query.sort("a", " desc ")
        query.sort("b", "sideways")
        query.sort("c")

        assert query.get_sorts() == {"a": "DESC", "b": "ASC", "c": "ASC"}

    def test_resorting_keeps_position(self, make_query):
        """Test that changing a sort direction doesn't move the field."""
        query = make_query().sort("a").sort("b").sort("a", "DESC")

        assert list(query.get_sorts().items()) == [("a", "DESC"), ("b", "ASC")]

    def test_range_sets_offset_and_limit(self, make_query):
        """Test that range stores offset and limit as options."""
        query = make_query().range(10, 5)

        assert query.get_option("offset") == 10
        assert query.get_option("limit") == 5

    def test_set_option_returns_previous_value(self, make_query):
        """Test that set_option returns the value it replaced."""
        query = make_query()

        assert query.set_option("foo", 1) is None
        assert query.set_option("foo", 2) == 1
        assert query.get_option("missing", "default") == "default"

    def test_conditions(self, make_query):
        """Test that conditions and nested groups land in the root group."""
        query = make_query().add_condition("status", 1)
        query.add_condition_group(query.create_condition_group("OR").add_condition("type", "a"))

        assert len(query.get_condition_group().get_conditions()) == 2

    def test_tags(self, make_query):
        """Test tag insertion order and the tag lookups."""
        query = make_query().add_tag("b").add_tag("a").add_tag("b")

        assert list(query.get_tags()) == ["b", "a"]
        assert query.has_tag("a")
        assert query.has_all_tags("a", "b")
        assert not query.has_all_tags("a", "c")
        assert query.has_any_tag("c", "a")
        assert not query.has_any_tag("c")


class TestQueryAbort:
    """Tests for aborting queries."""

    def test_abort_with_message(self, make_query):
        """Test that an abort message is kept."""
        query = make_query()
        query.abort("No access")

        assert query.was_aborted()
        assert query.get_abort_message() == "No access"

    def test_abort_without_message(self, make_query):
        """Test that a query can be aborted without a message."""
        query = make_query()
        query.abort()

        assert query.was_aborted()
        assert query.get_abort_message() is None

    def test_later_abort_replaces_message(self, make_query):
        """Test that the last abort message wins."""
        query = make_query()
        query.abort("first")
        query.abort("second")

        assert query.get_abort_message() == "second"

    def test_aborted_query_skips_backend(self, make_query, backend, processor_log, results_cache):
        """Test that an aborted query returns cached empty results without searching."""
        query = make_query()
        query.abort("x")

        results = query.execute()

        assert backend.search_calls == []
        assert len(results) == 0
        assert _methods(processor_log) == ["postprocess_search_results"]
        assert results_cache.get_results(query) is results

    def test_abort_from_query_listener(self, make_query, backend, dispatcher, processor_log):
        """Test that an abort set during pre-processing stops execution."""
        dispatcher.add_listener(EventKind.QUERY_ALTER, lambda query: query.abort("denied"))
        query = make_query()

        query.execute()

        assert backend.search_calls == []
        assert query.get_abort_message() == "denied"
        assert _methods(processor_log) == ["preprocess_search_query", "postprocess_search_results"]

    def test_empty_languages_short_circuit(self, make_query, backend, processor_log, results_cache):
        """Test that an empty language list returns no results without searching."""
        query = make_query().set_languages([])

        results = query.execute()

        assert backend.search_calls == []
        assert len(results) == 0
        assert not query.was_aborted()
        assert _methods(processor_log) == ["postprocess_search_results"]
        assert results_cache.get_results(query) is results


class TestQueryExecute:
    """Tests for the execution lifecycle."""

    def test_execute_fills_results(self, make_query, backend):
        """Test that execute runs the backend and returns its results."""
        query = make_query().keys("foo")

        results = query.execute()

        assert query.has_executed()
        assert backend.search_calls == [query]
        assert [item.id for item in results] == ["item:1", "item:2", "item:3"]
        assert results.get_result_count() == 3
        assert results.get_query() is query

    def test_execute_runs_once(self, make_query, backend, processor_log):
        """Test that a second execute returns the same result set untouched."""
        query = make_query()

        first = query.execute()
        second = query.execute()

        assert first is second
        assert len(backend.search_calls) == 1
        assert _methods(processor_log) == ["preprocess_search_query", "postprocess_search_results"]

    def test_stage_order(self, make_query, dispatcher, processor_log):
        """Test processors run before listeners at both stages."""
        dispatcher.add_listener(EventKind.QUERY_ALTER, lambda query: processor_log.append(("listener", "query", query)))
        dispatcher.add_listener(EventKind.RESULTS_ALTER, lambda results: processor_log.append(("listener", "results", results)))
        query = make_query()

        query.execute()

        assert [entry[:2] for entry in processor_log] == [
            ("recording", "preprocess_search_query"),
            ("listener", "query"),
            ("recording", "postprocess_search_results"),
            ("listener", "results"),
        ]
        assert processor_log[3][2] is query.get_results()

    def test_processors_run_by_weight(self, backend, results_cache, dispatcher):
        """Test that lighter processors run first at every stage."""
        log = []
        index = Index("weighted", server=backend, processors=[
            RecordingProcessor(plugin_id="heavy", weight=10, log=log),
            RecordingProcessor(plugin_id="light", weight=-5, log=log),
        ])

        Query(index, results_cache, dispatcher=dispatcher).execute()

        assert [entry[0] for entry in log] == ["light", "heavy", "light", "heavy"]

    def test_pre_execute_runs_once(self, make_query, processor_log):
        """Test that repeated pre_execute calls preprocess the query once."""
        query = make_query()
        query.pre_execute()
        query.pre_execute()
        query.execute()

        assert _methods(processor_log).count("preprocess_search_query") == 1

    def test_tag_scoped_listeners(self, make_query, dispatcher):
        """Test unscoped listeners run first, then each tag in tag order."""
        calls = []
        dispatcher.add_listener(EventKind.QUERY_ALTER, lambda q: calls.append("tag b"), tag="b")
        dispatcher.add_listener(EventKind.QUERY_ALTER, lambda q: calls.append("all"))
        dispatcher.add_listener(EventKind.QUERY_ALTER, lambda q: calls.append("tag a"), tag="a")
        dispatcher.add_listener(EventKind.QUERY_ALTER, lambda q: calls.append("tag c"), tag="c")

        make_query().add_tag("a").add_tag("b").execute()

        assert calls == ["all", "tag a", "tag b"]

    def test_results_cached_under_search_id(self, make_query, results_cache):
        """Test that results are retrievable by the query's search id."""
        query = make_query({"search id": "views:page"})

        results = query.execute()

        assert results_cache.get_results("views:page") is results

    def test_failed_execution_returns_partial_results(self, results_cache, dispatcher):
        """
        Test that a query stays executed after the backend raised.

        Deliberately kept legacy behaviour: the next execute returns whatever
        the backend added before failing, and nothing is cached.
        """
        backend = FailingBackend(["item:1"])
        query = Query(Index("failing", server=backend), results_cache, dispatcher=dispatcher)

        with pytest.raises(SearchError):
            query.execute()

        results = query.execute()

        assert len(backend.search_calls) == 1
        assert list(results.get_result_items()) == ["item:1"]
        assert results_cache.get_results(query) is None


class TestQueryPersistence:
    """Tests for exporting and rebuilding queries."""

    def _build(self, make_query):
        query = make_query({"search id": "saved"}).keys('foo "bar baz"')
        query.set_fulltext_fields(["title"]).set_languages(["en"])
        query.add_condition("status", 1).add_condition_group(
            query.create_condition_group("OR", ["facet"]).add_condition("type", ["a", "b"], "IN")
        )
        query.sort("created", "DESC").range(0, 10).add_tag("views")
        return query

    def test_round_trip_with_registry(self, make_query, index, reset_registry):
        """Test that a JSON round trip rebuilds every part of the query."""
        query = self._build(make_query)
        query.execute()

        data = json.loads(json.dumps(query.to_persisted()))
        rebuilt = Query.from_persisted(data, registry=IndexRegistry([index]))

        assert rebuilt.get_index() is index
        assert rebuilt.get_keys() == query.get_keys()
        assert rebuilt.get_original_keys() == query.get_original_keys()
        assert rebuilt.get_fulltext_fields() == ["title"]
        assert rebuilt.get_languages() == ["en"]
        assert rebuilt.get_condition_group().to_dict() == query.get_condition_group().to_dict()
        assert rebuilt.get_sorts() == {"created": "DESC"}
        assert rebuilt.get_options() == query.get_options()
        assert list(rebuilt.get_tags()) == ["views"]
        assert rebuilt.has_executed()
        assert rebuilt.get_results().get_query() is rebuilt
        assert list(rebuilt.get_results().get_result_items()) == ["item:1", "item:2", "item:3"]

    def test_executed_query_stays_executed(self, make_query, index, backend, reset_registry):
        """Test that a rebuilt executed query does not search again."""
        query = make_query()
        query.execute()

        rebuilt = Query.from_persisted(query.to_persisted(), registry=IndexRegistry([index]))
        rebuilt.execute()

        assert len(backend.search_calls) == 1

    def test_active_registry_resolves_index(self, make_query, index, reset_registry):
        """Test that the active registry is used when none is passed."""
        data = make_query().to_persisted()
        set_active_registry(IndexRegistry([index]))

        assert Query.from_persisted(data).get_index() is index

    def test_unresolved_index_raises_on_use(self, make_query, reset_registry):
        """Test that a query rebuilt without a registry fails only when executed."""
        data = make_query().keys("foo").to_persisted()

        rebuilt = Query.from_persisted(data)

        assert rebuilt.get_index() is None
        assert rebuilt.get_index_id() == "test_index"
        assert list(rebuilt.get_keys()) == ["foo"]
        with pytest.raises(SearchError):
            rebuilt.execute()

    def test_abort_state_is_kept(self, make_query, reset_registry):
        """Test that the abort message survives persistence."""
        query = make_query()
        query.abort("stop")

        rebuilt = Query.from_persisted(query.to_persisted())

        assert rebuilt.get_abort_message() == "stop"


class TestQueryString:
    """Tests for the debug string form."""

    def test_string_contains_query_state(self, make_query):
        """Test that the string lists keys, conditions, sorts and options."""
        query = make_query({"search id": "debug"}).keys("foo bar")
        query.add_condition("status", 1).sort("created", "DESC").set_languages(["en", "de"])

        text = str(query)

        assert text.startswith("Index: test_index\n")
        assert "Keys: 'foo bar'\n" in text
        assert "Parsed keys: KeywordGroup(['foo', 'bar'], conjunction='AND')\n" in text
        assert "Searched fields: [ALL]\n" in text
        assert "Searched languages: en, de\n" in text
        assert "Conditions:\n  status = 1\n" in text
        assert "Sorting: created DESC\n" in text
        assert "'search id': 'debug'" in text
        assert text.endswith("\n")

    def test_string_without_keys(self, make_query):
        """Test that empty sections are left out."""
        text = str(make_query())

        assert "Keys: None\n" in text
        assert "Parsed keys" not in text
        assert "Searched fields" not in text
        assert "Conditions" not in text
        assert "Sorting" not in text

    def test_string_lists_restricted_fields(self, make_query):
        """Test that restricted fields are listed by name."""
        text = str(make_query().keys("foo").set_fulltext_fields(["title", "body"]))

        assert "Searched fields: title, body\n" in text

    def test_objects_in_options_are_sanitized(self, make_query, index):
        """Test that objects in options are shown by class name only."""
        query = make_query({"nested": {"index": index, "values": [1, index]}})
        query.set_option("backend", index.get_server_instance())

        text = str(query)

        assert "'backend': 'object (RecordingBackend)'" in text
        assert "'object (Index)'" in text
        assert query.get_option("backend") is index.get_server_instance()


class TestQueryInvalidConfig:
    """Tests for queries built under an invalid configuration."""

    def test_invalid_config_raises_on_construction(self, index, results_cache, dispatcher,
                                                   temp_dir, reset_config_singleton, monkeypatch):
        """Test that a broken config file surfaces instead of falling back to defaults."""
        from search_api.core import config_loader
        from search_api.core.exceptions import ConfigurationError

        config_dir = temp_dir / "config"
        config_dir.mkdir()
        config_path = config_dir / "config.json"
        config_path.write_text(json.dumps({"query": {"default_conjunction": "XOR"}}))
        monkeypatch.setattr(config_loader, "_find_config_file", lambda: config_path)

        with pytest.raises(ConfigurationError):
            Query(index, results_cache, dispatcher=dispatcher)
