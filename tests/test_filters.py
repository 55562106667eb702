"""Tests for the ancestor-preserving filter engine."""

import copy
import re

import pytest

from code_scanner.errors import InvalidArgument
from code_scanner.filters import FilterOptions, apply_filters, name_matches, split_csv
from code_scanner.models import error_definition


@pytest.fixture
def class_with_method(make_definition):
    """``class Class { method() {} }`` followed by ``function standaloneFn() {}``."""
    return [
        make_definition(0, "class", "Class", (1, 3), children=[1]),
        make_definition(1, "method", "method", (2, 2), parent_id=0, complexity=1),
        make_definition(2, "function", "standaloneFn", (5, 5)),
    ]


@pytest.fixture
def nested_tree(make_definition):
    """namespace App > class Service > method run > function helper, plus a sibling method."""
    return [
        make_definition(0, "namespace", "App", (1, 40), children=[1]),
        make_definition(1, "class", "Service", (2, 30), parent_id=0, children=[2, 4], modifier="public"),
        make_definition(2, "method", "run", (3, 20), parent_id=1, children=[3],
                        modifier="public static", complexity=5, parameter_count=2),
        make_definition(3, "function", "helper", (4, 8), parent_id=2, complexity=1),
        make_definition(4, "method", "stop", (21, 29), parent_id=1, modifier="private",
                        complexity=2, parameter_count=0),
    ]


def _names(definitions):
    return [d.name for d in definitions]


class TestAncestorClosure:
    def test_include_types_keeps_enclosing_class(self, class_with_method):
        """Selecting methods pulls their class back in and drops unrelated functions."""
        result = apply_filters(class_with_method, FilterOptions(include_types=["method"]))

        assert _names(result) == ["Class", "method"]
        assert result[0].children == [1]
        assert result[1].parent_id == 0

    def test_excluded_ancestor_makes_survivor_a_root(self, class_with_method):
        options = FilterOptions(include_types=["method"], exclude_name_pattern="^Class$")
        result = apply_filters(class_with_method, options)

        assert _names(result) == ["method"]
        assert result[0].parent_id is None

    def test_exclusion_stops_only_that_path(self, nested_tree):
        """Excluding the class still keeps the surviving method, which becomes a root."""
        options = FilterOptions(include_types=["function"], exclude_name_pattern="Service")
        result = apply_filters(nested_tree, options)
        by_name = {d.name: d for d in result}

        assert set(by_name) == {"helper", "run"}
        assert by_name["helper"].parent_id == by_name["run"].id
        assert by_name["run"].parent_id is None

    def test_deep_chain_is_restored(self, nested_tree):
        result = apply_filters(nested_tree, FilterOptions(include_types=["function"]))
        assert _names(result) == ["App", "Service", "run", "helper"]
        service = next(d for d in result if d.name == "Service")
        assert service.children == [2]

    def test_closure_property_for_many_configurations(self, nested_tree):
        configurations = [
            FilterOptions(),
            FilterOptions(include_types=["method"]),
            FilterOptions(min_complexity=3),
            FilterOptions(include_modifiers=["private"]),
            FilterOptions(name_pattern="help"),
            FilterOptions(exclude_types=["class"]),
        ]
        originals = {d.id: d for d in nested_tree}
        for options in configurations:
            result = apply_filters(nested_tree, options)
            kept = {d.id for d in result}
            for d in result:
                parent_id = originals[d.id].parent_id
                while parent_id is not None:
                    assert parent_id in kept
                    parent_id = originals[parent_id].parent_id


class TestPredicates:
    def test_no_options_keeps_everything(self, nested_tree):
        assert _names(apply_filters(nested_tree, None)) == ["App", "Service", "run", "helper", "stop"]

    def test_exclude_types(self, class_with_method):
        result = apply_filters(class_with_method, FilterOptions(exclude_types=["function"]))
        assert _names(result) == ["Class", "method"]

    def test_modifier_tokens(self, nested_tree):
        result = apply_filters(nested_tree, FilterOptions(include_modifiers=["static"]))
        assert "run" in _names(result)
        assert "stop" not in _names(result)

    def test_exclude_modifiers(self, nested_tree):
        result = apply_filters(nested_tree, FilterOptions(exclude_modifiers=["private"]))
        assert "stop" not in _names(result)

    def test_complexity_and_parameter_bounds(self, nested_tree):
        result = apply_filters(
            nested_tree,
            FilterOptions(include_types=["method"], min_complexity=3, min_parameters=1, max_parameters=2),
        )
        assert "run" in _names(result)
        assert "stop" not in _names(result)

    def test_max_complexity(self, nested_tree):
        result = apply_filters(nested_tree, FilterOptions(include_types=["method"], max_complexity=2))
        assert "stop" in _names(result)
        assert "run" not in _names(result)

    def test_name_pattern_matches_last_token(self):
        assert name_matches(re.compile("^run$"), "async run")
        assert name_matches(re.compile("async"), "async run")
        assert not name_matches(re.compile("^walk$"), "async run")


class TestInvalidRegex:
    def test_invalid_include_pattern_fails_closed(self, nested_tree):
        result = apply_filters(nested_tree, FilterOptions(name_pattern="("))
        assert result == []

    def test_invalid_exclude_pattern_fails_open(self, nested_tree):
        result = apply_filters(nested_tree, FilterOptions(exclude_name_pattern="("))
        assert len(result) == len(nested_tree)

    def test_invalid_patterns_log_warnings(self, nested_tree, caplog):
        apply_filters(nested_tree, FilterOptions(exclude_name_pattern="["))
        assert "excludeNamePattern" in caplog.text


class TestBookkeeping:
    def test_error_entries_always_retained(self, class_with_method):
        defs = class_with_method + [error_definition("Failed to read x.js: boom", def_id=9)]
        result = apply_filters(defs, FilterOptions(include_types=["interface"]))
        assert [d.kind for d in result] == ["error"]

    def test_result_sorted_by_start_line(self, make_definition):
        defs = [
            make_definition(0, "function", "late", (10, 12)),
            make_definition(1, "function", "early", (1, 3)),
        ]
        assert _names(apply_filters(defs, FilterOptions())) == ["early", "late"]

    def test_input_not_mutated(self, nested_tree):
        snapshot = copy.deepcopy(nested_tree)
        apply_filters(nested_tree, FilterOptions(include_types=["function"], exclude_name_pattern="Service"))
        assert nested_tree == snapshot

    def test_empty_input(self):
        assert apply_filters([], FilterOptions(include_types=["class"])) == []


class TestFilterOptionsFromMapping:
    def test_camel_case_keys_and_comma_values(self):
        options = FilterOptions.from_mapping({
            "includeTypes": "class,method",
            "excludeNamePattern": "^_",
            "minComplexity": 2,
            "excludePaths": ["dist/**", "build/**,tmp/**"],
        })
        assert options.include_types == ["class", "method"]
        assert options.exclude_name_pattern == "^_"
        assert options.min_complexity == 2
        assert options.exclude_paths == ["dist/**", "build/**", "tmp/**"]

    def test_unknown_key_rejected(self):
        with pytest.raises(InvalidArgument):
            FilterOptions.from_mapping({"includeKinds": ["class"]})

    def test_non_integer_metric_rejected(self):
        with pytest.raises(InvalidArgument):
            FilterOptions.from_mapping({"maxComplexity": "high"})

    def test_split_csv(self):
        assert split_csv(["a, b", "c", ""]) == ["a", "b", "c"]
        assert split_csv(None) == []
