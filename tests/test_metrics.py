"""Tests for complexity metrics, call extraction and the full per-file pipeline."""

import pytest

from code_scanner.calls import CallExtractor
from code_scanner.errors import QueryExecutionFailure
from code_scanner.languages import LanguageRegistry
from code_scanner.metrics import apply_metrics, calculate_complexity
from code_scanner.models import Definition
from code_scanner.scanner import CodeScanner


@pytest.fixture
def scanner() -> CodeScanner:
    return CodeScanner(LanguageRegistry())


def _by_name(definitions):
    return {d.name: d for d in definitions}


class TestComplexity:
    def test_straight_line_function_is_one(self, scanner: CodeScanner):
        defs = scanner.process_source("function add(a, b) { return a + b; }", "add.js")
        add = defs[0]
        assert add.complexity == 1
        assert add.parameter_count == 2

    def test_class_method_with_single_if(self, scanner: CodeScanner):
        """Method nests under its class and counts one branch."""
        source = (
            "class Greeter:\n"
            "    def greet(self, name):\n"
            "        if name:\n"
            "            return 'hi ' + name\n"
            "        return 'hi'\n"
        )
        defs = _by_name(scanner.process_source(source, "greeter.py"))

        assert len(defs) == 2
        assert defs["greet"].parent_id == defs["Greeter"].id
        assert defs["Greeter"].children == [defs["greet"].id]
        assert defs["greet"].complexity == 2

    def test_loops_branches_and_logical_operators(self, scanner: CodeScanner, sample_python_code: str):
        defs = _by_name(scanner.process_source(sample_python_code, "calc.py"))
        # for + if + and
        assert defs["multiply"].complexity == 4
        assert defs["add"].complexity == 1

    def test_non_logical_binary_expression_not_counted(self, scanner: CodeScanner):
        source = "function f(a, b) {\n  return a + b * 2 > 3 ? a : b;\n}\n"
        assert scanner.process_source(source, "f.js")[0].complexity == 2

    def test_logical_and_or_counted(self, scanner: CodeScanner):
        source = "function f(a, b, c) {\n  if (a && b || c) { return 1; }\n  return 0;\n}\n"
        assert scanner.process_source(source, "f.js")[0].complexity == 4

    def test_missing_node_defaults_to_one(self):
        assert calculate_complexity(None) == 1

    def test_non_callables_keep_defaults(self, scanner: CodeScanner, sample_python_code: str):
        defs = _by_name(scanner.process_source(sample_python_code, "calc.py"))
        calc = defs["Calculator"]
        assert calc.complexity == 1
        assert calc.parameter_count == 0
        assert calc.calls == []

    def test_apply_metrics_ignores_non_callables(self):
        d = Definition(id=0, kind="class", name="C", start_line=1, end_line=2)
        apply_metrics(d, None)
        assert d.complexity == 1
        assert d.parameter_count == 0


class TestCalls:
    def test_python_calls_deduplicated_in_first_seen_order(self, scanner: CodeScanner, sample_python_code: str):
        defs = _by_name(scanner.process_source(sample_python_code, "calc.py"))
        assert defs["multiply"].calls == ["add", "range"]
        assert defs["hello"].calls == ["greet"]

    def test_js_member_calls_use_last_segment(self, scanner: CodeScanner):
        source = "function run() {\n  console.log(load());\n  api.client.fetch();\n}\n"
        assert scanner.process_source(source, "run.js")[0].calls == ["log", "load", "fetch"]

    def test_calls_scoped_to_own_subtree(self, scanner: CodeScanner, sample_js_code: str):
        defs = _by_name(scanner.process_source(sample_js_code, "greeter.js"))
        assert defs["greet"].calls == ["format"]
        assert defs["standaloneFn"].calls == []

    def test_missing_call_query_yields_no_calls(self):
        registry = LanguageRegistry()
        support = registry.get("x.js")
        support.queries = {k: v for k, v in support.queries.items() if k != "call"}
        support._compiled.pop("call", None)
        assert CallExtractor(support).extract(object()) == []

    def test_extract_safe_swallows_query_failures(self, monkeypatch):
        support = LanguageRegistry().get("x.js")
        extractor = CallExtractor(support)

        def boom(node):
            raise QueryExecutionFailure("call", "javascript", RuntimeError("bad"))

        monkeypatch.setattr(extractor, "extract", boom)
        assert extractor.extract_safe(object(), "f in x.js") == []
