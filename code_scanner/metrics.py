"""Cyclomatic complexity and parameter metrics for callable definitions."""

from __future__ import annotations

from typing import Any, List

from .models import Definition
from .syntax import node_text

# Node types that add a path through a callable, across the bundled grammars.
DECISION_POINT_TYPES = frozenset({
    # conditionals
    "if_statement",
    "elif_clause",
    "else_if_clause",
    "conditional_expression",
    "ternary_expression",
    # loops
    "while_statement",
    "do_statement",
    "for_statement",
    "for_in_statement",
    "foreach_statement",
    "for_each_statement",
    # switch / match arms
    "switch_case",
    "switch_default",
    "switch_section",
    "case_statement",
    "default_statement",
    "case_clause",
    "match_arm",
    # exception handlers
    "catch_clause",
    "except_clause",
    # logical operators, counted only for AND/OR
    "binary_expression",
    "boolean_operator",
})

LOGICAL_NODE_TYPES = frozenset({"binary_expression", "boolean_operator"})
LOGICAL_OPERATORS = frozenset({"&&", "||", "and", "or"})


def _is_logical(node: Any) -> bool:
    operator = node.child_by_field_name("operator")
    if operator is None:
        return False
    return node_text(operator).lower() in LOGICAL_OPERATORS


def calculate_complexity(node: Any) -> int:
    """Return the cyclomatic complexity of the subtree rooted at *node*.

    Starts at 1 and adds one per decision point.  Binary expressions only
    count when their operator is a logical AND/OR.
    """
    if node is None:
        return 1

    complexity = 1
    stack: List[Any] = [node]
    while stack:
        current = stack.pop()
        if current.type in DECISION_POINT_TYPES:
            if current.type in LOGICAL_NODE_TYPES:
                if _is_logical(current):
                    complexity += 1
            else:
                complexity += 1
        stack.extend(current.children)
    return complexity


def apply_metrics(definition: Definition, node: Any) -> None:
    """Fill ``complexity`` and ``parameter_count`` on a callable in place."""
    if not definition.is_callable:
        return
    definition.complexity = calculate_complexity(node)
    definition.parameter_count = len(definition.parameters)
