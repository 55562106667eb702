"""Minimal syntax-tree capability used to rebuild definition nesting.

The hierarchy builder only needs three operations, so any backend that can
answer them (tree-sitter, a test double, another parser) can be plugged in.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class SyntaxTree(Protocol):
    """Read-only view of a parsed file, in 1-based line numbers."""

    def node_at_line(self, line: int) -> Optional[Any]:
        """Smallest node at the start of *line*'s first non-blank column."""
        ...

    def parent(self, node: Any) -> Optional[Any]:
        ...

    def span(self, node: Any) -> Tuple[int, int]:
        """Inclusive ``(start_line, end_line)`` of *node*."""
        ...


class TreeSitterSyntax:
    """:class:`SyntaxTree` adapter over a ``tree_sitter.Tree``."""

    def __init__(self, tree: Any, source: bytes = b"") -> None:
        self._root = tree.root_node
        self._lines = source.split(b"\n")

    @property
    def root(self) -> Any:
        return self._root

    def node_at_line(self, line: int) -> Optional[Any]:
        """Smallest node at the first non-blank column of *line*.

        Looking past the indentation keeps a one-line container (``  enum E { A, B }``)
        as the start of the walk instead of whatever block surrounds it.
        """
        if line < 1:
            return None
        column = 0
        if line <= len(self._lines):
            text = self._lines[line - 1]
            column = len(text) - len(text.lstrip())
        point = (line - 1, column)
        return self._root.descendant_for_point_range(point, point)

    def parent(self, node: Any) -> Optional[Any]:
        return node.parent

    def span(self, node: Any) -> Tuple[int, int]:
        return node.start_point[0] + 1, node.end_point[0] + 1


def node_text(node: Any) -> str:
    """Decode a tree-sitter node's source text."""
    raw = node.text
    if raw is None:
        return ""
    return raw.decode("utf-8", errors="replace")
