"""Collect the names a callable invokes, using the language's ``call`` query."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from tree_sitter import QueryCursor

from .errors import QueryExecutionFailure
from .languages import LanguageSupport
from .syntax import node_text

logger = logging.getLogger(__name__)


class CallExtractor:
    """Run the ``call`` query scoped to one definition's subtree."""

    def __init__(self, support: LanguageSupport) -> None:
        self.support = support

    def extract(self, node: Any) -> List[str]:
        """Return de-duplicated callee names in first-seen order.

        Raises :class:`QueryExecutionFailure` when the query cannot run.
        """
        query = self.support.query("call")
        if query is None:
            return []
        try:
            matches = QueryCursor(query).matches(node)
        except Exception as exc:
            raise QueryExecutionFailure("call", self.support.name, exc) from exc

        # Callee nodes can come back out of document order across patterns.
        found: Dict[int, str] = {}
        for _pattern_idx, captures in matches:
            for callee in captures.get("call_name", []):
                found.setdefault(callee.start_byte, node_text(callee))

        names: List[str] = []
        for _start, name in sorted(found.items()):
            if name and name not in names:
                names.append(name)
        return names

    def extract_safe(self, node: Any, label: str) -> List[str]:
        """Like :meth:`extract` but a failure is logged and yields no calls."""
        try:
            return self.extract(node)
        except QueryExecutionFailure as exc:
            logger.warning("Call extraction skipped for %s: %s", label, exc)
            return []
