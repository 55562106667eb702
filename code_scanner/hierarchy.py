"""Rebuild definition nesting from source positions.

No grammar hands us parent links between query matches, so each definition
walks outward through the syntax nodes around its first line.  The first
ancestor whose exact line span equals another container definition's span
becomes the parent.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .models import CONTAINER_KINDS, Definition
from .syntax import SyntaxTree

logger = logging.getLogger(__name__)


def _contains(parent: Definition, child: Definition) -> bool:
    return parent.start_line <= child.start_line and child.end_line <= parent.end_line


def _is_descendant(candidate: Definition, ancestor: Definition, by_id: Dict[int, Definition]) -> bool:
    """True if *ancestor* is already on *candidate*'s parent chain."""
    current = candidate.parent_id
    while current is not None:
        if current == ancestor.id:
            return True
        parent = by_id.get(current)
        current = parent.parent_id if parent else None
    return False


def link(parent: Definition, child: Definition) -> None:
    """Set both sides of a parent/child relation."""
    child.parent_id = parent.id
    if child.id not in parent.children:
        parent.children.append(child.id)


def find_parent(
    definition: Definition,
    syntax: SyntaxTree,
    containers_by_span: Dict[Tuple[int, int], List[Definition]],
    by_id: Dict[int, Definition],
) -> Optional[Definition]:
    node = syntax.node_at_line(definition.start_line)
    while node is not None:
        for candidate in containers_by_span.get(syntax.span(node), []):
            if candidate.id == definition.id:
                continue
            if not _contains(candidate, definition):
                continue
            if _is_descendant(candidate, definition, by_id):
                continue
            return candidate
        node = syntax.parent(node)
    return None


def build_hierarchy(definitions: List[Definition], syntax: SyntaxTree) -> List[Definition]:
    """Link every non-meta definition to its smallest enclosing container, in place."""
    by_id = {d.id: d for d in definitions}
    containers_by_span: Dict[Tuple[int, int], List[Definition]] = {}
    for d in definitions:
        if d.kind in CONTAINER_KINDS:
            containers_by_span.setdefault((d.start_line, d.end_line), []).append(d)

    linked = 0
    for d in definitions:
        if d.is_meta:
            continue
        parent = find_parent(d, syntax, containers_by_span, by_id)
        if parent is not None:
            link(parent, d)
            linked += 1

    # Links arrive in query-kind order; present children in source order.
    for d in definitions:
        if len(d.children) > 1:
            d.children.sort(key=lambda child_id: (by_id[child_id].start_line, child_id))

    logger.debug("Linked %d of %d definitions to a parent", linked, len(definitions))
    return definitions
