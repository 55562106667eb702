"""Turn pattern-query matches into flat :class:`Definition` records.

For every definition kind with a query, each match that binds ``@name`` and
the kind's anchor capture becomes one definition.  Optional captures fill the
modifier, data type, value, return type and parameter list.

Unsupported files, files without queries and hard parse failures yield a
single ``error`` definition instead of raising, so one bad file never stops a
multi-file scan.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

from tree_sitter import QueryCursor

from .errors import ParseFailure, UnsupportedFileType
from .languages import LanguageRegistry, LanguageSupport, default_registry
from .models import Definition, Parameter, error_definition
from .syntax import TreeSitterSyntax, node_text

logger = logging.getLogger(__name__)

# ``function name(): string {`` style return types.
RETURN_TYPE_RE = re.compile(r":\s*(\w+)\s*\{?$")
# ``int count`` / ``string $name`` parameter fragments.
TYPED_PARAM_RE = re.compile(r"^(\S+)\s+(\$\S+|\S+)")


@dataclass
class ExtractedFile:
    """Definitions for one file plus the syntax handles later stages need."""

    path: str
    definitions: List[Definition]
    nodes: Dict[int, Any] = field(default_factory=dict)
    param_blocks: Dict[int, Any] = field(default_factory=dict)
    syntax: Optional[TreeSitterSyntax] = None
    support: Optional[LanguageSupport] = None


class DefinitionExtractor:
    """Run a language's definition queries against a parsed file."""

    def __init__(self, registry: Optional[LanguageRegistry] = None) -> None:
        self.registry = registry or default_registry()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def extract(self, source: str, file_path: str | Path) -> ExtractedFile:
        path = str(file_path)
        support = self.registry.get(path)
        if support is None:
            exc = UnsupportedFileType(path, Path(path).suffix.lower())
            logger.debug("%s", exc)
            return ExtractedFile(path, [error_definition("Unsupported file type")])

        if not support.definition_kinds():
            logger.debug("No queries defined for %s (%s)", path, support.name)
            return ExtractedFile(path, [error_definition("No queries defined for file type")])

        try:
            data = source.encode("utf-8")
            tree = support.new_parser().parse(data)
        except Exception as exc:
            failure = ParseFailure(path, support.name, exc)
            logger.error("%s", failure)
            return ExtractedFile(path, [error_definition(f"Failed to parse {path}")])

        result = ExtractedFile(path, [], syntax=TreeSitterSyntax(tree, data), support=support)
        next_id = 0
        for kind in support.definition_kinds():
            query = support.query(kind)
            if query is None:
                continue
            try:
                matches = QueryCursor(query).matches(tree.root_node)
            except Exception as exc:
                logger.error("Error executing query for %s in %s: %s", kind, path, exc)
                continue

            seen: Set[Tuple[int, int, str]] = set()
            for _pattern_idx, captures in matches:
                name_nodes = captures.get("name")
                anchor_nodes = captures.get(kind)
                if not name_nodes or not anchor_nodes:
                    continue
                anchor = anchor_nodes[0]
                name = node_text(name_nodes[0])
                key = (anchor.start_byte, anchor.end_byte, name)
                if key in seen:
                    continue
                seen.add(key)

                modifiers = modifier_nodes(anchor, name_nodes[0], captures, support.modifier_tokens)
                definition = self._build_definition(next_id, kind, name, anchor, modifiers, captures)
                params = _first(captures, "params")
                if definition.is_callable:
                    if params is not None:
                        definition.parameters = self.parse_parameters(support, params)
                        result.param_blocks[next_id] = params
                    if definition.return_type is None:
                        definition.return_type = signature_return_type(anchor)

                result.definitions.append(definition)
                result.nodes[next_id] = anchor
                next_id += 1

        logger.debug("Extracted %d definitions from %s", len(result.definitions), path)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_definition(
        def_id: int,
        kind: str,
        name: str,
        anchor: Any,
        modifiers: List[Any],
        captures: Dict[str, List[Any]],
    ) -> Definition:
        modifier = " ".join(node_text(n) for n in modifiers) or None
        return Definition(
            id=def_id,
            kind=kind,
            name=name,
            start_line=anchor.start_point[0] + 1,
            end_line=anchor.end_point[0] + 1,
            modifier=modifier,
            data_type=_first_text(captures, "dataType"),
            value=_first_text(captures, "value"),
            return_type=_first_text(captures, "return_type"),
        )

    def parse_parameters(self, support: LanguageSupport, block: Any) -> List[Parameter]:
        """Parse a parameter block, preferring the structured ``parameter`` query."""
        parameters = self._structured_parameters(support, block)
        if parameters:
            return parameters
        text = node_text(block)
        if len(text) > 2:
            return parse_parameter_text(text)
        return []

    @staticmethod
    def _structured_parameters(support: LanguageSupport, block: Any) -> List[Parameter]:
        query = support.query("parameter")
        if query is None:
            return []
        try:
            matches = QueryCursor(query).matches(block)
        except Exception as exc:
            logger.warning("Parameter query failed for %s: %s", support.name, exc)
            return []

        found: Dict[int, Parameter] = {}
        for _pattern_idx, captures in matches:
            name_node = _first(captures, "param_name")
            if name_node is None or not _owned_by(name_node, block):
                continue
            found.setdefault(name_node.start_byte, Parameter(
                name=node_text(name_node),
                type=_first_text(captures, "param_type"),
            ))
        return [found[start] for start in sorted(found)]


# ===================================================================
# Module-level helpers
# ===================================================================

def _first(captures: Dict[str, List[Any]], name: str) -> Optional[Any]:
    nodes = captures.get(name)
    return nodes[0] if nodes else None


def _first_text(captures: Dict[str, List[Any]], name: str) -> Optional[str]:
    node = _first(captures, name)
    return node_text(node) if node is not None else None


def modifier_nodes(anchor: Any, name_node: Any, captures: Dict[str, List[Any]], tokens: FrozenSet[str]) -> List[Any]:
    """``@modifier`` captures plus modifier children ahead of the name, in source order."""
    nodes = {n.start_byte: n for n in captures.get("modifier", [])}
    if tokens:
        for child in anchor.children:
            if child.start_byte >= name_node.start_byte:
                break
            if child.type in tokens:
                nodes.setdefault(child.start_byte, child)
    return [nodes[start] for start in sorted(nodes)]


def _owned_by(node: Any, block: Any) -> bool:
    """True when *node* belongs to *block* and not to a nested block of the same type."""
    current = node.parent
    while current is not None:
        if current.type == block.type:
            return current.start_byte == block.start_byte and current.end_byte == block.end_byte
        current = current.parent
    return False


def parse_parameter_text(text: str) -> List[Parameter]:
    """Best-effort split of a raw parameter block such as ``(int a, $b)``."""
    inner = text.strip()
    if len(inner) >= 2 and inner[0] in "([" and inner[-1] in ")]":
        inner = inner[1:-1]
    parameters: List[Parameter] = []
    for piece in inner.split(","):
        trimmed = piece.strip()
        if not trimmed:
            continue
        match = TYPED_PARAM_RE.match(trimmed)
        if match:
            parameters.append(Parameter(name=match.group(2), type=match.group(1)))
        else:
            parameters.append(Parameter(name=trimmed))
    return parameters


def definition_signature(node: Any) -> str:
    """Header text of a definition: everything before its body."""
    body = node.child_by_field_name("body")
    if body is not None and body.start_byte > node.start_byte:
        raw = (node.text or b"")[: body.start_byte - node.start_byte]
        signature = raw.decode("utf-8", errors="replace")
    elif node.start_point[0] == node.end_point[0]:
        signature = node_text(node)
    else:
        text = node_text(node)
        brace = text.find("{")
        signature = text[:brace] if brace > -1 else text.split("\n")[0]
    return re.sub(r"\s+", " ", signature).strip()


def signature_return_type(node: Any) -> Optional[str]:
    match = RETURN_TYPE_RE.search(definition_signature(node))
    return match.group(1) if match else None
