"""Render filtered scan results as XML, Markdown or JSON.

Every renderer takes ``{relative_path: [Definition, ...]}`` and walks each
file's forest from its roots through ``children``.  Renderers only read their
input.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import InvalidArgument
from .models import DETAIL_LEVELS, Definition

Results = Mapping[str, List[Definition]]

VALUE_PREVIEW_LIMIT = 50
# Kinds whose ``value`` is the initializer itself and would only repeat the source.
_VALUE_SUPPRESSED_KINDS = frozenset({"variable", "property"})


def _check_detail(detail: str) -> None:
    if detail not in DETAIL_LEVELS:
        raise InvalidArgument(f"Unknown detail level: {detail!r}")


def _shows_value(d: Definition) -> bool:
    return bool(d.value) and d.kind not in _VALUE_SUPPRESSED_KINDS


def walk_forest(definitions: List[Definition]) -> Iterator[Tuple[Definition, int]]:
    """Yield ``(definition, depth)`` pairs in render order.

    Roots are definitions without a parent, in list order; children follow
    their parent in ``children`` order.  Ids that do not resolve are skipped.
    """
    by_id = {d.id: d for d in definitions if not d.is_meta}
    stack = [(d, 0) for d in reversed(roots(definitions))]
    seen = set()
    while stack:
        current, depth = stack.pop()
        key = (current.id, current.is_meta)
        if key in seen:
            continue
        seen.add(key)
        yield current, depth
        for child_id in reversed(current.children):
            child = by_id.get(child_id)
            if child is not None:
                stack.append((child, depth + 1))


def roots(definitions: List[Definition]) -> List[Definition]:
    return [d for d in definitions if d.parent_id is None]


def _children_of(d: Definition, by_id: Dict[int, Definition]) -> List[Definition]:
    return [by_id[c] for c in d.children if c in by_id]


# ===================================================================
# XML
# ===================================================================

def _xml_attributes(d: Definition, detail: str) -> Dict[str, str]:
    attrs = {"type": d.kind, "name": d.name}
    if detail != "minimal":
        attrs["startLine"] = str(d.start_line)
        attrs["endLine"] = str(d.end_line)
        if d.modifier:
            attrs["modifier"] = d.modifier
    if detail == "detailed":
        if d.data_type:
            attrs["dataType"] = d.data_type
        if _shows_value(d):
            attrs["value"] = d.value
        if d.return_type:
            attrs["returnType"] = d.return_type
    return attrs


def render_xml(results: Results, detail: str = "standard") -> str:
    _check_detail(detail)
    root = ET.Element("CodeScanResults")

    for path, definitions in results.items():
        file_el = ET.SubElement(root, "File", {"path": path})
        by_id = {d.id: d for d in definitions if not d.is_meta}

        def add(d: Definition, parent_el: ET.Element) -> None:
            el = ET.SubElement(parent_el, "Definition", _xml_attributes(d, detail))
            if detail == "detailed" and d.parameters:
                params_el = ET.SubElement(el, "Parameters")
                for param in d.parameters:
                    attrs = {"name": param.name}
                    if param.type:
                        attrs["type"] = param.type
                    ET.SubElement(params_el, "Parameter", attrs)
            if detail == "detailed" and d.calls:
                calls_el = ET.SubElement(el, "Calls")
                for call in d.calls:
                    ET.SubElement(calls_el, "Call", {"name": call})
            for child in _children_of(d, by_id):
                add(child, el)

        for d in roots(definitions):
            add(d, file_el)

    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body


# ===================================================================
# Markdown
# ===================================================================

def _preview(value: str) -> str:
    if len(value) > VALUE_PREVIEW_LIMIT:
        return value[:VALUE_PREVIEW_LIMIT] + "..."
    return value


def _markdown_details(d: Definition) -> str:
    details: List[str] = []
    if d.data_type:
        details.append(f"DataType: `{d.data_type}`")
    if _shows_value(d):
        details.append(f"Value: `{_preview(d.value)}`")
    if d.parameters:
        params = ", ".join(
            f"`{p.name}: {p.type}`" if p.type else f"`{p.name}`" for p in d.parameters
        )
        details.append(f"Params: {params}")
    if d.return_type:
        details.append(f"Returns: `{d.return_type}`")
    if d.calls:
        details.append("Calls: " + ", ".join(f"`{c}`" for c in d.calls))
    return f" {{ {'; '.join(details)} }}" if details else ""


def markdown_line(d: Definition, detail: str, depth: int = 0) -> str:
    line = f"{'  ' * depth}- **{d.kind.upper()}**: `{d.name}`"
    if detail == "minimal":
        return line
    line += f" (Lines: {d.start_line}-{d.end_line})"
    if d.modifier:
        line += f" [`{d.modifier}`]"
    if detail == "detailed":
        line += _markdown_details(d)
    return line


def render_markdown(results: Results, detail: str = "standard", directory: str = ".") -> str:
    _check_detail(detail)
    lines = [f"# Code Scan Results for {directory}", ""]
    for path in sorted(results):
        lines.append(f"## File: `{path}`")
        lines.append("")
        for d, depth in walk_forest(results[path]):
            lines.append(markdown_line(d, detail, depth))
        lines.append("")
    return "\n".join(lines) + "\n"


# ===================================================================
# JSON
# ===================================================================

def definition_view(d: Definition, detail: str, by_id: Dict[int, Definition]) -> Dict[str, Any]:
    """Nested, detail-pruned dictionary for one definition and its subtree."""
    view: Dict[str, Any] = {"type": d.kind, "name": d.name}
    if detail != "minimal":
        view["startLine"] = d.start_line
        view["endLine"] = d.end_line
        if d.modifier:
            view["modifier"] = d.modifier
    if detail == "detailed":
        if d.data_type:
            view["dataType"] = d.data_type
        if _shows_value(d):
            view["value"] = d.value
        if d.parameters:
            view["parameters"] = [
                {"name": p.name, "type": p.type} if p.type else {"name": p.name}
                for p in d.parameters
            ]
        if d.return_type:
            view["returnType"] = d.return_type
        if d.calls:
            view["calls"] = list(d.calls)
    children = [definition_view(c, detail, by_id) for c in _children_of(d, by_id)]
    if children:
        view["children"] = children
    return view


def render_json(results: Results, detail: str = "standard") -> str:
    _check_detail(detail)
    output: Dict[str, List[Dict[str, Any]]] = {}
    for path, definitions in results.items():
        by_id = {d.id: d for d in definitions if not d.is_meta}
        output[path] = [definition_view(d, detail, by_id) for d in roots(definitions)]
    return json.dumps(output, indent=2)


RENDERERS: Dict[str, Callable[..., str]] = {
    "xml": render_xml,
    "markdown": render_markdown,
    "json": render_json,
}


def render(output_format: str, results: Results, detail: str = "standard", directory: Optional[str] = None) -> str:
    """Dispatch to the renderer for *output_format*."""
    if output_format not in RENDERERS:
        raise InvalidArgument(f"Unknown output format: {output_format!r}")
    if output_format == "markdown":
        return render_markdown(results, detail, directory or ".")
    return RENDERERS[output_format](results, detail)
