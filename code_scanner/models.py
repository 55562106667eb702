"""Core data models shared by extraction, filtering and rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

DetailLevel = Literal["minimal", "standard", "detailed"]
OutputFormat = Literal["xml", "markdown", "json"]

DETAIL_LEVELS = ("minimal", "standard", "detailed")
OUTPUT_FORMATS = ("xml", "markdown", "json")

DEFINITION_KINDS = (
    "function",
    "method",
    "class",
    "interface",
    "namespace",
    "enum",
    "enumMember",
    "variable",
    "property",
)

CALLABLE_KINDS = frozenset({"function", "method"})

# Kinds that can own other definitions when rebuilding the hierarchy.
CONTAINER_KINDS = frozenset({"class", "namespace", "interface", "enum", "method", "function"})

# Bookkeeping entries: never linked, never filtered.
META_KINDS = frozenset({"error", "metadata"})


@dataclass
class Parameter:
    name: str
    type: Optional[str] = None


@dataclass
class Definition:
    """One structural element found in a source file.

    ``parent_id`` and ``children`` are plain id relations over the flat
    per-file list; nothing here owns anything else.
    """

    id: int
    kind: str
    name: str
    start_line: int
    end_line: int
    modifier: Optional[str] = None
    data_type: Optional[str] = None
    value: Optional[str] = None
    return_type: Optional[str] = None
    parameters: List[Parameter] = field(default_factory=list)
    calls: List[str] = field(default_factory=list)
    complexity: int = 1
    parameter_count: int = 0
    parent_id: Optional[int] = None
    children: List[int] = field(default_factory=list)

    @property
    def loc(self) -> int:
        return self.end_line - self.start_line + 1

    @property
    def is_callable(self) -> bool:
        return self.kind in CALLABLE_KINDS

    @property
    def is_meta(self) -> bool:
        return self.kind in META_KINDS

    @property
    def modifiers(self) -> List[str]:
        """Space-split modifier tokens (``"public static"`` -> two tokens)."""
        return self.modifier.split() if self.modifier else []


def error_definition(name: str, def_id: int = 0) -> Definition:
    """Synthetic in-band marker for a file that could not be processed."""
    return Definition(id=def_id, kind="error", name=name, start_line=0, end_line=0)
