"""Definition filtering with ancestor preservation.

Filtering never leaves an orphaned subtree: a surviving definition pulls its
enclosing chain back into the result, unless an ancestor is explicitly
excluded by name, in which case the survivor becomes a new root.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Set

from .errors import InvalidArgument, InvalidRegex
from .models import DEFINITION_KINDS, Definition

logger = logging.getLogger(__name__)


def split_csv(values: Optional[Iterable[str]]) -> List[str]:
    """Flatten ``["a,b", "c"]`` into ``["a", "b", "c"]``."""
    result: List[str] = []
    for value in values or []:
        if not isinstance(value, str):
            raise InvalidArgument(f"Expected a string, got {value!r}")
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


# camelCase names used by JSON and tool callers.
WIRE_NAMES = {
    "includeTypes": "include_types",
    "excludeTypes": "exclude_types",
    "includeModifiers": "include_modifiers",
    "excludeModifiers": "exclude_modifiers",
    "namePattern": "name_pattern",
    "excludeNamePattern": "exclude_name_pattern",
    "includePaths": "include_paths",
    "excludePaths": "exclude_paths",
    "minComplexity": "min_complexity",
    "maxComplexity": "max_complexity",
    "minParameters": "min_parameters",
    "maxParameters": "max_parameters",
}


@dataclass
class FilterOptions:
    include_types: List[str] = field(default_factory=list)
    exclude_types: List[str] = field(default_factory=list)
    include_modifiers: List[str] = field(default_factory=list)
    exclude_modifiers: List[str] = field(default_factory=list)
    name_pattern: Optional[str] = None
    exclude_name_pattern: Optional[str] = None
    # File-level options, consumed by discovery rather than the predicate.
    include_paths: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    min_complexity: Optional[int] = None
    max_complexity: Optional[int] = None
    min_parameters: Optional[int] = None
    max_parameters: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FilterOptions":
        """Build options from camelCase (or snake_case) keys.

        List values may be given as comma-separated strings.  Unknown keys or
        values of the wrong type raise :class:`InvalidArgument`.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        defaults = cls()
        for key, value in data.items():
            attr = WIRE_NAMES.get(key, key)
            if attr not in known:
                raise InvalidArgument(f"Unknown filter option: {key}")
            if value is None:
                continue
            current = getattr(defaults, attr)
            if isinstance(current, list):
                if isinstance(value, str):
                    value = [value]
                if not isinstance(value, (list, tuple)):
                    raise InvalidArgument(f"Filter option {key} must be a list of strings")
                kwargs[attr] = split_csv(value)
            elif attr in ("name_pattern", "exclude_name_pattern"):
                if not isinstance(value, str):
                    raise InvalidArgument(f"Filter option {key} must be a string")
                kwargs[attr] = value
            else:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise InvalidArgument(f"Filter option {key} must be an integer")
                kwargs[attr] = value
        return cls(**kwargs)


# ===================================================================
# Predicate helpers
# ===================================================================

def _compile(option: str, pattern: Optional[str]) -> Optional[Pattern[str]]:
    """Compile *pattern*, raising :class:`InvalidRegex` when it is malformed."""
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidRegex(option, pattern, exc) from exc


def name_matches(regex: Pattern[str], name: str) -> bool:
    """Test both the full name and its last whitespace-delimited token."""
    tokens = name.split()
    short = tokens[-1] if tokens else name
    return bool(regex.search(short) or regex.search(name))


class _Predicate:
    """All basic filter conditions, ANDed."""

    def __init__(self, options: FilterOptions) -> None:
        self.options = options
        self.include_invalid = False
        self.include_re: Optional[Pattern[str]] = None
        self.exclude_re: Optional[Pattern[str]] = None

        # An unusable include pattern matches nothing; an unusable exclude
        # pattern excludes nothing.
        try:
            self.include_re = _compile("namePattern", options.name_pattern)
        except InvalidRegex as exc:
            logger.warning("%s; no definitions will match", exc)
            self.include_invalid = True
        try:
            self.exclude_re = _compile("excludeNamePattern", options.exclude_name_pattern)
        except InvalidRegex as exc:
            logger.warning("%s; name exclusion skipped", exc)

        unknown = [k for k in options.include_types + options.exclude_types if k not in DEFINITION_KINDS]
        if unknown:
            logger.warning("Unknown definition kind(s) in filter: %s", ", ".join(unknown))

    def __call__(self, d: Definition) -> bool:
        opts = self.options
        if opts.include_types and d.kind not in opts.include_types:
            return False
        if opts.exclude_types and d.kind in opts.exclude_types:
            return False

        modifiers = d.modifiers
        if opts.include_modifiers:
            if not modifiers or not any(m in modifiers for m in opts.include_modifiers):
                return False
        if opts.exclude_modifiers and modifiers:
            if any(m in modifiers for m in opts.exclude_modifiers):
                return False

        if self.include_invalid:
            return False
        if self.include_re is not None and not name_matches(self.include_re, d.name):
            return False
        if self.exclude_re is not None and name_matches(self.exclude_re, d.name):
            return False

        if opts.min_complexity is not None and d.complexity < opts.min_complexity:
            return False
        if opts.max_complexity is not None and d.complexity > opts.max_complexity:
            return False
        if opts.min_parameters is not None and d.parameter_count < opts.min_parameters:
            return False
        if opts.max_parameters is not None and d.parameter_count > opts.max_parameters:
            return False
        return True


# ===================================================================
# Filter engine
# ===================================================================

def apply_filters(definitions: List[Definition], options: Optional[FilterOptions] = None) -> List[Definition]:
    """Return a filtered copy of one file's definitions.

    The input list is not modified.  Error/metadata entries are always kept,
    survivors keep their non-excluded ancestors, links to dropped definitions
    are removed, and the result is ordered by start line.
    """
    if not definitions:
        return []
    options = options or FilterOptions()

    working = copy.deepcopy(definitions)
    meta = [d for d in working if d.is_meta]
    regular = [d for d in working if not d.is_meta]

    predicate = _Predicate(options)
    survivors = [d for d in regular if predicate(d)]

    included = _with_ancestors(survivors, regular, predicate.exclude_re)

    result = [d for d in regular if d.id in included]
    for d in result:
        d.children = [child for child in d.children if child in included]
        if d.parent_id is not None and d.parent_id not in included:
            d.parent_id = None

    result = meta + result
    result.sort(key=lambda d: d.start_line)
    return result


def _with_ancestors(
    survivors: List[Definition],
    regular: List[Definition],
    exclude_re: Optional[Pattern[str]],
) -> Set[int]:
    by_id = {d.id: d for d in regular}
    included = {d.id for d in survivors}
    processed: Set[int] = set()
    pending = list(survivors)

    while pending:
        current = pending.pop()
        if current.id in processed:
            continue
        processed.add(current.id)

        if current.parent_id is None or current.parent_id in included:
            continue
        parent = by_id.get(current.parent_id)
        if parent is None:
            continue
        if exclude_re is not None and name_matches(exclude_re, parent.name):
            # Stop this upward path only; other branches carry on.
            continue
        included.add(parent.id)
        pending.append(parent)

    return included
