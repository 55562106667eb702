"""Scan orchestration: discover, extract, enrich, link, filter, render."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from . import config
from .calls import CallExtractor
from .discovery import discover_files
from .errors import DirectoryNotFound, InvalidArgument, ReadFailure
from .extractor import DefinitionExtractor
from .filters import FilterOptions, apply_filters
from .hierarchy import build_hierarchy
from .languages import LanguageRegistry, default_registry
from .metrics import apply_metrics
from .models import DETAIL_LEVELS, OUTPUT_FORMATS, Definition, DetailLevel, OutputFormat, error_definition
from .renderers import render

logger = logging.getLogger(__name__)

FilterInput = Union[FilterOptions, Mapping[str, Any], None]


def coerce_filter_options(filter_options: FilterInput) -> FilterOptions:
    if filter_options is None:
        return FilterOptions()
    if isinstance(filter_options, FilterOptions):
        return filter_options
    if isinstance(filter_options, Mapping):
        return FilterOptions.from_mapping(filter_options)
    raise InvalidArgument(f"filter_options must be a mapping, got {type(filter_options).__name__}")


class CodeScanner:
    """Runs the per-file pipeline and assembles multi-file results."""

    def __init__(
        self,
        registry: Optional[LanguageRegistry] = None,
        max_file_size: int = config.MAX_FILE_SIZE,
    ) -> None:
        self.registry = registry or default_registry()
        self.extractor = DefinitionExtractor(self.registry)
        self.max_file_size = max_file_size

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------

    def process_source(self, source: str, file_path: Union[str, Path]) -> List[Definition]:
        """Extract, enrich and link the definitions of one file's text."""
        extracted = self.extractor.extract(source, file_path)
        if extracted.support is None or extracted.syntax is None:
            return extracted.definitions

        calls = CallExtractor(extracted.support)
        for d in extracted.definitions:
            if not d.is_callable:
                continue
            node = extracted.nodes.get(d.id)
            apply_metrics(d, node)
            if d.id in extracted.param_blocks and node is not None:
                d.calls = calls.extract_safe(node, f"{d.name} in {extracted.path}")

        return build_hierarchy(extracted.definitions, extracted.syntax)

    def read_source(self, path: Path) -> str:
        try:
            size = path.stat().st_size
            if size > self.max_file_size:
                raise ReadFailure(str(path), f"file is {size} bytes, limit is {self.max_file_size}")
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadFailure(str(path), str(exc)) from exc

    def process_file(self, path: Path) -> List[Definition]:
        try:
            source = self.read_source(path)
        except ReadFailure as exc:
            logger.warning("%s", exc)
            return [error_definition(str(exc))]
        return self.process_source(source, path)

    # ------------------------------------------------------------------
    # Directory scan
    # ------------------------------------------------------------------

    def collect(
        self,
        directory: Union[str, Path],
        file_patterns: Optional[Sequence[str]] = None,
        filter_options: FilterInput = None,
    ) -> Dict[str, List[Definition]]:
        """Return ``{relative_posix_path: filtered definitions}`` for *directory*."""
        options = coerce_filter_options(filter_options)
        root = Path(directory).expanduser().resolve()
        if not root.is_dir():
            raise DirectoryNotFound(str(directory))

        files = discover_files(
            root,
            file_patterns,
            include_paths=options.include_paths,
            exclude_paths=options.exclude_paths,
        )

        results: Dict[str, List[Definition]] = {}
        for path in files:
            started = time.perf_counter()
            definitions = apply_filters(self.process_file(path), options)
            rel = path.relative_to(root).as_posix() if path.is_relative_to(root) else path.as_posix()
            logger.debug(
                "Processed %s: %d definition(s) kept in %.1f ms",
                rel, len(definitions), (time.perf_counter() - started) * 1000,
            )
            if definitions:
                results[rel] = definitions
        return results

    def scan(
        self,
        directory: Union[str, Path],
        file_patterns: Optional[Sequence[str]] = None,
        output_format: OutputFormat = config.DEFAULT_OUTPUT_FORMAT,
        detail_level: DetailLevel = config.DEFAULT_DETAIL_LEVEL,
        filter_options: FilterInput = None,
    ) -> str:
        if output_format not in OUTPUT_FORMATS:
            raise InvalidArgument(
                f"Unknown output format: {output_format!r} (expected one of {', '.join(OUTPUT_FORMATS)})"
            )
        if detail_level not in DETAIL_LEVELS:
            raise InvalidArgument(
                f"Unknown detail level: {detail_level!r} (expected one of {', '.join(DETAIL_LEVELS)})"
            )

        started = time.perf_counter()
        results = self.collect(directory, file_patterns, filter_options)
        output = render(output_format, results, detail_level, str(directory))
        logger.info(
            "Scanned %s: %d file(s) with results in %.2fs",
            directory, len(results), time.perf_counter() - started,
        )
        return output


def scan(
    directory: Union[str, Path],
    file_patterns: Optional[Sequence[str]] = None,
    output_format: OutputFormat = config.DEFAULT_OUTPUT_FORMAT,
    detail_level: DetailLevel = config.DEFAULT_DETAIL_LEVEL,
    filter_options: FilterInput = None,
) -> str:
    """Scan *directory* and return the rendered catalog as text.

    Raises :class:`DirectoryNotFound` for a missing directory and
    :class:`InvalidArgument` for an unknown format, detail level or filter key.
    """
    return CodeScanner().scan(directory, file_patterns, output_format, detail_level, filter_options)
