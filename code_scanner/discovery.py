"""Find the source files a scan should look at.

Patterns use gitignore syntax (via ``pathspec``) and are matched against
POSIX paths relative to the scanned directory.  The nearest ``.gitignore``
at or above the directory is honoured, and ``node_modules``/``.git`` are
always skipped.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Set

import pathspec

from . import config
from .errors import DirectoryNotFound, DiscoveryFailure

logger = logging.getLogger(__name__)

_GLOB_CHARS = set("*?[")


def find_gitignore(directory: Path) -> Optional[Path]:
    """Return the closest ``.gitignore`` in *directory* or its parents."""
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / ".gitignore"
        if candidate.is_file():
            return candidate
    return None


def _build_spec(option: str, patterns: Iterable[str]) -> pathspec.PathSpec:
    try:
        return pathspec.GitIgnoreSpec.from_lines(list(patterns))
    except (ValueError, TypeError) as exc:
        raise DiscoveryFailure(f"Invalid {option} pattern: {exc}") from exc


class IgnoreRules:
    """``.gitignore`` patterns plus the always-ignored directories."""

    def __init__(self, root: Path, gitignore: Optional[Path] = None) -> None:
        self.root = root
        self.always = _build_spec("ignore", config.ALWAYS_IGNORED)
        self.gitignore_dir: Optional[Path] = None
        self.gitignore: Optional[pathspec.PathSpec] = None
        if gitignore is not None:
            try:
                lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
            except OSError as exc:
                logger.warning("Could not read %s: %s", gitignore, exc)
            else:
                self.gitignore_dir = gitignore.parent
                self.gitignore = _build_spec(".gitignore", lines)
                logger.debug("Loaded %d .gitignore lines from %s", len(lines), gitignore)

    def ignored(self, path: Path, is_dir: bool = False) -> bool:
        suffix = "/" if is_dir else ""
        if self.always.match_file(_relative(path, self.root) + suffix):
            return True
        if self.gitignore is not None and self.gitignore_dir is not None:
            rel = _relative(path, self.gitignore_dir)
            if rel and self.gitignore.match_file(rel + suffix):
                return True
        return False


def _relative(path: Path, base: Path) -> str:
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return path.as_posix()


def _walk(start: Path, rules: IgnoreRules) -> Iterator[Path]:
    """Yield every non-ignored file below *start*, pruning ignored directories."""
    for current, dirs, files in os.walk(start):
        current_path = Path(current)
        dirs[:] = sorted(d for d in dirs if not rules.ignored(current_path / d, is_dir=True))
        for name in files:
            yield current_path / name


def discover_files(
    directory: str | Path,
    patterns: Optional[Sequence[str]] = None,
    include_paths: Optional[Sequence[str]] = None,
    exclude_paths: Optional[Sequence[str]] = None,
) -> List[Path]:
    """Return sorted absolute paths of the files to scan.

    With *include_paths*, only the listed files, directories (recursively,
    filtered by *patterns*) and globs are considered.  *exclude_paths* are
    gitignore-style globs applied last.
    """
    root = Path(directory).expanduser().resolve()
    if not root.is_dir():
        raise DirectoryNotFound(str(directory))

    patterns = list(patterns or config.DEFAULT_FILE_PATTERNS)
    wanted = _build_spec("file", patterns)
    rules = IgnoreRules(root, find_gitignore(root))

    def matches_patterns(path: Path) -> bool:
        return wanted.match_file(_relative(path, root))

    found: Set[Path] = set()
    if include_paths:
        logger.debug("Restricting discovery to %d include path(s)", len(include_paths))
        for entry in include_paths:
            found.update(_resolve_include(root, entry, rules, matches_patterns))
    else:
        try:
            found.update(p for p in _walk(root, rules) if matches_patterns(p))
        except OSError as exc:
            raise DiscoveryFailure(f"Could not walk {root}: {exc}") from exc

    files = [p for p in found if not rules.ignored(p)]

    if exclude_paths:
        excluded = _build_spec("exclude", exclude_paths)
        before = len(files)
        files = [p for p in files if not excluded.match_file(_relative(p, root))]
        logger.debug("Excluded %d file(s) via exclude paths", before - len(files))

    logger.info("Discovered %d file(s) under %s", len(files), root)
    return sorted(files)


def _resolve_include(root: Path, entry: str, rules: IgnoreRules, matches_patterns) -> Set[Path]:
    target = (root / entry).resolve() if not Path(entry).is_absolute() else Path(entry)
    if target.is_file():
        return {target}
    if target.is_dir():
        return {p for p in _walk(target, rules) if matches_patterns(p)}
    if _GLOB_CHARS & set(entry):
        spec = _build_spec("include", [entry])
        hits = {p for p in _walk(root, rules) if spec.match_file(_relative(p, root))}
        logger.debug("Include glob %s matched %d file(s)", entry, len(hits))
        return hits
    logger.warning("Included path not found: %s", target)
    return set()
