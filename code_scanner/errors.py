"""Exception taxonomy for the scanner.

Per-file problems (unsupported type, parse/read failures) are normally turned
into ``error`` definitions by :mod:`code_scanner.scanner`; only
``DirectoryNotFound`` and ``InvalidArgument`` are expected to reach callers of
:func:`code_scanner.scanner.scan`.
"""

from __future__ import annotations


class CodeScannerError(Exception):
    """Base class for all scanner errors."""


class UnsupportedFileType(CodeScannerError):
    def __init__(self, path: str, extension: str) -> None:
        self.path = path
        self.extension = extension
        super().__init__(f"Unsupported file type '{extension or '<none>'}': {path}")


class ParseFailure(CodeScannerError):
    def __init__(self, path: str, language: str, error: Exception) -> None:
        self.path = path
        self.language = language
        self.original_error = error
        super().__init__(f"Failed to parse {path} as {language}: {error}")


class QueryExecutionFailure(CodeScannerError):
    def __init__(self, kind: str, language: str, error: Exception) -> None:
        self.kind = kind
        self.language = language
        self.original_error = error
        super().__init__(f"Query '{kind}' failed for {language}: {error}")


class ReadFailure(CodeScannerError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read {path}: {reason}")


class DirectoryNotFound(CodeScannerError):
    def __init__(self, directory: str) -> None:
        self.directory = directory
        super().__init__(f"Directory not found: {directory}")


class DiscoveryFailure(CodeScannerError):
    """File discovery could not complete (bad glob, unreadable tree)."""


class InvalidRegex(CodeScannerError):
    def __init__(self, option: str, pattern: str, error: Exception) -> None:
        self.option = option
        self.pattern = pattern
        super().__init__(f"Invalid regex for {option}: {pattern!r} ({error})")


class InvalidArgument(CodeScannerError, ValueError):
    """Bad input at the public boundary (format, detail level, filter keys)."""
