"""Multi-language structural code scanner built on tree-sitter."""

from .errors import CodeScannerError, DirectoryNotFound, InvalidArgument
from .filters import FilterOptions, apply_filters
from .models import Definition, Parameter
from .scanner import CodeScanner, scan

__version__ = "0.1.0"

__all__ = [
    "CodeScanner",
    "CodeScannerError",
    "Definition",
    "DirectoryNotFound",
    "FilterOptions",
    "InvalidArgument",
    "Parameter",
    "apply_filters",
    "scan",
]
