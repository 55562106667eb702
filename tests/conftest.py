"""Pytest configuration and fixtures for code scanner tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator, Optional, Tuple

import pytest

from code_scanner.models import Definition


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Point the config file at an empty temp location so user settings never leak in."""
    monkeypatch.setattr("code_scanner.config.CONFIG_FILE", tmp_path / "no-config" / "config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_python_code() -> str:
    """Sample Python module with a function, a class and methods."""
    return '''"""Sample module for testing."""

LIMIT = 10


def hello(name: str) -> str:
    """Say hello."""
    return greet(name)


class Calculator:
    """Simple calculator."""

    def add(self, a: int, b: int) -> int:
        return a + b

    def multiply(self, a, b=2):
        result = self.add(a, 0)
        for _ in range(b - 1):
            if a and b:
                result = self.add(result, a)
        return result
'''


@pytest.fixture
def sample_js_code() -> str:
    """Sample JavaScript with a class, a method and a standalone function."""
    return """class Greeter {
  greet(name) {
    if (name) {
      return format(name);
    }
    return 'nobody';
  }
}

function standaloneFn(a, b) {
  return a + b;
}
"""


@pytest.fixture
def sample_project(temp_dir: Path, sample_python_code: str, sample_js_code: str) -> Path:
    """Small multi-language project tree with ignored and unsupported files."""
    (temp_dir / "pkg").mkdir()
    (temp_dir / "pkg" / "calc.py").write_text(sample_python_code, encoding="utf-8")
    (temp_dir / "web").mkdir()
    (temp_dir / "web" / "greeter.js").write_text(sample_js_code, encoding="utf-8")
    (temp_dir / "web" / "types.ts").write_text(
        "export function total(items: number[]): number {\n  return items.length;\n}\n",
        encoding="utf-8",
    )
    (temp_dir / "node_modules" / "dep").mkdir(parents=True)
    (temp_dir / "node_modules" / "dep" / "index.js").write_text("function vendored() {}\n", encoding="utf-8")
    (temp_dir / "build").mkdir()
    (temp_dir / "build" / "out.js").write_text("function generated() {}\n", encoding="utf-8")
    (temp_dir / "notes.txt").write_text("not code\n", encoding="utf-8")
    (temp_dir / ".gitignore").write_text("build/\n", encoding="utf-8")
    return temp_dir


DefinitionFactory = Callable[..., Definition]


@pytest.fixture
def make_definition() -> DefinitionFactory:
    """Factory for hand-built definitions: ``make_definition(id, kind, name, (start, end), ...)``."""

    def _make(
        def_id: int,
        kind: str,
        name: str,
        lines: Tuple[int, int],
        parent_id: Optional[int] = None,
        children=None,
        **extra,
    ) -> Definition:
        return Definition(
            id=def_id,
            kind=kind,
            name=name,
            start_line=lines[0],
            end_line=lines[1],
            parent_id=parent_id,
            children=list(children or []),
            **extra,
        )

    return _make
