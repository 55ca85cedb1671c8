"""Shared pytest fixtures for the tsbuild test suite.

Provides fixtures for:
- A temporary TypeScript project tree
- A fake transformation engine that needs no Node.js
- Compiler and builder instances wired to both
"""

from pathlib import Path
from typing import Any

import pytest

from tsbuild_library.compilation import BatchBuilder
from tsbuild_library.compilation import FileCompiler
from tsbuild_library.compilation import TransformResult
from tsbuild_library.errors import TransformError
from tsbuild_library.exclusion import ExcludeRuleSet


class FakeTransformer:
    """Identity transformer that records calls.

    Returns the source text unchanged, plus a trivial source map when
    options enable sourceMaps. Files containing ERROR_MARKER are
    rejected with TransformError.
    """

    ERROR_MARKER = "@@syntax-error@@"

    def __init__(self) -> None:
        self.calls: list[Path] = []

    async def transform(self, path: Path, options: dict[str, Any]) -> TransformResult:
        self.calls.append(path)
        text = path.read_text(encoding="utf-8")
        if self.ERROR_MARKER in text:
            raise TransformError(path, "Unexpected token")
        source_map = '{"version":3,"sources":["%s"],"mappings":""}' % path.name
        return TransformResult(code=text, map=source_map if options.get("sourceMaps") else None)


def write_file(root: Path, relative: str, content: str = "") -> Path:
    """Create a file (and parents) under root."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Temporary project root containing src/ and an empty dist/ location."""
    (tmp_path / "src").mkdir()
    return tmp_path


@pytest.fixture
def source_root(project: Path) -> Path:
    return project / "src"


@pytest.fixture
def output_root(project: Path) -> Path:
    return project / "dist"


@pytest.fixture
def transformer() -> FakeTransformer:
    return FakeTransformer()


@pytest.fixture
def exclude_rules(project: Path) -> ExcludeRuleSet:
    return ExcludeRuleSet([], project)


@pytest.fixture
def compiler(source_root: Path, output_root: Path, transformer: FakeTransformer) -> FileCompiler:
    return FileCompiler(
        source_root=source_root,
        output_root=output_root,
        transformer=transformer,
        transform_options={"sourceMaps": True},
    )


@pytest.fixture
def builder(compiler: FileCompiler, exclude_rules: ExcludeRuleSet) -> BatchBuilder:
    return BatchBuilder(compiler, exclude_rules)


@pytest.fixture
def make_file():
    """Factory that creates a file (and parents) under a root."""
    return write_file
