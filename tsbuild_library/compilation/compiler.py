"""Single-file compilation with content-stable writes.

Compiles one source file, rewrites its import specifiers, and writes the
result only when it differs from what is already on disk. Unchanged output
keeps its modification time, so downstream watchers are not triggered.

Contract:
- Inputs: Absolute source path
- Outputs: FileOutcome
- Side Effects: Creates output directories, writes .js and .js.map files
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

from ..errors import SubprocessStartupError
from ..errors import TsBuildError
from ..models import CompiledUnit
from ..models import FileOutcome
from ..models import SourceFile
from ..models import SourceOrigin
from ..rewriting import EMITTED_EXTENSION
from ..rewriting import find_import_references
from ..rewriting import rewrite_imports
from .transformer import Transformer

logger = logging.getLogger(__name__)

SOURCE_SUFFIX_PATTERN = re.compile(r"\.tsx?$")


def output_path_for(source_path: Path, source_root: Path, output_root: Path) -> Path:
    """Mirror a source path under the output root with the emitted extension.

    Example:
        >>> output_path_for(Path("/p/src/a/b.ts"), Path("/p/src"), Path("/p/dist"))
        PosixPath('/p/dist/a/b.js')
    """
    relative = source_path.relative_to(source_root)
    mirrored = output_root / relative
    return mirrored.with_name(SOURCE_SUFFIX_PATTERN.sub(EMITTED_EXTENSION, mirrored.name))


class FileCompiler:
    """Compiles individual source files into the output tree.

    One instance is shared by the batch builder and the watch controller.
    It holds no per-file state, so concurrent calls for different files are
    safe.
    """

    def __init__(
        self,
        source_root: Path,
        output_root: Path,
        transformer: Transformer,
        transform_options: dict[str, Any],
    ) -> None:
        """Initialize file compiler.

        Args:
            source_root: Absolute root of the source tree
            output_root: Absolute root of the output tree
            transformer: Transformation engine
            transform_options: Options passed to the engine on every call
        """
        self.source_root = source_root
        self.output_root = output_root
        self.transformer = transformer
        self.transform_options = transform_options

    async def compile(self, source: SourceFile | Path) -> FileOutcome:
        """Compile one file and write it if its output changed.

        Never raises for per-file problems: resolution, transformation, and
        filesystem errors are logged and reported as FAILED.

        Args:
            source: SourceFile or absolute path of the .ts/.tsx file

        Returns:
            WRITTEN, UNCHANGED, or FAILED

        Raises:
            SubprocessStartupError: If the transformation engine cannot be started
        """
        if isinstance(source, Path):
            source = SourceFile(source, SourceOrigin.SCAN)

        phase = "transform"
        try:
            unit = await self._build_unit(source.path)

            phase = "read"
            existing = await asyncio.to_thread(_read_existing, unit.output_path)

            if unit.code.strip() == existing.strip():
                logger.debug(f"No output change for {unit.output_path}, skipping write.")
                return FileOutcome.UNCHANGED

            phase = "write"
            logger.debug(f"Change detected, writing to {unit.output_path}")
            await asyncio.to_thread(_write_unit, unit)
            return FileOutcome.WRITTEN

        except SubprocessStartupError:
            # Fatal for the whole run, not one file
            raise
        except (TsBuildError, OSError, UnicodeError) as e:
            logger.error(f"Error processing {source.path} ({phase}, {source.origin.value}): {e}")
            return FileOutcome.FAILED

    async def _build_unit(self, source_path: Path) -> CompiledUnit:
        output_path = output_path_for(source_path, self.source_root, self.output_root)
        map_path = output_path.with_name(f"{output_path.name}.map")

        result = await self.transformer.transform(source_path, self.transform_options)

        references = find_import_references(result.code)
        if references:
            logger.debug(f"Rewriting {len(references)} import(s) in {source_path}")
        code = rewrite_imports(result.code, source_path)

        if result.map:
            code += f"\n//# sourceMappingURL={map_path.name}"

        return CompiledUnit(code=code, map=result.map, output_path=output_path, map_path=map_path)


def _read_existing(path: Path) -> str:
    try:
        # Undecodable bytes never equal fresh output, so they just force a rewrite
        return path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return ""


def _write_unit(unit: CompiledUnit) -> None:
    unit.output_path.parent.mkdir(parents=True, exist_ok=True)
    unit.output_path.write_text(unit.code, encoding="utf-8")
    if unit.map:
        unit.map_path.write_text(unit.map, encoding="utf-8")
