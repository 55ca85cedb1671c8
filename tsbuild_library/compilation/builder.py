"""One-pass build of every source file under a root."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..errors import SourceRootError
from ..exclusion import ExcludeRuleSet
from ..models import BuildReport
from ..models import SourceFile
from ..models import SourceOrigin
from .compiler import FileCompiler

logger = logging.getLogger(__name__)

SOURCE_GLOBS = ("**/*.ts", "**/*.tsx")
DECLARATION_SUFFIX = ".d.ts"


def enumerate_sources(source_root: Path, exclude_rules: ExcludeRuleSet) -> list[Path]:
    """List every compilable source file under a root.

    Declaration files (.d.ts) and paths matched by the exclusion rules are
    skipped.

    Args:
        source_root: Absolute source root
        exclude_rules: Exclusion rules

    Returns:
        Sorted absolute paths

    Raises:
        SourceRootError: If the source root is not a directory
    """
    if not source_root.is_dir():
        raise SourceRootError(f"Source directory not found: {source_root}")

    files: set[Path] = set()
    for pattern in SOURCE_GLOBS:
        for path in source_root.glob(pattern):
            if not path.is_file() or path.name.endswith(DECLARATION_SUFFIX):
                continue
            if exclude_rules.matches(path):
                continue
            files.add(path)
    return sorted(files)


class BatchBuilder:
    """Compiles all matching source files concurrently.

    Every file is compiled in its own task with no concurrency cap. The
    build finishes when all of them have settled; a failing file is counted
    and the others continue.
    """

    def __init__(self, compiler: FileCompiler, exclude_rules: ExcludeRuleSet) -> None:
        self.compiler = compiler
        self.exclude_rules = exclude_rules

    async def build(self) -> BuildReport:
        """Run one full build.

        Returns:
            Report with per-outcome counts; report.total is the number of files processed

        Raises:
            SourceRootError: If the source root cannot be enumerated
        """
        source_root = self.compiler.source_root
        logger.info(f"Running build for {source_root}...")

        files = await asyncio.to_thread(enumerate_sources, source_root, self.exclude_rules)
        if not files:
            logger.warning(f"No source files found under {source_root}")

        outcomes = await asyncio.gather(
            *(self.compiler.compile(SourceFile(path, SourceOrigin.SCAN)) for path in files)
        )

        report = BuildReport()
        for path, outcome in zip(files, outcomes, strict=True):
            report.record(path, outcome)

        logger.info(f"Build complete. Processed {report.total} files.")
        if report.failed:
            logger.warning(f"{report.failed} file(s) failed to compile")
        return report
