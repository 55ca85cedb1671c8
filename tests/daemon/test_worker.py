"""Tests for the build worker wiring."""

import asyncio
import json
import sys
from pathlib import Path

import pytest

from tsbuild_library.config import BuildOptions
from tsbuild_library.config import BuildSettings
from tsbuild_library.errors import DeclarationError
from tsbuild_library.errors import SourceRootError
from tsbuildd.worker import BuildWorker


def python_command(code: str) -> list[str]:
    return [sys.executable, "-c", code]


@pytest.fixture
def settings() -> BuildSettings:
    return BuildSettings(declaration_command=python_command("pass"), restart_backoff=0.01)


@pytest.fixture
def tsconfig(project: Path) -> Path:
    path = project / "tsconfig.json"
    path.write_text(json.dumps({"exclude": ["**/*.spec.ts"]}))
    return path


def make_options(project: Path, tsconfig: Path | None = None, watch: bool = False) -> BuildOptions:
    return BuildOptions(
        source_root=project / "src",
        output_root=project / "dist",
        tsconfig_path=tsconfig,
        transform_options={"sourceMaps": True},
        types_dir="types",
        watch=watch,
    )


class TestBuildMode:
    """Test one-shot builds."""

    async def test_build_without_tsconfig(self, project: Path, settings, transformer, make_file) -> None:
        make_file(project, "src/a.ts", "export const a = 1;\n")
        worker = BuildWorker(make_options(project), settings, transformer=transformer)

        assert worker.declarations is None
        assert await worker.run() == 0
        assert (project / "dist/a.js").exists()

    async def test_tsconfig_enables_declarations_and_exclusions(
        self, project: Path, tsconfig: Path, settings, transformer, make_file
    ) -> None:
        make_file(project, "src/a.ts", "export const a = 1;\n")
        make_file(project, "src/a.spec.ts", "export const t = 1;\n")
        worker = BuildWorker(make_options(project, tsconfig), settings, transformer=transformer)

        assert worker.declarations is not None
        assert worker.declarations.declarations_dir == (project / "dist/types").resolve()
        assert await worker.run() == 0
        assert (project / "dist/a.js").exists()
        assert not (project / "dist/a.spec.js").exists()

    async def test_declaration_failure_fails_build_after_js_output(
        self, project: Path, tsconfig: Path, transformer, make_file
    ) -> None:
        """Given a declaration compiler that exits nonzero
        When building
        Then JavaScript output is still produced and the build raises
        """
        make_file(project, "src/a.ts", "export const a = 1;\n")
        settings = BuildSettings(declaration_command=python_command("import sys; sys.exit(2)"))
        worker = BuildWorker(make_options(project, tsconfig), settings, transformer=transformer)

        with pytest.raises(DeclarationError):
            await worker.run()

        assert (project / "dist/a.js").exists()

    async def test_missing_source_root_fails(self, tmp_path: Path, settings, transformer) -> None:
        options = BuildOptions(source_root=tmp_path / "missing", output_root=tmp_path / "dist")
        worker = BuildWorker(options, settings, transformer=transformer)

        with pytest.raises(SourceRootError):
            await worker.run()

    async def test_per_file_failures_do_not_fail_build(self, project: Path, settings, transformer, make_file) -> None:
        make_file(project, "src/good.ts", "export const g = 1;\n")
        make_file(project, "src/bad.ts", transformer.ERROR_MARKER)
        worker = BuildWorker(make_options(project), settings, transformer=transformer)

        assert await worker.run() == 0
        assert (project / "dist/good.js").exists()


@pytest.mark.integration
class TestWatchMode:
    """Test watch mode start and stop."""

    async def test_watch_runs_until_cancelled(
        self, project: Path, tsconfig: Path, transformer, make_file
    ) -> None:
        make_file(project, "src/a.ts", "export const a = 1;\n")
        settings = BuildSettings(declaration_command=python_command("import time; time.sleep(60)"))
        worker = BuildWorker(make_options(project, tsconfig, watch=True), settings, transformer=transformer)

        task = asyncio.create_task(worker.run())
        output = project / "dist/a.js"
        for _ in range(200):
            if output.exists():
                break
            await asyncio.sleep(0.05)
        task.cancel()

        assert await asyncio.wait_for(task, 30) == 0
        assert output.exists()
        assert worker.declarations.restart_count == 0
