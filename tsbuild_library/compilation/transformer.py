"""Transformation engine adapter.

The syntax transformation itself is done by @swc/core in a Node.js
subprocess. This module only moves a file path and an options dict in and
code plus an optional source map out.

Contract:
- Inputs: Absolute source path, engine options
- Outputs: TransformResult (code, optional map)
- Side Effects: Spawns one node process per call
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Protocol

from ..errors import SubprocessStartupError
from ..errors import TransformError

logger = logging.getLogger(__name__)

# Reads {"file", "options"} as JSON on stdin, writes {"code", "map"} on stdout
SWC_BRIDGE_SCRIPT = """
const swc = require('@swc/core');
let input = '';
process.stdin.setEncoding('utf8');
process.stdin.on('data', chunk => { input += chunk; });
process.stdin.on('end', async () => {
  const { file, options } = JSON.parse(input);
  try {
    const out = await swc.transformFile(file, options);
    process.stdout.write(JSON.stringify({ code: out.code, map: out.map || null }));
  } catch (err) {
    process.stderr.write(String((err && err.message) || err));
    process.exit(1);
  }
});
"""


@dataclass
class TransformResult:
    """Output of the transformation engine for one file."""

    code: str
    map: str | None = None


class Transformer(Protocol):
    """Opaque source-to-code transformation engine."""

    async def transform(self, path: Path, options: dict[str, Any]) -> TransformResult: ...


class SwcTransformer:
    """Runs @swc/core transformFile through a Node.js subprocess.

    @swc/core is resolved by node from cwd, so cwd should be the project
    that has it installed.

    Example:
        >>> transformer = SwcTransformer(cwd=Path("/proj"))
        >>> result = await transformer.transform(Path("/proj/src/a.ts"), options)
    """

    def __init__(self, node_command: str = "node", cwd: Path | None = None) -> None:
        self.node_command = node_command
        self.cwd = cwd

    async def transform(self, path: Path, options: dict[str, Any]) -> TransformResult:
        """Transform one file.

        Args:
            path: Absolute source path
            options: swc options

        Returns:
            Transformed code and optional source map

        Raises:
            TransformError: If swc rejects the file or returns malformed output
            SubprocessStartupError: If node cannot be started
        """
        payload = json.dumps({"file": str(path), "options": options}).encode("utf-8")

        try:
            proc = await asyncio.create_subprocess_exec(
                self.node_command,
                "-e",
                SWC_BRIDGE_SCRIPT,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except FileNotFoundError as e:
            raise SubprocessStartupError(f"Node executable not found: {self.node_command}") from e

        stdout, stderr = await proc.communicate(payload)

        if proc.returncode != 0:
            raise TransformError(path, stderr.decode("utf-8", errors="replace").strip())

        try:
            data = json.loads(stdout.decode("utf-8"))
        except ValueError as e:
            raise TransformError(path, f"Malformed engine output: {e}") from e

        return TransformResult(code=data["code"], map=data.get("map"))
