"""Compilation: engine adapter, single-file compiler, batch builder.

Public Interface:
    - Transformer / SwcTransformer / TransformResult: Engine adapter
    - FileCompiler: Compile one file with content-stable writes
    - BatchBuilder: Compile every source file under a root
    - enumerate_sources: List compilable files
    - output_path_for: Source path to output path mapping
"""

from .builder import BatchBuilder
from .builder import enumerate_sources
from .compiler import FileCompiler
from .compiler import output_path_for
from .transformer import SwcTransformer
from .transformer import TransformResult
from .transformer import Transformer

__all__ = [
    "BatchBuilder",
    "FileCompiler",
    "SwcTransformer",
    "TransformResult",
    "Transformer",
    "enumerate_sources",
    "output_path_for",
]
