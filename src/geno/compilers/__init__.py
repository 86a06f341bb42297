"""
Compiler backends for Geno.

This package provides:
- The ICompiler capability interface and its result types
- MSVC, GCC and Clang backends
- Injectable toolchain discovery (MSVCLocator, GNULocator)
- Process execution of toolchain commands
"""

from .compilation_executor import CompilationExecutor, FailureKind, ProcessOutcome
from .compiler import (
    CompileResult,
    CompilerError,
    ICompiler,
    Language,
    LinkResult,
    ToolchainNotFoundError,
    source_language,
)
from .compiler_gcc import CompilerClang, CompilerGCC
from .compiler_msvc import CompilerMSVC
from .factory import COMPILERS, create_compiler, default_toolchain
from .locators import GNULocator, MSVCLocator
from .platform_utils import msvc_host_string, msvc_target_string, target_triple

__all__ = [
    "ICompiler",
    "CompileResult",
    "LinkResult",
    "CompilerError",
    "ToolchainNotFoundError",
    "Language",
    "source_language",
    "CompilationExecutor",
    "FailureKind",
    "ProcessOutcome",
    "CompilerMSVC",
    "CompilerGCC",
    "CompilerClang",
    "MSVCLocator",
    "GNULocator",
    "COMPILERS",
    "create_compiler",
    "default_toolchain",
    "msvc_host_string",
    "msvc_target_string",
    "target_triple",
]
