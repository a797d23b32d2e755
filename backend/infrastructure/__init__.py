"""Infrastructure layer exports."""

from .compiler import CompilerInvoker, SubprocessCompilerInvoker
from .registry import NOT_AVAILABLE, RegistryConfig, VersionRegistry

__all__ = [
    "CompilerInvoker",
    "NOT_AVAILABLE",
    "RegistryConfig",
    "SubprocessCompilerInvoker",
    "VersionRegistry",
]
