"""Domain layer definitions."""

from .compilation import (
    DEFAULT_CONTRACT_NAME,
    SOURCE_SUFFIX,
    CompilationRequest,
    CompilationResult,
    CompilerVersion,
    ErrorKind,
    HarvestResult,
    InvocationOutcome,
    InvocationStatus,
    Workspace,
)

__all__ = [
    "DEFAULT_CONTRACT_NAME",
    "SOURCE_SUFFIX",
    "CompilationRequest",
    "CompilationResult",
    "CompilerVersion",
    "ErrorKind",
    "HarvestResult",
    "InvocationOutcome",
    "InvocationStatus",
    "Workspace",
]
