"""Application services."""

from .compilation import (
    CompilationService,
    build_compilation_service,
    configure_compilation_service,
    get_compilation_service,
    reset_compilation_service,
)

__all__ = [
    "CompilationService",
    "build_compilation_service",
    "configure_compilation_service",
    "get_compilation_service",
    "reset_compilation_service",
]
