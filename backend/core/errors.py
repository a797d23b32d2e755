from __future__ import annotations

from backend.domain import ErrorKind


class CompilationServiceError(RuntimeError):
    """Base class for failures the orchestrator turns into a result."""

    kind: ErrorKind = ErrorKind.INTERNAL


class ClientError(CompilationServiceError):
    """The request itself is unusable; nothing was touched on disk."""

    kind = ErrorKind.CLIENT


class MissingContractCode(ClientError):
    def __init__(self) -> None:
        super().__init__("Missing required field: contractCode")


class UnsupportedCompilerVersion(ClientError):
    def __init__(self, version: str, supported: list[str]) -> None:
        self.version = version
        self.supported = supported
        super().__init__(f"Unsupported compiler version: {version}. Supported: {', '.join(supported)}")


class UnsafePathError(ClientError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Path escapes the workspace: {path}")


class InvalidRequestError(ClientError):
    """Raised when the request body does not match the expected shape."""


class CompilerEnvironmentError(CompilationServiceError):
    """The host is misconfigured (missing binary, unwritable temp root)."""

    kind = ErrorKind.ENVIRONMENT


class CompilerNotFound(CompilerEnvironmentError):
    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"Compiler not found for version {version}")


class WorkspaceUnavailable(CompilerEnvironmentError):
    """Raised when a workspace directory cannot be created."""


class RegistryConfigError(ValueError):
    """Raised at startup when the compiler version table is invalid."""
