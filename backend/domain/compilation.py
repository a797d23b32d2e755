"""Domain entities for contract compilation."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping

DEFAULT_CONTRACT_NAME = "contract"
SOURCE_SUFFIX = ".compact"


class ErrorKind(str, Enum):
    """Classification carried by a failed compilation."""

    CLIENT = "client"
    ENVIRONMENT = "environment"
    COMPILER = "compiler"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class InvocationStatus(str, Enum):
    SUCCESS = "success"
    COMPILER_ERROR = "compiler_error"
    EXECUTABLE_NOT_FOUND = "executable_not_found"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class CompilerVersion:
    """A registered compiler toolchain."""

    identifier: str
    executable: str
    notes: str = ""
    recommended_for: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CompilationRequest:
    """Input for a single orchestration run."""

    source: str
    contract_name: str = DEFAULT_CONTRACT_NAME
    compiler_version: str | None = None
    project_files: Mapping[str, str] = field(default_factory=dict)

    @property
    def source_filename(self) -> str:
        return f"{self.contract_name}{SOURCE_SUFFIX}"

    @property
    def output_subpath(self) -> Path:
        return Path("managed") / self.contract_name


@dataclass(frozen=True, slots=True)
class Workspace:
    """An ephemeral directory owned by exactly one compilation."""

    workspace_id: str
    root: Path


@dataclass(slots=True)
class InvocationOutcome:
    """Classified result of running the external compiler once."""

    status: InvocationStatus
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0


@dataclass(slots=True)
class HarvestResult:
    artifacts: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CompilationResult:
    """Outcome returned to the caller; never persisted."""

    success: bool
    contract_name: str
    compiler_version: str
    artifacts: dict[str, str] = field(default_factory=dict)
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    error_kind: ErrorKind | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def is_compiler_error(self) -> bool:
        return self.error_kind is ErrorKind.COMPILER

    @property
    def is_client_error(self) -> bool:
        return self.error_kind is ErrorKind.CLIENT
