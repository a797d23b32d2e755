"""Application service that orchestrates a single contract compilation."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from backend.core.errors import ClientError, CompilationServiceError, CompilerNotFound
from backend.core.harvest import DEFAULT_MAX_FILE_BYTES, DEFAULT_MAX_FILES, harvest
from backend.core.settings import ServiceSettings
from backend.core.validation import validate_project_paths, validate_request
from backend.core.workspaces import WorkspaceManager
from backend.domain import (
    CompilationRequest,
    CompilationResult,
    ErrorKind,
    InvocationOutcome,
    InvocationStatus,
    Workspace,
)
from backend.infrastructure import CompilerInvoker, SubprocessCompilerInvoker, VersionRegistry

logger = logging.getLogger(__name__)

NO_OUTPUT_MESSAGE = "Compilation failed - no output generated"


class CompilationService:
    """Coordinates workspace, compiler invocation and artifact harvesting.

    The registry, invoker and workspace manager are injected so the service
    can be exercised against fakes. Compiler invocations are bounded by a
    semaphore; everything else runs freely per request.
    """

    def __init__(
        self,
        registry: VersionRegistry,
        invoker: CompilerInvoker,
        workspaces: WorkspaceManager,
        *,
        timeout: float = 30.0,
        max_concurrent: int = 4,
        harvest_max_files: int = DEFAULT_MAX_FILES,
        harvest_max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
    ) -> None:
        self._registry = registry
        self._invoker = invoker
        self._workspaces = workspaces
        self._timeout = timeout
        self._limiter = asyncio.Semaphore(max_concurrent)
        self._harvest_max_files = harvest_max_files
        self._harvest_max_file_bytes = harvest_max_file_bytes

    @property
    def registry(self) -> VersionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # compilation
    # ------------------------------------------------------------------
    async def compile(self, request: CompilationRequest) -> CompilationResult:
        """Run one compilation end to end and always return a result."""

        if request.compiler_version is None:
            request = replace(request, compiler_version=self._registry.default_version)
        try:
            validate_request(request, self._registry.identifiers())
        except ClientError as exc:
            return self._failure(request, exc.kind, str(exc))

        logger.info("Compiling contract %s with compactc %s", request.contract_name, request.compiler_version)
        try:
            async with self._workspaces.open() as workspace:
                return await self._compile_in(workspace, request)
        except CompilationServiceError as exc:
            logger.warning("Compilation of %s failed: %s", request.contract_name, exc)
            return self._failure(request, exc.kind, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error while compiling %s", request.contract_name)
            return self._failure(request, ErrorKind.INTERNAL, f"Internal error: {exc}")

    async def _compile_in(self, workspace: Workspace, request: CompilationRequest) -> CompilationResult:
        version = str(request.compiler_version)
        project_files = validate_project_paths(request)
        source_path = await asyncio.to_thread(
            self._workspaces.materialize,
            workspace,
            request.source_filename,
            request.source,
            project_files,
        )

        executable = self._registry.resolve(version)
        if executable is None:
            raise CompilerNotFound(version)

        output_dir = workspace.root / request.output_subpath
        async with self._limiter:
            outcome = await self._invoker.invoke(executable, source_path, output_dir, workspace.root, self._timeout)

        if outcome.status is InvocationStatus.EXECUTABLE_NOT_FOUND:
            raise CompilerNotFound(version)
        if outcome.status is InvocationStatus.TIMEOUT:
            return self._failure(
                request,
                ErrorKind.TIMEOUT,
                outcome.stderr or f"Compilation timed out after {self._timeout:g}s",
            )
        if outcome.status is InvocationStatus.COMPILER_ERROR:
            logger.info(
                "compactc %s rejected %s after %.2fs (exit=%s)",
                version,
                request.contract_name,
                outcome.duration,
                outcome.exit_code,
            )
            return self._compiler_failure(request, outcome)

        harvested = await asyncio.to_thread(
            harvest,
            output_dir,
            max_files=self._harvest_max_files,
            max_file_bytes=self._harvest_max_file_bytes,
        )
        logger.info(
            "Compiled %s with compactc %s in %.2fs: %d artifact(s)",
            request.contract_name,
            version,
            outcome.duration,
            len(harvested.artifacts),
        )
        return CompilationResult(
            success=True,
            contract_name=request.contract_name,
            compiler_version=version,
            artifacts=harvested.artifacts,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            warnings=harvested.warnings,
        )

    @staticmethod
    def _compiler_failure(request: CompilationRequest, outcome: InvocationOutcome) -> CompilationResult:
        if outcome.stderr.strip():
            message = outcome.stderr
        elif outcome.exit_code == 0:
            message = NO_OUTPUT_MESSAGE
        else:
            message = f"Compiler exited with status {outcome.exit_code}"
        return CompilationResult(
            success=False,
            contract_name=request.contract_name,
            compiler_version=str(request.compiler_version),
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            error=message,
            error_kind=ErrorKind.COMPILER,
        )

    @staticmethod
    def _failure(request: CompilationRequest, kind: ErrorKind, message: str) -> CompilationResult:
        return CompilationResult(
            success=False,
            contract_name=request.contract_name,
            compiler_version=str(request.compiler_version),
            error=message,
            error_kind=kind,
        )

    # ------------------------------------------------------------------
    # introspection
    # ------------------------------------------------------------------
    async def check_compilers(self) -> dict[str, object]:
        """Probe every registered toolchain plus the default one on PATH."""

        versions = await self._registry.list_available(self._invoker)
        default_banner = await self._invoker.probe_version(self._registry.fallback_executable)
        if default_banner is None:
            return {
                "success": False,
                "available": False,
                "versions": versions,
                "error": f"{self._registry.fallback_executable} not found in PATH",
                "message": "Please install the Compact compiler",
            }
        return {
            "success": True,
            "available": True,
            "defaultVersion": default_banner,
            "versions": versions,
            "message": f"Compact compiler service with {len(versions)} registered version(s)",
        }

    def version_metadata(self) -> dict[str, object]:
        return {
            "available": self._registry.identifiers(),
            "default": self._registry.default_version,
            "recommended": dict(self._registry.recommended),
            "notes": self._registry.notes(),
        }


def build_compilation_service(settings: ServiceSettings) -> CompilationService:
    """Wire the production collaborators from ``settings``."""

    return CompilationService(
        VersionRegistry.from_yaml(settings.registry_file),
        SubprocessCompilerInvoker(max_output_bytes=settings.max_output_bytes),
        WorkspaceManager(settings.workspaces_root),
        timeout=settings.compile_timeout,
        max_concurrent=settings.max_concurrent_compilations,
        harvest_max_files=settings.harvest_max_files,
        harvest_max_file_bytes=settings.harvest_max_file_bytes,
    )


_service: CompilationService | None = None


def configure_compilation_service(service: CompilationService) -> None:
    """Install the service used by the HTTP routes."""

    global _service
    _service = service


def get_compilation_service() -> CompilationService:
    """Return the process-wide compilation service, building it on first use."""

    global _service
    if _service is None:
        _service = build_compilation_service(ServiceSettings.from_env())
    return _service


def reset_compilation_service() -> None:
    """Forget the configured service (used in tests)."""

    global _service
    _service = None
