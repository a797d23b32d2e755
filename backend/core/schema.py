from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from backend.domain import DEFAULT_CONTRACT_NAME, CompilationRequest, CompilationResult


class CompileRequestBody(BaseModel):
    """JSON body accepted by ``POST /compile``."""

    model_config = ConfigDict(extra="ignore")

    contractCode: str | None = None
    contractName: str | None = None
    compilerVersion: str | None = None
    projectFiles: dict[str, str] = Field(default_factory=dict)

    def to_request(self) -> CompilationRequest:
        return CompilationRequest(
            source=self.contractCode or "",
            contract_name=self.contractName or DEFAULT_CONTRACT_NAME,
            compiler_version=self.compilerVersion,
            project_files=dict(self.projectFiles),
        )


class CompileResponse(BaseModel):
    success: bool
    contractName: str | None = None
    compilerVersion: str | None = None
    artifacts: dict[str, str] | None = None
    stdout: str | None = None
    stderr: str | None = None
    error: str | None = None
    isCompilerError: bool | None = None
    errorType: str | None = None
    warnings: list[str] | None = None
    message: str | None = None

    @classmethod
    def from_result(cls, result: CompilationResult) -> "CompileResponse":
        if result.success:
            return cls(
                success=True,
                contractName=result.contract_name,
                compilerVersion=result.compiler_version,
                artifacts=result.artifacts,
                stdout=result.stdout,
                stderr=result.stderr,
                warnings=result.warnings or None,
                message=f"Compact contract compiled successfully with compactc {result.compiler_version}",
            )
        return cls(
            success=False,
            contractName=result.contract_name,
            compilerVersion=result.compiler_version,
            error=result.error,
            isCompilerError=result.is_compiler_error,
            errorType=result.error_kind.value if result.error_kind else None,
            stdout=result.stdout,
            stderr=result.stderr,
        )
