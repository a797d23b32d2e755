from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from backend.application import get_compilation_service
from backend.core.errors import ClientError, MissingContractCode
from backend.core.schema import CompileRequestBody, CompileResponse
from backend.domain import ErrorKind

router = APIRouter(tags=["compile"])


def _client_error(message: str, **extra: object) -> JSONResponse:
    body = CompileResponse(success=False, error=message, errorType=ErrorKind.CLIENT.value, **extra)
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


@router.post("/compile")
async def compile_contract(payload: dict) -> JSONResponse:
    """Compile a Compact contract and return the generated files."""
    try:
        body = CompileRequestBody.model_validate(payload)
    except ValidationError as exc:
        return _client_error(f"Invalid request body: {exc.errors(include_url=False)}")

    if not body.contractCode:
        return _client_error(str(MissingContractCode()))

    service = get_compilation_service()
    request = body.to_request()
    try:
        service.registry.get(request.compiler_version or service.registry.default_version)
    except ClientError as exc:
        return _client_error(str(exc), compilerVersion=request.compiler_version)

    result = await service.compile(request)
    response = CompileResponse.from_result(result)
    if result.success:
        status_code = 200
    elif result.is_client_error:
        status_code = 400
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content=response.model_dump(exclude_none=True))
