from __future__ import annotations

from fastapi import APIRouter

from backend.application import get_compilation_service

router = APIRouter(tags=["compilers"])


@router.get("/check-compiler")
async def check_compiler() -> dict:
    """Report which registered compactc versions answer ``--version``."""
    service = get_compilation_service()
    return await service.check_compilers()


@router.get("/api/compiler-versions")
async def compiler_versions() -> dict:
    service = get_compilation_service()
    return service.version_metadata()
