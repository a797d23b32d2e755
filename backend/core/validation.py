from __future__ import annotations

import posixpath
from typing import Iterable

from backend.core.errors import (
    InvalidRequestError,
    MissingContractCode,
    UnsafePathError,
    UnsupportedCompilerVersion,
)
from backend.domain import CompilationRequest


def normalise_relative_path(value: str) -> str:
    """Return ``value`` as a normalised POSIX path that stays below its root.

    ``a/../b`` is contained and becomes ``b``; absolute paths and anything that
    climbs above the root are rejected.
    """

    if not value or "\x00" in value:
        raise UnsafePathError(value)
    candidate = value.replace("\\", "/")
    if candidate.startswith("/") or (len(candidate) > 1 and candidate[1] == ":"):
        raise UnsafePathError(value)
    normalised = posixpath.normpath(candidate)
    if normalised in {".", ".."} or normalised.startswith("../"):
        raise UnsafePathError(value)
    return normalised


def validate_contract_name(name: str) -> None:
    if not name or "\x00" in name or "/" in name or "\\" in name or name in {".", ".."}:
        raise UnsafePathError(name)


def _ancestors(path: str) -> list[str]:
    parts = path.split("/")
    return ["/".join(parts[:index]) for index in range(1, len(parts))]


def validate_project_paths(request: CompilationRequest) -> dict[str, str]:
    """Normalise every auxiliary path, rejecting reserved, escaping or clashing ones.

    Two entries clash when they normalise to the same path or when one would
    have to be both a file and the directory holding the other.
    """

    reserved_file = request.source_filename
    output_prefix = request.output_subpath.as_posix()
    normalised: dict[str, str] = {}
    raw_names: dict[str, str] = {}
    for raw_path, content in request.project_files.items():
        if not isinstance(content, str):
            raise InvalidRequestError(f"projectFiles[{raw_path!r}] must be a string")
        path = normalise_relative_path(raw_path)
        if path == reserved_file or reserved_file in _ancestors(path):
            raise InvalidRequestError(f"projectFiles may not replace the contract source: {raw_path}")
        if path == output_prefix or path.startswith(f"{output_prefix}/") or path in _ancestors(output_prefix):
            raise InvalidRequestError(f"projectFiles may not write into the compiler output: {raw_path}")
        if path in normalised:
            raise InvalidRequestError(f"projectFiles entries {raw_names[path]!r} and {raw_path!r} name the same file")
        normalised[path] = content
        raw_names[path] = raw_path

    directories = {ancestor for path in normalised for ancestor in _ancestors(path)}
    for path in normalised:
        if path in directories:
            raise InvalidRequestError(f"projectFiles entry {raw_names[path]!r} is also used as a directory")
    return normalised


def validate_request(request: CompilationRequest, supported_versions: Iterable[str]) -> None:
    """Reject malformed requests before any filesystem or process work."""

    if not request.source:
        raise MissingContractCode()
    supported = list(supported_versions)
    if request.compiler_version not in supported:
        raise UnsupportedCompilerVersion(str(request.compiler_version), supported)
    validate_contract_name(request.contract_name)
    validate_project_paths(request)
