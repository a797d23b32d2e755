"""Read-only table of installed compiler versions."""
from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError

from backend.core.errors import RegistryConfigError, UnsupportedCompilerVersion
from backend.domain import CompilerVersion

from .compiler import CompilerInvoker

NOT_AVAILABLE = "Not available"


class VersionEntry(BaseModel):
    executable: str
    notes: str = ""


class RegistryConfig(BaseModel):
    default: str
    fallback_executable: str = "compactc"
    versions: dict[str, VersionEntry]
    recommended: dict[str, str] = Field(default_factory=dict)


class VersionRegistry:
    """Immutable mapping from version identifier to compiler executable."""

    def __init__(
        self,
        versions: Mapping[str, CompilerVersion],
        default_version: str,
        *,
        fallback_executable: str = "compactc",
        recommended: Mapping[str, str] | None = None,
    ) -> None:
        if not versions:
            raise RegistryConfigError("at least one compiler version must be registered")
        if default_version not in versions:
            raise RegistryConfigError(f"default version {default_version!r} is not registered")
        for use_case, version in (recommended or {}).items():
            if version not in versions:
                raise RegistryConfigError(f"recommended version {version!r} for {use_case!r} is not registered")
        self._versions = MappingProxyType(dict(versions))
        self._default = default_version
        self._fallback = fallback_executable
        self._recommended = MappingProxyType(dict(recommended or {}))

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------
    @classmethod
    def from_config(cls, config: RegistryConfig) -> "VersionRegistry":
        versions = {
            identifier: CompilerVersion(
                identifier=identifier,
                executable=entry.executable,
                notes=entry.notes,
                recommended_for=tuple(
                    sorted(use for use, target in config.recommended.items() if target == identifier)
                ),
            )
            for identifier, entry in config.versions.items()
        }
        return cls(
            versions,
            config.default,
            fallback_executable=config.fallback_executable,
            recommended=config.recommended,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "VersionRegistry":
        try:
            with path.open("r", encoding="utf-8") as fp:
                raw = yaml.safe_load(fp)
        except (OSError, yaml.YAMLError) as exc:
            raise RegistryConfigError(f"cannot load compiler registry {path}: {exc}") from exc
        try:
            config = RegistryConfig.model_validate(raw or {})
        except ValidationError as exc:
            raise RegistryConfigError(f"invalid compiler registry {path}: {exc}") from exc
        return cls.from_config(config)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    @property
    def default_version(self) -> str:
        return self._default

    @property
    def fallback_executable(self) -> str:
        return self._fallback

    @property
    def recommended(self) -> Mapping[str, str]:
        return self._recommended

    def identifiers(self) -> list[str]:
        return list(self._versions)

    def get(self, version_id: str) -> CompilerVersion:
        try:
            return self._versions[version_id]
        except KeyError:
            raise UnsupportedCompilerVersion(version_id, self.identifiers()) from None

    def resolve(self, version_id: str) -> Path | None:
        """Return the executable for ``version_id``, or ``None`` if it is missing.

        Bare command names are looked up on ``PATH``.
        """

        executable = self.get(version_id).executable
        if os.sep not in executable and (os.altsep is None or os.altsep not in executable):
            found = shutil.which(executable)
            return Path(found) if found else None
        path = Path(executable).expanduser()
        if path.is_file() and os.access(path, os.X_OK):
            return path
        return None

    async def list_available(self, invoker: CompilerInvoker) -> dict[str, str]:
        """Probe every registered version; failures are reported per version."""

        async def probe(identifier: str) -> str:
            executable = self.resolve(identifier)
            if executable is None:
                return NOT_AVAILABLE
            banner = await invoker.probe_version(str(executable))
            return banner or NOT_AVAILABLE

        identifiers = self.identifiers()
        statuses = await asyncio.gather(*(probe(identifier) for identifier in identifiers))
        return dict(zip(identifiers, statuses))

    def notes(self) -> dict[str, str]:
        return {identifier: version.notes for identifier, version in self._versions.items() if version.notes}
