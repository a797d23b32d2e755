from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_REGISTRY_FILE = CONFIG_DIR / "compilers.yaml"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _default_workspaces_root() -> Path:
    env_root = os.getenv("WORKSPACES_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(tempfile.gettempdir()) / "compact-compiler"


@dataclass(frozen=True, slots=True)
class ServiceSettings:
    """Process-wide configuration, read once in ``create_app``."""

    workspaces_root: Path = field(default_factory=_default_workspaces_root)
    registry_file: Path = DEFAULT_REGISTRY_FILE
    compile_timeout: float = 30.0
    max_concurrent_compilations: int = 4
    max_output_bytes: int = 1024 * 1024
    harvest_max_files: int = 2000
    harvest_max_file_bytes: int = 10 * 1024 * 1024
    max_request_bytes: int = 10 * 1024 * 1024
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        registry_env = os.getenv("COMPILER_REGISTRY_FILE")
        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = tuple(origin.strip() for origin in origins_env.split(",") if origin.strip())
        return cls(
            workspaces_root=_default_workspaces_root(),
            registry_file=Path(registry_env).expanduser() if registry_env else DEFAULT_REGISTRY_FILE,
            compile_timeout=_env_float("COMPILE_TIMEOUT_SECONDS", 30.0),
            max_concurrent_compilations=max(1, _env_int("MAX_CONCURRENT_COMPILATIONS", 4)),
            max_output_bytes=_env_int("MAX_OUTPUT_BYTES", 1024 * 1024),
            harvest_max_files=_env_int("HARVEST_MAX_FILES", 2000),
            harvest_max_file_bytes=_env_int("HARVEST_MAX_FILE_BYTES", 10 * 1024 * 1024),
            max_request_bytes=_env_int("MAX_REQUEST_BYTES", 10 * 1024 * 1024),
            cors_origins=origins or ("*",),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
