from __future__ import annotations

import logging
from pathlib import Path

from backend.domain import HarvestResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 2000
DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024


def _iter_files(root: Path) -> list[Path]:
    # sorted so repeated harvests of the same tree agree
    return sorted(path for path in root.rglob("*") if not path.is_dir() or path.is_symlink())


def harvest(
    output_dir: Path,
    *,
    max_files: int = DEFAULT_MAX_FILES,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> HarvestResult:
    """Read every regular file below ``output_dir`` keyed by relative path.

    Unreadable, oversized or non-regular entries are reported as warnings
    and left out; a missing ``output_dir`` yields an empty result.
    """

    result = HarvestResult()
    if not output_dir.is_dir():
        return result

    for path in _iter_files(output_dir):
        key = path.relative_to(output_dir).as_posix()
        if path.is_symlink() or not path.is_file():
            result.warnings.append(f"Skipped non-regular file: {key}")
            continue
        if len(result.artifacts) >= max_files:
            result.warnings.append(f"Artifact limit of {max_files} files reached; skipped {key}")
            continue
        try:
            size = path.stat().st_size
            if size > max_file_bytes:
                result.warnings.append(f"Skipped {key}: {size} bytes exceeds limit of {max_file_bytes}")
                continue
            result.artifacts[key] = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            result.warnings.append(f"Could not read {key}: {exc}")

    for warning in result.warnings:
        logger.warning("Harvest warning in %s: %s", output_dir, warning)
    return result
