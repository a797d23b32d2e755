from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Mapping

from backend.core.errors import UnsafePathError, WorkspaceUnavailable
from backend.core.validation import normalise_relative_path, validate_contract_name
from backend.domain import Workspace

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "compile-"


class WorkspaceManager:
    """Creates, fills and removes per-request build directories."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def create(self) -> Workspace:
        """Allocate a fresh directory below the workspace root.

        ``mkdtemp`` creates the directory exclusively, so two concurrent
        requests can never receive the same path.
        """

        try:
            self._root.mkdir(parents=True, exist_ok=True)
            path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self._root))
        except OSError as exc:
            raise WorkspaceUnavailable(f"Cannot create workspace under {self._root}: {exc}") from exc
        return Workspace(workspace_id=path.name, root=path)

    def _resolve_inside(self, workspace: Workspace, relative: str) -> Path:
        root = workspace.root.resolve()
        candidate = (root / normalise_relative_path(relative)).resolve()
        if candidate != root and root not in candidate.parents:
            raise UnsafePathError(relative)
        return candidate

    def materialize(
        self,
        workspace: Workspace,
        primary_name: str,
        primary_content: str,
        auxiliary_files: Mapping[str, str] | None = None,
    ) -> Path:
        """Write the contract source and any project files into ``workspace``.

        Every target is checked before the first write so a rejected request
        leaves the directory untouched.
        """

        validate_contract_name(primary_name)
        primary_path = self._resolve_inside(workspace, primary_name)
        targets = [
            (self._resolve_inside(workspace, rel_path), content)
            for rel_path, content in (auxiliary_files or {}).items()
        ]

        primary_path.write_text(primary_content, encoding="utf-8")
        for target, content in targets:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return primary_path

    def destroy(self, workspace: Workspace) -> bool:
        """Remove the workspace tree; never raises."""

        try:
            shutil.rmtree(workspace.root)
        except FileNotFoundError:
            return True
        except OSError as exc:
            logger.warning("Could not clean up workspace %s: %s", workspace.root, exc)
            return False
        return True

    @asynccontextmanager
    async def open(self) -> AsyncIterator[Workspace]:
        """Yield a new workspace and remove it on every exit path."""

        workspace = await asyncio.to_thread(self.create)
        try:
            yield workspace
        finally:
            await asyncio.shield(asyncio.to_thread(self.destroy, workspace))
