import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from backend.application import reset_compilation_service


@pytest.fixture(autouse=True)
def reset_service():
    reset_compilation_service()
    yield
    reset_compilation_service()


@pytest.fixture()
def bin_dir(tmp_path):
    return tmp_path / "bin"


@pytest.fixture()
def workspaces_root(tmp_path):
    return tmp_path / "workspaces"
