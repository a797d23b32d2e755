import pytest

from backend.core.errors import InvalidRequestError, MissingContractCode, UnsafePathError, UnsupportedCompilerVersion
from backend.core.schema import CompileRequestBody
from backend.core.validation import normalise_relative_path, validate_request
from backend.domain import CompilationRequest


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("lib/util.compact", "lib/util.compact"),
        ("./lib//util.compact", "lib/util.compact"),
        ("a/../b.compact", "b.compact"),
        ("lib\\win.compact", "lib/win.compact"),
    ],
)
def test_contained_paths_are_normalised(raw, expected):
    assert normalise_relative_path(raw) == expected


@pytest.mark.parametrize("raw", ["", "..", "../x", "a/../../x", "/etc/passwd", "C:/x", "\\\\server\\share", "a\x00b", "."])
def test_escaping_paths_are_rejected(raw):
    with pytest.raises(UnsafePathError):
        normalise_relative_path(raw)


def test_validate_request_order():
    supported = ["0.23.0", "0.24.0"]

    with pytest.raises(MissingContractCode):
        validate_request(CompilationRequest(source="", compiler_version="9.9.9"), supported)
    with pytest.raises(UnsupportedCompilerVersion):
        validate_request(CompilationRequest(source="x", compiler_version="9.9.9"), supported)
    with pytest.raises(InvalidRequestError):
        validate_request(
            CompilationRequest(source="x", compiler_version="0.24.0", project_files={"contract.compact": "y"}),
            supported,
        )

    validate_request(
        CompilationRequest(source="x", compiler_version="0.23.0", project_files={"lib/a.compact": "y"}),
        supported,
    )


def test_request_body_defaults():
    request = CompileRequestBody.model_validate({"contractCode": "contract A {}", "unknown": 1}).to_request()

    assert request.contract_name == "contract"
    assert request.compiler_version is None
    assert request.source_filename == "contract.compact"
    assert request.output_subpath.as_posix() == "managed/contract"
    assert dict(request.project_files) == {}


@pytest.mark.parametrize(
    "project_files",
    [
        {"lib": "file", "lib/util.compact": "nested"},
        {"lib/deep/x.compact": "nested", "lib/deep": "file"},
        {"a/../b.compact": "one", "b.compact": "two"},
        {"./lib/a.compact": "one", "lib//a.compact": "two"},
    ],
)
def test_clashing_project_files_are_rejected(project_files):
    request = CompilationRequest(source="x", compiler_version="0.24.0", project_files=project_files)
    with pytest.raises(InvalidRequestError):
        validate_request(request, ["0.24.0"])


def test_sibling_project_files_are_accepted():
    request = CompilationRequest(
        source="x",
        compiler_version="0.24.0",
        project_files={"lib/a.compact": "a", "lib/b.compact": "b", "lib2": "c"},
    )
    validate_request(request, ["0.24.0"])
