import asyncio

import pytest

from backend.core.errors import RegistryConfigError, UnsupportedCompilerVersion
from backend.core.settings import DEFAULT_REGISTRY_FILE
from backend.domain import CompilerVersion
from backend.infrastructure import NOT_AVAILABLE, VersionRegistry
from fake_compilers import success_script, write_registry, write_script


class ProbeInvoker:
    def __init__(self, banners):
        self.banners = banners

    async def probe_version(self, executable):
        banner = self.banners.get(executable)
        if isinstance(banner, Exception):
            return None
        return banner


def test_bundled_registry_matches_reference_deployment():
    registry = VersionRegistry.from_yaml(DEFAULT_REGISTRY_FILE)

    assert registry.identifiers() == ["0.23.0", "0.24.0"]
    assert registry.default_version == "0.24.0"
    assert registry.recommended["openzeppelin-examples"] == "0.23.0"
    assert registry.get("0.24.0").executable == "/usr/local/bin/compact-0.24.0/compactc"
    assert "assert-statements" in registry.get("0.23.0").recommended_for


def test_resolve_returns_existing_executable(tmp_path, bin_dir):
    executable = write_script(bin_dir, "compactc", success_script())
    registry = VersionRegistry.from_yaml(
        write_registry(tmp_path / "r.yaml", {"0.24.0": executable, "0.23.0": tmp_path / "nope"}, "0.24.0")
    )

    assert registry.resolve("0.24.0") == executable
    assert registry.resolve("0.23.0") is None


def test_unknown_version_is_client_error():
    registry = VersionRegistry({"1.0.0": CompilerVersion("1.0.0", "/bin/true")}, "1.0.0")

    with pytest.raises(UnsupportedCompilerVersion) as excinfo:
        registry.resolve("9.9.9")

    assert excinfo.value.supported == ["1.0.0"]


def test_bare_executable_is_found_on_path(bin_dir, monkeypatch):
    write_script(bin_dir, "compactc", success_script())
    monkeypatch.setenv("PATH", str(bin_dir))
    registry = VersionRegistry({"1.0.0": CompilerVersion("1.0.0", "compactc")}, "1.0.0")

    assert registry.resolve("1.0.0") == bin_dir / "compactc"


def test_invalid_configuration_is_rejected(tmp_path):
    with pytest.raises(RegistryConfigError):
        VersionRegistry({"1.0.0": CompilerVersion("1.0.0", "compactc")}, "2.0.0")
    with pytest.raises(RegistryConfigError):
        VersionRegistry(
            {"1.0.0": CompilerVersion("1.0.0", "compactc")},
            "1.0.0",
            recommended={"latest": "2.0.0"},
        )

    broken = tmp_path / "broken.yaml"
    broken.write_text("versions: [1, 2\n", encoding="utf-8")
    with pytest.raises(RegistryConfigError):
        VersionRegistry.from_yaml(broken)

    missing_default = tmp_path / "missing.yaml"
    missing_default.write_text("versions:\n  '1.0.0':\n    executable: compactc\n", encoding="utf-8")
    with pytest.raises(RegistryConfigError):
        VersionRegistry.from_yaml(missing_default)


def test_list_available_records_failures_per_version(tmp_path, bin_dir):
    good = write_script(bin_dir / "good", "compactc", success_script())
    flaky = write_script(bin_dir / "flaky", "compactc", success_script())
    registry = VersionRegistry(
        {
            "0.22.0": CompilerVersion("0.22.0", str(tmp_path / "gone" / "compactc")),
            "0.23.0": CompilerVersion("0.23.0", str(flaky)),
            "0.24.0": CompilerVersion("0.24.0", str(good)),
        },
        "0.24.0",
    )
    invoker = ProbeInvoker({str(good): "Compactc version: 0.24.0", str(flaky): RuntimeError("crash")})

    statuses = asyncio.run(registry.list_available(invoker))

    assert statuses == {
        "0.22.0": NOT_AVAILABLE,
        "0.23.0": NOT_AVAILABLE,
        "0.24.0": "Compactc version: 0.24.0",
    }
