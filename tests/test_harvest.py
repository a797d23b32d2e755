from pathlib import Path

from backend.core.harvest import harvest


def _populate(root: Path, files: dict[str, str]) -> None:
    for rel_path, content in files.items():
        target = root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")


def test_harvest_reads_nested_tree(tmp_path):
    output = tmp_path / "managed" / "Counter"
    files = {
        "contract/index.cjs": "module.exports = {};",
        "contract/index.d.cts": "export {};",
        "compiler/contract-info.json": "{}",
        "keys/circuits/deep/increment.verifier": "vk",
        "zkir/increment.zkir": "ir",
    }
    _populate(output, files)

    result = harvest(output)

    assert result.artifacts == files
    assert result.warnings == []


def test_harvest_missing_root_yields_nothing(tmp_path):
    result = harvest(tmp_path / "does-not-exist")
    assert result.artifacts == {}
    assert result.warnings == []


def test_harvest_is_idempotent(tmp_path):
    output = tmp_path / "out"
    _populate(output, {"b.txt": "b", "a/z.txt": "z", "a/a.txt": "a"})

    first = harvest(output)
    second = harvest(output)

    assert first.artifacts == second.artifacts
    assert list(first.artifacts) == list(second.artifacts)


def test_unreadable_file_is_skipped_with_warning(tmp_path, monkeypatch):
    output = tmp_path / "out"
    _populate(output, {"good.ts": "ok", "bad.ts": "secret", "nested/also-good.ts": "fine"})
    original = Path.read_text

    def flaky_read_text(self, *args, **kwargs):
        if self.name == "bad.ts":
            raise PermissionError("denied")
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", flaky_read_text)

    result = harvest(output)

    assert result.artifacts == {"good.ts": "ok", "nested/also-good.ts": "fine"}
    assert len(result.warnings) == 1
    assert "bad.ts" in result.warnings[0]


def test_binary_content_is_decoded_with_replacement(tmp_path):
    output = tmp_path / "out"
    output.mkdir()
    (output / "Foo.wasm").write_bytes(b"\x00asm\xff\xfe")

    result = harvest(output)

    assert result.artifacts["Foo.wasm"].startswith("\x00asm")
    assert "�" in result.artifacts["Foo.wasm"]


def test_limits_are_enforced(tmp_path):
    output = tmp_path / "out"
    _populate(output, {"a.txt": "a", "b.txt": "b", "c.txt": "c", "huge.txt": "x" * 100})

    result = harvest(output, max_files=2, max_file_bytes=10)

    assert result.artifacts == {"a.txt": "a", "b.txt": "b"}
    assert len(result.warnings) == 2


def test_symlinks_are_not_followed(tmp_path):
    secret = tmp_path / "secret.txt"
    secret.write_text("host data", encoding="utf-8")
    output = tmp_path / "out"
    _populate(output, {"Foo.ts": "ts"})
    (output / "leak.txt").symlink_to(secret)

    result = harvest(output)

    assert result.artifacts == {"Foo.ts": "ts"}
    assert any("leak.txt" in warning for warning in result.warnings)
