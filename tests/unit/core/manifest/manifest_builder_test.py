import pytest

from stablepack.core.data.build_result import ChunkArtifact
from stablepack.core.data.chunk import Chunk, ChunkKind
from stablepack.core.manifest.manifest_builder import ManifestBuilder


def _artifact(name, kind, dependencies=()):
    chunk = Chunk(name, kind, (), dependencies=dependencies)
    return ChunkArtifact(chunk, f"{name}-id", f"{name}.js", b"")


@pytest.fixture
def artifacts():
    return [
        _artifact("runtime", ChunkKind.RUNTIME),
        _artifact("vendor", ChunkKind.SHARED),
        _artifact("shared-a~b", ChunkKind.SHARED, ("vendor",)),
        _artifact("a", ChunkKind.ENTRY, ("shared-a~b", "vendor")),
        _artifact("b", ChunkKind.ENTRY, ("shared-a~b",)),
        _artifact("dynamic-page", ChunkKind.DYNAMIC, ("vendor",)),
    ]


def test_entries_list_dependencies_first(artifacts):
    manifest = ManifestBuilder().build(
        artifacts,
        {"a": ("a", "shared-a~b", "vendor"), "b": ("b", "shared-a~b")},
        {"page": ("dynamic-page",)},
        mode="production",
    )

    assert manifest.entries["a"] == ("vendor-id", "shared-a~b-id", "a-id")
    # vendor is pulled in through shared-a~b
    assert manifest.entries["b"] == ("vendor-id", "shared-a~b-id", "b-id")
    assert manifest.dynamic["page"] == ("vendor-id", "dynamic-page-id")


def test_runtime_is_referenced_separately(artifacts):
    manifest = ManifestBuilder().build(artifacts, {"a": ("a",)}, {}, mode="production")
    assert manifest.runtime == "runtime"
    assert "runtime-id" not in manifest.entries["a"]
    assert manifest.chunks["runtime"].kind is ChunkKind.RUNTIME


def test_entry_chunk_loads_last_even_with_lexically_later_dependencies():
    artifacts = [
        _artifact("runtime", ChunkKind.RUNTIME),
        _artifact("zeta", ChunkKind.SHARED),
        _artifact("app", ChunkKind.ENTRY),
    ]
    # the entry chunk itself does not depend on "zeta", yet runs after it
    manifest = ManifestBuilder().build(artifacts, {"app": ("app", "zeta")}, {}, mode="production")
    assert manifest.entries["app"] == ("zeta-id", "app-id")


def test_metadata_and_settings_are_recorded(artifacts):
    manifest = ManifestBuilder().build(
        artifacts,
        {},
        {},
        mode="development",
        public_path="/assets/",
        metadata={"z": "1", "a": "2"},
    )
    assert manifest.mode == "development"
    assert manifest.public_path == "/assets/"
    assert list(manifest.metadata) == ["a", "z"]


def test_requires_exactly_one_runtime(artifacts):
    with pytest.raises(ValueError):
        ManifestBuilder().build(artifacts[1:], {}, {}, mode="production")
