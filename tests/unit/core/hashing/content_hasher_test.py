import pytest

from stablepack.core.data.chunk import Chunk, ChunkKind
from stablepack.core.data.module import Module
from stablepack.core.exceptions import GraphError
from stablepack.core.hashing.content_hasher import ContentHasher


@pytest.fixture
def hasher():
    return ContentHasher()


def _chunk(name, modules, kind=ChunkKind.SHARED, dependencies=(), roots=()):
    return Chunk(
        name,
        kind,
        ContentHasher.order_modules(modules),
        roots=roots,
        dependencies=dependencies,
    )


def test_order_modules_dependencies_first():
    a = Module("a", b"", dependencies=("b",))
    b = Module("b", b"", dependencies=("c",))
    c = Module("c", b"")
    assert [m.id for m in ContentHasher.order_modules([a, c, b])] == ["c", "b", "a"]


def test_order_modules_breaks_cycles_deterministically():
    a = Module("a", b"", dependencies=("b",))
    b = Module("b", b"", dependencies=("a",))
    assert [m.id for m in ContentHasher.order_modules([b, a])] == ["a", "b"]
    assert [m.id for m in ContentHasher.order_modules([a, b])] == ["a", "b"]


def test_identity_is_deterministic(hasher):
    modules = [Module("a", b"1"), Module("b", b"2")]
    first = hasher.identity(_chunk("x", modules), {})
    second = hasher.identity(_chunk("x", list(reversed(modules))), {})
    assert first == second
    assert len(first) == 64


def test_identity_ignores_shared_chunk_name(hasher):
    modules = [Module("a", b"1")]
    assert hasher.identity(_chunk("x", modules), {}) == hasher.identity(
        _chunk("y", modules), {}
    )


def test_entry_identity_includes_name(hasher):
    one = _chunk("one", [], kind=ChunkKind.ENTRY)
    two = _chunk("two", [], kind=ChunkKind.ENTRY)
    assert hasher.identity(one, {}) != hasher.identity(two, {})


def test_identity_changes_with_module_content(hasher):
    before = hasher.identity(_chunk("x", [Module("a", b"1")]), {})
    after = hasher.identity(_chunk("x", [Module("a", b"2")]), {})
    assert before != after


def test_identity_covers_dependency_identities(hasher):
    chunk = _chunk("app", [Module("a", b"")], dependencies=("vendor",))
    assert hasher.identity(chunk, {"vendor": "1" * 64}) != hasher.identity(
        chunk, {"vendor": "2" * 64}
    )


def test_identity_requires_dependencies(hasher):
    chunk = _chunk("app", [Module("a", b"")], dependencies=("vendor",))
    with pytest.raises(ValueError, match="vendor"):
        hasher.identity(chunk, {})


def test_identity_ignores_extra_identities(hasher):
    chunk = _chunk("app", [Module("a", b"")])
    assert hasher.identity(chunk, {}) == hasher.identity(chunk, {"other": "f" * 64})


def test_chunk_order_leaves_first():
    vendor = _chunk("vendor", [])
    shared = _chunk("shared-a~b", [], dependencies=("vendor",))
    app = _chunk("a", [], kind=ChunkKind.ENTRY, dependencies=("shared-a~b", "vendor"))
    order = ContentHasher.chunk_order([app, shared, vendor])
    assert [c.name for c in order] == ["vendor", "shared-a~b", "a"]


def test_chunk_order_rejects_cycles():
    one = _chunk("one", [], dependencies=("two",))
    two = _chunk("two", [], dependencies=("one",))
    with pytest.raises(GraphError, match="Cyclic chunk dependencies"):
        ContentHasher.chunk_order([one, two])
