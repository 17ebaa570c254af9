import json
import os
from unittest.mock import patch

import pytest

from stablepack.core.data.chunk import Chunk, ChunkKind
from stablepack.core.data.module import Module
from stablepack.core.serializer.chunk_serializer import (
    ChunkSerializer,
    minify_source,
    render_file_name,
)
from stablepack.core.serializer.runtime import (
    RUNTIME_MODULE_ID,
    collect_environment,
    runtime_chunk,
)

SOURCE = b"// helper\nfunction add(a, b) {\n\n    return a + b;\n}\n"


def _entry(name="app", content=SOURCE):
    module = Module("src/add.js", content, dependencies=("src/dep.js",))
    return Chunk(name, ChunkKind.ENTRY, (module,), roots=("src/add.js",))


def test_entry_chunk_registers_and_runs():
    output = ChunkSerializer().serialize(_entry()).decode()

    assert output.startswith("__stablepack__.register({\n")
    assert '"src/add.js": [["src/dep.js"], function (module, exports, require) {' in output
    assert "return a + b;" in output
    assert output.endswith('__stablepack__.run("app", ["src/add.js"]);\n')


def test_shared_chunk_does_not_run_anything():
    chunk = Chunk("vendor", ChunkKind.SHARED, (Module("lib.js", b"1;"),))
    output = ChunkSerializer().serialize(chunk).decode()
    assert "__stablepack__.run" not in output
    assert '"lib.js"' in output


def test_dynamic_chunk_output_ignores_its_name():
    modules = (Module("page.js", b"1;"),)
    one = Chunk("dynamic-page", ChunkKind.DYNAMIC, modules, roots=("page.js",))
    two = Chunk("dynamic-page-1234abcd", ChunkKind.DYNAMIC, modules, roots=("page.js",))
    serializer = ChunkSerializer()
    assert serializer.serialize(one) == serializer.serialize(two)


def test_minify_drops_comments_and_blank_lines():
    output = ChunkSerializer(minify=True).serialize(_entry()).decode()
    assert "// helper" not in output
    assert "\n\n" not in output
    assert "return a + b;\n" in output
    assert "    return" not in output


def test_minify_keeps_template_literal_text():
    source = b"var s = `line one\n    // not a comment\n\n    indented  \n`;\n"
    assert minify_source(source) == source


def test_minify_keeps_text_inside_nested_template_expressions():
    source = b"var s = `a ${f({ k: `\n   // inner\n`})}\n  tail`;\n    // outer\n"
    assert minify_source(source) == b"var s = `a ${f({ k: `\n   // inner\n`})}\n  tail`;\n"


def test_minify_keeps_block_comments_and_continued_strings():
    source = b"/*\n   keep\n\n*/\nvar s = 'one \\\n   two';\n"
    assert minify_source(source) == source


def test_minify_strips_code_around_strings_and_regexes():
    source = b"  var re = /[/'\"]+/g;  \n\n  var q = \"// not a comment\";\n  // gone\n"
    assert minify_source(source) == b"var re = /[/'\"]+/g;\nvar q = \"// not a comment\";\n"


def test_minify_leaves_unscannable_source_alone():
    source = b"  x = y++ / 2;\n  var s = 'a /\n"
    assert minify_source(source) == source


def test_minified_entry_keeps_template_literal():
    source = b"var s = `line one\n    // not a comment\n    indented`;\n"
    output = ChunkSerializer(minify=True).serialize(_entry(content=source)).decode()
    assert "var s = `line one\n    // not a comment\n    indented`;\n" in output


def test_serialization_is_deterministic():
    serializer = ChunkSerializer()
    assert serializer.serialize(_entry()) == serializer.serialize(_entry())


def test_namespace_differs_by_mode():
    assert ChunkSerializer(minify=True).namespace != ChunkSerializer().namespace


def test_runtime_chunk_is_emitted_verbatim():
    chunk = runtime_chunk({"NODE_ENV": "production"})
    assert chunk.kind is ChunkKind.RUNTIME
    assert chunk.name == "runtime"
    assert chunk.module_ids() == [RUNTIME_MODULE_ID]

    output = ChunkSerializer().serialize(chunk).decode()
    assert "__stablepack__.register" not in output
    assert "__STABLEPACK_MANIFEST__" in output
    assert json.dumps({"NODE_ENV": "production"}) in output


def test_runtime_marks_entry_chunks_as_loaded_when_run():
    output = ChunkSerializer().serialize(runtime_chunk({})).decode()
    run = output[output.index("run: function (name, roots)") : output.index("load: function")]

    assert "manifest.entries[name]" in run
    assert "pending[loaded[j]] = Promise.resolve();" in run
    # lazily loaded entry chunks return before seeding or running anything
    assert run.index("delete lazyEntries[name]") < run.index("manifest.entries[name]")


def test_minified_runtime_is_unchanged_apart_from_layout():
    plain = ChunkSerializer().serialize(runtime_chunk({"NODE_ENV": "x"})).decode()
    minified = ChunkSerializer(minify=True).serialize(runtime_chunk({"NODE_ENV": "x"})).decode()

    assert "// loaded for its modules" not in minified
    assert [line.strip() for line in plain.splitlines() if line.strip() and not line.strip().startswith("//")] == (
        minified.splitlines()
    )


def test_runtime_identity_tracks_environment():
    assert runtime_chunk({"NODE_ENV": "a"}).modules[0].digest != (
        runtime_chunk({"NODE_ENV": "b"}).modules[0].digest
    )


def test_collect_environment_skips_unset():
    with patch.dict(os.environ, {"NODE_ENV": "production"}, clear=True):
        assert collect_environment(["NODE_ENV", "API_URL", "NODE_ENV"]) == {
            "NODE_ENV": "production"
        }


@pytest.mark.parametrize(
    "template, hash_length, expected",
    [
        ("[name].[hash].js", 8, "app.0123abcd.js"),
        ("[name].[hash].js", None, "app." + "0123abcd" * 8 + ".js"),
        ("[hash].js", 4, "0123.js"),
        ("[name]-[name].js", 8, "app-app.js"),
    ],
)
def test_render_file_name(template, hash_length, expected):
    identity = "0123abcd" * 8
    assert render_file_name(template, "app", identity, hash_length) == expected
