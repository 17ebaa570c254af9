# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

import json
import os
from collections.abc import Iterable, Mapping

from ..data.chunk import Chunk, ChunkKind
from ..data.manifest import INLINE_GLOBAL
from ..data.module import Module
from ..partitioner.partitioner import RUNTIME_CHUNK

RUNTIME_MODULE_ID = "@stablepack/runtime"

# The bootstrap reads the manifest the host page inlines, so chunk
# identities never appear in here and the runtime stays stable.
RUNTIME_TEMPLATE = """\
(function (global) {
  var manifest = global.__MANIFEST_GLOBAL__ || { chunks: {}, entries: {}, dynamic: {}, public_path: "/" };
  var definitions = {};
  var instances = {};
  var pending = {};
  var lazyEntries = {};

  function require(id) {
    if (instances[id]) {
      return instances[id].exports;
    }
    var definition = definitions[id];
    if (!definition) {
      throw new Error("stablepack: module not loaded: " + id);
    }
    var module = (instances[id] = { exports: {} });
    definition[1].call(module.exports, module, module.exports, require);
    return module.exports;
  }

  function chunkFor(identity) {
    for (var name in manifest.chunks) {
      if (manifest.chunks[name].identity === identity) {
        return manifest.chunks[name];
      }
    }
    throw new Error("stablepack: unknown chunk: " + identity);
  }

  function loadChunk(identity) {
    if (!pending[identity]) {
      var chunk = chunkFor(identity);
      if (chunk.kind === "entry") {
        // loaded for its modules, not to start another page entry
        lazyEntries[chunk.name] = true;
      }
      pending[identity] = new Promise(function (resolve, reject) {
        var script = document.createElement("script");
        script.src = manifest.public_path + chunk.file;
        script.onload = resolve;
        script.onerror = reject;
        document.head.appendChild(script);
      });
    }
    return pending[identity];
  }

  global.__stablepack__ = {
    env: __ENV__,
    require: require,
    register: function (modules) {
      for (var id in modules) {
        if (!definitions[id]) {
          definitions[id] = modules[id];
        }
      }
    },
    run: function (name, roots) {
      if (lazyEntries[name]) {
        delete lazyEntries[name];
        return;
      }
      // the page already loaded every chunk this entry needs
      var loaded = manifest.entries[name] || [];
      for (var j = 0; j < loaded.length; j++) {
        if (!pending[loaded[j]]) {
          pending[loaded[j]] = Promise.resolve();
        }
      }
      for (var i = 0; i < roots.length; i++) {
        require(roots[i]);
      }
    },
    load: function (boundary) {
      var identities = manifest.dynamic[boundary] || [];
      return Promise.all(identities.map(loadChunk)).then(function () {
        return require(boundary);
      });
    }
  };
})(typeof window !== "undefined" ? window : globalThis);
"""


def collect_environment(names: Iterable[str]) -> dict[str, str]:
    """Values of the named environment variables; unset ones are left out."""
    return {name: os.environ[name] for name in sorted(set(names)) if name in os.environ}


def runtime_chunk(env: Mapping[str, str]) -> Chunk:
    """The bootstrap chunk every entry point needs loaded first."""
    source = RUNTIME_TEMPLATE.replace("__MANIFEST_GLOBAL__", INLINE_GLOBAL).replace(
        "__ENV__", json.dumps(dict(env), sort_keys=True)
    )
    module = Module(id=RUNTIME_MODULE_ID, content=source.encode("utf-8"))
    return Chunk(name=RUNTIME_CHUNK, kind=ChunkKind.RUNTIME, modules=(module,))
