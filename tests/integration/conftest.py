import json
import os
import subprocess
import sys
from pathlib import Path

import pytest


def run_cli(cli_exe, args, cwd=None, env=None):
    """Run the stablepack CLI in a subprocess and capture its output."""
    return subprocess.run(
        [*cli_exe, *args],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        encoding="utf-8",
    )


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Point the user config, cache and log directories into the test dir."""
    home = tmp_path / "home"
    for name, sub in (
        ("XDG_CONFIG_HOME", "config"),
        ("XDG_CACHE_HOME", "cache"),
        ("XDG_STATE_HOME", "state"),
    ):
        monkeypatch.setenv(name, str(home / sub))
    for key in list(os.environ):
        if key.lower().startswith("stablepack_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("NODE_ENV", "test")
    return dict(os.environ)


@pytest.fixture
def cli_exe(isolated_env):
    return [sys.executable, "-m", "stablepack"]


@pytest.fixture
def project(temp_dir) -> Path:
    """A small project: two entry points sharing a vendor module and a lazy page."""
    src = temp_dir / "src"
    src.mkdir()
    (src / "a.js").write_text("require('vendor');\nconsole.log('a');\n")
    (src / "b.js").write_text("require('vendor');\nconsole.log('b');\n")
    (src / "page.js").write_text("module.exports = 'page';\n")
    (src / "vendor.js").write_text("// vendored\nmodule.exports = {};\n")

    graph = {
        "root": "src",
        "modules": [
            {
                "id": "a",
                "path": "a.js",
                "dependencies": ["vendor"],
                "dynamic_dependencies": ["page"],
            },
            {"id": "b", "path": "b.js", "dependencies": ["vendor"]},
            {"id": "page", "path": "page.js"},
            {"id": "vendor", "path": "vendor.js"},
        ],
        "entries": {"A": ["a"], "B": ["b"]},
        "shared": ["vendor"],
    }
    (temp_dir / "graph.json").write_text(json.dumps(graph))
    return temp_dir
