import json
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from stablepack.context import (
    BuildContext,
    BuildSettings,
    GlobalConfig,
    GlobalContext,
)
from stablepack.core.emitter.emitter import DirectoryEmitter, MemoryEmitter

# -----------------------------------------------------------------------------
# GlobalConfig Tests
# -----------------------------------------------------------------------------


def test_global_config_defaults():
    """Test that GlobalConfig has expected default values."""
    config = GlobalConfig()
    assert config.mode == "production"
    assert config.out_dir == "dist"
    assert config.cache_dir is None
    assert config.use_cache is True
    assert config.max_cache_entries is None
    assert config.hash_length is None
    assert config.filename == "[name].[hash].js"
    assert config.public_path == "/"
    assert config.workers == 4
    assert config.orphans == "exclude"
    assert config.env_vars == ["NODE_ENV"]
    assert config.verbose is False
    assert config.silent is False


def test_global_config_splits_env_vars_string():
    config = GlobalConfig(env_vars="NODE_ENV, API_URL,")
    assert config.env_vars == ["NODE_ENV", "API_URL"]


@pytest.mark.parametrize(
    "values",
    [
        {"mode": "staging"},
        {"workers": 0},
        {"hash_length": 2},
        {"orphans": "ignore"},
        {"filename": "bundle.js"},
        {"filename": "js/[name].[hash].js"},
    ],
)
def test_global_config_rejects_invalid_values(values):
    with pytest.raises(ValidationError):
        GlobalConfig(**values)


# -----------------------------------------------------------------------------
# BuildSettings Tests
# -----------------------------------------------------------------------------


def test_production_settings_shorten_hash_and_minify():
    settings = BuildSettings.for_mode("production")
    assert settings.hash_length == 8
    assert settings.minify is True


def test_development_settings_keep_full_hash():
    settings = BuildSettings.for_mode("development")
    assert settings.hash_length is None
    assert settings.minify is False


def test_explicit_hash_length_wins():
    assert BuildSettings.for_mode("production", hash_length=12).hash_length == 12


# -----------------------------------------------------------------------------
# Context Tests
# -----------------------------------------------------------------------------


def test_global_context_uses_user_cache_dir_by_default():
    with patch("stablepack.context.user_cache_dir", return_value="/tmp/stablepack-cache"):
        context = GlobalContext.from_global_config(GlobalConfig())

    assert context.cache_dir == Path("/tmp/stablepack-cache")
    assert context.out_dir == Path("dist")


def _write_graph(tmp_path: Path) -> Path:
    (tmp_path / "a.js").write_text("module.exports = 1;\n")
    graph = {
        "modules": [{"id": "a.js"}],
        "entries": {"app": ["a.js"]},
    }
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(graph))
    return path


def test_build_context_production(tmp_path):
    config = GlobalConfig(cache_dir=str(tmp_path / "cache"), out_dir=str(tmp_path / "dist"))
    context = BuildContext.from_global_context(
        GlobalContext.from_global_config(config),
        _write_graph(tmp_path),
        metadata={"release": "1"},
    )

    assert isinstance(context.emitter, DirectoryEmitter)
    assert context.emitter.out_dir == tmp_path / "dist"
    assert context.cache is not None
    assert context.metadata == {"release": "1"}
    assert [e.name for e in context.policy.entry_points] == ["app"]
    assert not context.cancelled.is_set()


def test_build_context_overrides(tmp_path):
    config = GlobalConfig(cache_dir=str(tmp_path / "cache"))
    context = BuildContext.from_global_context(
        GlobalContext.from_global_config(config),
        _write_graph(tmp_path),
        mode="development",
        use_cache=False,
    )

    assert isinstance(context.emitter, MemoryEmitter)
    assert context.settings.mode == "development"
    assert context.cache is None


def test_cancel_sets_event(tmp_path):
    config = GlobalConfig(use_cache=False)
    context = BuildContext.from_global_context(
        GlobalContext.from_global_config(config), _write_graph(tmp_path)
    )
    context.cancel()
    assert context.cancelled.is_set()
