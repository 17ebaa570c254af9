from pathlib import Path
from unittest.mock import mock_open, patch

import pytest
from pydantic import BaseModel

from stablepack.core.config.config_loader import ConfigLoader
from stablepack.core.exceptions import ConfigurationError

# -----------------------------------------------------------------------------
# Test Models
# -----------------------------------------------------------------------------


class SampleConfig(BaseModel):
    val: str | None = None
    number: int = 0
    flag: bool = False


# -----------------------------------------------------------------------------
# ConfigLoader Tests
# -----------------------------------------------------------------------------


def test_load_toml_exists():
    """Test loading a valid TOML file."""
    toml_content = b'val = "test"\nnumber = 42'
    with patch("builtins.open", mock_open(read_data=toml_content)):
        with patch("pathlib.Path.exists", return_value=True):
            data = ConfigLoader.load_toml(Path("config.toml"))
            assert data == {"val": "test", "number": 42}


def test_load_toml_not_exists():
    """Test loading a non-existent file returns empty dict."""
    with patch("pathlib.Path.exists", return_value=False):
        data = ConfigLoader.load_toml(Path("missing.toml"))
        assert data == {}


def test_load_toml_invalid():
    """Test loading an invalid TOML file handles exception."""
    with patch("builtins.open", mock_open(read_data=b"invalid toml content")):
        with patch("pathlib.Path.exists", return_value=True):
            data = ConfigLoader.load_toml(Path("bad.toml"))
            assert data == {}


def test_load_env_lowercases_keys():
    """Environment keys lose the prefix and are matched case-insensitively."""
    with patch.dict(
        "os.environ",
        {"APP_VAL": "env_val", "app_number": "10", "OTHER": "ignore"},
        clear=True,
    ):
        data = ConfigLoader.load_env("app_")
        assert data == {"val": "env_val", "number": "10"}


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_precedence_order(tmp_path):
    """Test the precedence order: Args > Custom > Local > Env > Global."""
    local = _write(tmp_path / "local.toml", 'val = "local"\n')
    global_ = _write(tmp_path / "global.toml", 'val = "global"\nnumber = 3\n')
    custom = _write(tmp_path / "custom.toml", 'val = "custom"\n')
    missing = tmp_path / "missing.toml"

    def run_config(args, local_path, custom_path=None, env=None):
        with patch.object(ConfigLoader, "load_env", return_value=env or {}):
            return ConfigLoader.get_full_config(
                SampleConfig, args, local_path, "APP_", global_, custom_path
            )

    config = run_config({"val": "args"}, local, custom)
    assert config.val == "args"

    config = run_config({}, local, custom)
    assert config.val == "custom"

    config = run_config({}, local, env={"val": "env"})
    assert config.val == "local"

    config = run_config({}, missing, env={"val": "env"})
    assert config.val == "env"

    config = run_config({}, missing)
    assert config.val == "global"
    assert config.number == 3


def test_keys_merge_across_sources(tmp_path):
    local = _write(tmp_path / "local.toml", "number = 7\n")
    global_ = _write(tmp_path / "global.toml", "flag = true\n")

    with patch.object(ConfigLoader, "load_env", return_value={}):
        config = ConfigLoader.get_full_config(
            SampleConfig, {"val": "x"}, local, "APP_", global_
        )

    assert (config.val, config.number, config.flag) == ("x", 7, True)


def test_defaults_when_no_source_sets_a_key(tmp_path):
    with patch.object(ConfigLoader, "load_env", return_value={}):
        config = ConfigLoader.get_full_config(
            SampleConfig, {}, tmp_path / "a.toml", "APP_", tmp_path / "b.toml"
        )

    assert config == SampleConfig()


def test_validation_error_becomes_configuration_error(tmp_path):
    """Invalid values surface as ConfigurationError."""
    with patch.object(ConfigLoader, "load_env", return_value={}):
        with pytest.raises(ConfigurationError):
            ConfigLoader.get_full_config(
                SampleConfig,
                {"number": "not-a-number"},
                tmp_path / "local.toml",
                "APP_",
                tmp_path / "global.toml",
            )


def test_missing_custom_config_is_an_error(tmp_path):
    with patch.object(ConfigLoader, "load_env", return_value={}):
        with pytest.raises(ConfigurationError, match="Custom config not found"):
            ConfigLoader.get_full_config(
                SampleConfig,
                {},
                tmp_path / "local.toml",
                "APP_",
                tmp_path / "global.toml",
                tmp_path / "nope.toml",
            )
