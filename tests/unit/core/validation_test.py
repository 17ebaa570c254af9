import pytest

from stablepack.core.exceptions import ValidationError
from stablepack.core.validation import (
    validate_graph_path,
    validate_metadata,
    validate_mode,
    validate_workers,
)


def test_validate_graph_path(tmp_path):
    graph = tmp_path / "graph.json"
    graph.write_text("{}")
    assert validate_graph_path(str(graph)) == graph


def test_validate_graph_path_missing(tmp_path):
    with pytest.raises(ValidationError, match="Path not found"):
        validate_graph_path(str(tmp_path / "missing.json"))


def test_validate_graph_path_directory(tmp_path):
    with pytest.raises(ValidationError, match="not a file"):
        validate_graph_path(str(tmp_path))


def test_validate_metadata():
    assert validate_metadata(["release=1.4.0", "note=a=b", "release=1.5.0"]) == {
        "release": "1.5.0",
        "note": "a=b",
    }
    assert validate_metadata(None) == {}


@pytest.mark.parametrize("pair", ["release", "=value", "bad key=1"])
def test_validate_metadata_rejects_malformed(pair):
    with pytest.raises(ValidationError, match="Invalid metadata"):
        validate_metadata([pair])


def test_validate_mode():
    assert validate_mode(None) is None
    assert validate_mode("development") == "development"
    with pytest.raises(ValidationError):
        validate_mode("staging")


def test_validate_workers():
    assert validate_workers(None) is None
    assert validate_workers(2) == 2
    with pytest.raises(ValidationError):
        validate_workers(0)
