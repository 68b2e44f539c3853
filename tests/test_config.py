"""Tests for loading and saving analysis settings."""

from pathlib import Path

import pytest
import toml

from flowmap_cli.config import CONFIG_SECTION, FlowMapConfig, load_config, save_config
from flowmap_cli.errors import ConfigurationError


def test_missing_file_gives_defaults(tmp_path: Path):
    config = load_config(tmp_path / "absent.toml")

    assert config == FlowMapConfig()
    assert config.god_object_threshold == 10
    assert config.breaking_node_types == ("controller", "action", "route")


def test_load_analysis_section(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text(
        "[analysis]\n"
        "god_object_threshold = 3\n"
        "complexity_increase_threshold = 50\n"
        'breaking_edge_types = ["belongs_to", "has_many"]\n'
        'path_attribute = "url"\n',
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.god_object_threshold == 3
    assert config.complexity_increase_threshold == 50.0
    assert isinstance(config.complexity_increase_threshold, float)
    assert config.breaking_edge_types == ("belongs_to", "has_many")
    assert config.path_attribute == "url"
    assert config.top_n == 5


def test_unknown_keys_are_ignored(tmp_path: Path, caplog):
    path = tmp_path / "config.toml"
    path.write_text("[analysis]\nshiny_new_option = true\n", encoding="utf-8")

    with caplog.at_level("WARNING"):
        config = load_config(path)

    assert config == FlowMapConfig()
    assert "shiny_new_option" in caplog.text


@pytest.mark.parametrize(
    "payload",
    [
        {"god_object_threshold": "ten"},
        {"god_object_threshold": True},
        {"complexity_increase_threshold": "high"},
        {"breaking_node_types": "controller"},
        {"path_attribute": 7},
    ],
)
def test_bad_values_raise(payload):
    with pytest.raises(ConfigurationError) as excinfo:
        FlowMapConfig.from_dict(payload)
    assert excinfo.value.category == "configuration"


def test_invalid_toml_raises(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text("[analysis\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(path)


def test_save_preserves_other_sections(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.write_text('[user]\nname = "dev"\n', encoding="utf-8")

    save_config(FlowMapConfig(top_n=9), path)

    data = toml.loads(path.read_text(encoding="utf-8"))
    assert data["user"] == {"name": "dev"}
    assert data[CONFIG_SECTION]["top_n"] == 9
    assert load_config(path).top_n == 9


def test_config_is_immutable():
    config = FlowMapConfig()
    with pytest.raises(Exception):
        config.top_n = 1  # type: ignore[misc]
