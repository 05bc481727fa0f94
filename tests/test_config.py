"""Tests for callergen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from callergen.config import CallerGenConfig, ConfigError, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, CallerGenConfig)
    assert config.root == tmp_path.resolve()
    assert config.api_dir == "api"
    assert config.component_marker == "hyperware:process"
    assert config.wit_package == "hyperware:process@1.0.0"
    assert config.world is None
    assert config.include_worlds == ["process-v1"]
    assert config.send_timeout == 30
    assert config.exclude_paths == []
    assert config.wire_all_processes is False
    assert config.aggregator.name == "caller-utils"
    assert config.aggregator_path == tmp_path.resolve() / "caller-utils"


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".callergen.yml"
    config_file.write_text(
        """
api_dir: "wit"
component_marker: "acme:service"
wit_package: "acme:service@0.2.0"
world: "service-v0"
include_worlds: [service-base, process-v1]
send_timeout: 120
exclude_paths:
  - "sandbox/"
wire_all_processes: true
aggregator:
  name: "service-callers"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.api_path == tmp_path.resolve() / "wit"
    assert config.component_marker == "acme:service"
    assert config.wit_package == "acme:service@0.2.0"
    assert config.world == "service-v0"
    assert config.include_worlds == ["service-base", "process-v1"]
    assert config.send_timeout == 120
    assert config.exclude_paths == ["sandbox/"]
    assert config.wire_all_processes is True
    assert config.aggregator.name == "service-callers"
    assert config.aggregator.path == "service-callers"


def test_aggregator_path_overrides_name_default(tmp_path: Path) -> None:
    (tmp_path / ".callergen.yml").write_text(
        "aggregator:\n  name: stubs\n  path: crates/stubs\n", encoding="utf-8"
    )

    config = load_config(tmp_path)

    assert config.aggregator.name == "stubs"
    assert config.aggregator_path == tmp_path.resolve() / "crates" / "stubs"


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".callergen.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.send_timeout == 30


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "send_timeout: 0\n",
        "send_timeout: soon\n",
        "wit_package: nocolon\n",
        "api_dir: [unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / ".callergen.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
