from __future__ import annotations

from pathlib import Path

import pytest

from maelnode.config import (
    GossipConfig,
    InputConfig,
    LoggingConfig,
    NodeConfig,
    discover_config,
    load_config,
)
from maelnode.errors import ConfigError


# ---------------------------------------------------------------------------
# Config dataclass defaults
# ---------------------------------------------------------------------------


class TestGossipConfig:
    def test_defaults(self) -> None:
        assert GossipConfig().interval == 0.15

    def test_frozen(self) -> None:
        cfg = GossipConfig()
        with pytest.raises(AttributeError):
            cfg.interval = 1.0  # type: ignore[misc]

    @pytest.mark.parametrize("interval", [0, -0.5, True, "fast"])
    def test_rejects_invalid_interval(self, interval: object) -> None:
        with pytest.raises(ConfigError, match="gossip.interval"):
            GossipConfig(interval=interval)  # type: ignore[arg-type]


class TestInputConfig:
    def test_defaults(self) -> None:
        assert InputConfig().line_limit == 16 * 1024 * 1024

    @pytest.mark.parametrize("limit", [0, -1, 1.5])
    def test_rejects_invalid_limit(self, limit: object) -> None:
        with pytest.raises(ConfigError, match="line_limit"):
            InputConfig(line_limit=limit)  # type: ignore[arg-type]


class TestLoggingConfig:
    def test_defaults(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "info"
        assert cfg.format == "verbose"
        assert cfg.colors is None

    def test_rejects_unknown_level(self) -> None:
        with pytest.raises(ConfigError, match="unknown log level"):
            LoggingConfig(level="chatty")

    def test_rejects_unknown_format(self) -> None:
        with pytest.raises(ConfigError, match="unknown log format"):
            LoggingConfig(format="json")  # type: ignore[arg-type]


class TestOverrides:
    def test_no_overrides_returns_same_config(self) -> None:
        cfg = NodeConfig()
        assert cfg.with_overrides() is cfg

    def test_overrides_replace_values(self) -> None:
        cfg = NodeConfig(logging=LoggingConfig(format="compact"))
        overridden = cfg.with_overrides(gossip_interval=0.5, log_level="debug")

        assert overridden.gossip.interval == 0.5
        assert overridden.logging.level == "debug"
        assert overridden.logging.format == "compact"
        assert cfg.gossip.interval == 0.15

    def test_invalid_override_is_rejected(self) -> None:
        with pytest.raises(ConfigError):
            NodeConfig().with_overrides(gossip_interval=0.0)


# ---------------------------------------------------------------------------
# TOML loading
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_full_config(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("""\
[gossip]
interval = 0.5

[input]
line_limit = 4096

[logging]
level = "debug"
format = "minimal"
colors = false
""")
        cfg = load_config(toml_file)

        assert cfg.gossip.interval == 0.5
        assert cfg.input.line_limit == 4096
        assert cfg.logging == LoggingConfig(level="debug", format="minimal", colors=False)

    def test_minimal_config(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("")
        assert load_config(toml_file) == NodeConfig()

    def test_integer_interval_is_accepted(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("[gossip]\ninterval = 1\n")
        assert load_config(toml_file).gossip.interval == 1

    def test_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("[gossip\ninterval = ")
        with pytest.raises(ConfigError):
            load_config(toml_file)

    def test_unknown_key(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("[gossip]\ninterval = 0.2\nfanout = 3\n")
        with pytest.raises(ConfigError, match="fanout"):
            load_config(toml_file)

    def test_section_must_be_table(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text('gossip = "fast"\n')
        with pytest.raises(ConfigError, match=r"\[gossip\] must be a table"):
            load_config(toml_file)

    def test_invalid_value(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("[gossip]\ninterval = -1.0\n")
        with pytest.raises(ConfigError, match="positive"):
            load_config(toml_file)


# ---------------------------------------------------------------------------
# Auto-discovery
# ---------------------------------------------------------------------------


class TestDiscoverConfig:
    def test_finds_in_cwd(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("[gossip]\ninterval = 0.3")
        assert discover_config(tmp_path) == toml_file

    def test_walks_up(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "maelnode.toml"
        toml_file.write_text("[gossip]\ninterval = 0.3")
        child = tmp_path / "a" / "b" / "c"
        child.mkdir(parents=True)
        assert discover_config(child) == toml_file

    def test_not_found_returns_none(self, tmp_path: Path) -> None:
        child = tmp_path / "isolated"
        child.mkdir()
        assert discover_config(child) is None

    def test_load_config_no_args_auto_discovery(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "maelnode.toml").write_text("[gossip]\ninterval = 0.3")
        monkeypatch.chdir(tmp_path)
        assert load_config().gossip.interval == 0.3

    def test_load_config_no_args_no_file_returns_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config() == NodeConfig()
