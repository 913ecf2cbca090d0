"""
Unit tests for startup configuration
"""

import pytest
import os
import sys
from unittest.mock import patch

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from tile_server.config import ConfigError, ServerConfig, TileRootConfig, load_config
from tile_server.service import build_parser, config_from_args, main


@pytest.fixture(autouse=True)
def no_log_dir_env():
    with patch.dict(os.environ):
        os.environ.pop("EXE_UNIT_LOG_DIR", None)
        yield


class TestServerConfig:
    """Test cases for ServerConfig"""

    def test_defaults(self):
        c = ServerConfig()
        assert (c.tiles_dir, c.host, c.port, c.log_level, c.log_dir) == ("Tiles", "localhost", 5000, "info", "logs")

    def test_alias(self):
        assert TileRootConfig is ServerConfig

    def test_tiles_dir_not_checked(self):
        assert ServerConfig(tiles_dir="/no/such/dir").tiles_dir == "/no/such/dir"

    @pytest.mark.parametrize("port", [-1, 65536, "5000"])
    def test_bad_port(self, port):
        with pytest.raises(ConfigError):
            ServerConfig(port=port)

    def test_bad_level(self):
        with pytest.raises(ConfigError, match="unknown log level"):
            ServerConfig(log_level="loud")

    @pytest.mark.parametrize("level", ["WARN", "trace", "Error"])
    def test_level_case_insensitive(self, level):
        assert ServerConfig(log_level=level).log_level == level


class TestLoadConfig:
    """Test cases for load_config"""

    def test_no_sources(self):
        assert load_config() == ServerConfig()

    def test_missing_file_means_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "missing.yaml")) == ServerConfig()

    def test_yaml(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text(
            "server:\n  tiles_dir: data/tiles\n  host: 0.0.0.0\n  port: 8080\n"
            "logging:\n  level: warn\n  dir: var/log\n"
        )
        c = load_config(str(p))
        assert c == ServerConfig("data/tiles", "0.0.0.0", 8080, "warn", "var/log")

    def test_partial_yaml(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("server:\n  port: 9000\n")
        c = load_config(str(p))
        assert c.port == 9000
        assert c.tiles_dir == "Tiles"

    def test_empty_yaml(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("")
        assert load_config(str(p)) == ServerConfig()

    def test_non_mapping_yaml(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(str(p))

    def test_bad_port_in_yaml(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("server:\n  port: lots\n")
        with pytest.raises(ConfigError, match="port"):
            load_config(str(p))

    @pytest.mark.parametrize("port", ["true", "5000.7"])
    def test_non_integer_port_in_yaml(self, tmp_path, port):
        """YAML booleans and floats are not silently truncated"""
        p = tmp_path / "params.yaml"
        p.write_text(f"server:\n  port: {port}\n")
        with pytest.raises(ConfigError, match="port must be an integer"):
            load_config(str(p))

    def test_yaml_syntax_error(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("server: [unclosed\n")
        with pytest.raises(ConfigError, match="params.yaml"):
            load_config(str(p))

    @pytest.mark.parametrize("text", ["server: 5\n", "logging: [a, b]\n"])
    def test_section_not_a_mapping(self, tmp_path, text):
        p = tmp_path / "params.yaml"
        p.write_text(text)
        with pytest.raises(ConfigError, match="section must be a mapping"):
            load_config(str(p))

    def test_precedence(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("server:\n  tiles_dir: from_yaml\n  port: 8080\nlogging:\n  dir: yaml_logs\n")
        with patch.dict(os.environ, {"EXE_UNIT_LOG_DIR": "env_logs"}):
            c = load_config(str(p), overrides={"port": 7000, "host": None})
        assert c.tiles_dir == "from_yaml"
        assert c.port == 7000
        assert c.host == "localhost"
        assert c.log_dir == "env_logs"

    def test_override_beats_env(self):
        with patch.dict(os.environ, {"EXE_UNIT_LOG_DIR": "env_logs"}):
            c = load_config(overrides={"log_dir": "cli_logs"})
        assert c.log_dir == "cli_logs"


class TestCommandLine:
    """Test cases for the tile-server flags"""

    def test_flags(self):
        c = config_from_args(["--tiles-dir=/srv/tiles", "--host=0.0.0.0", "--port=5001", "--log-level=WARN"])
        assert c == ServerConfig("/srv/tiles", "0.0.0.0", 5001, "warn", "logs")

    def test_no_flags(self):
        assert config_from_args([]) == ServerConfig()

    def test_config_file_flag(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("server:\n  tiles_dir: yaml_tiles\n")
        c = config_from_args(["--config", str(p), "--port", "6000"])
        assert c.tiles_dir == "yaml_tiles"
        assert c.port == 6000

    def test_bad_level_flag(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "loud"])

    @pytest.mark.parametrize("text", ["server: [unclosed\n", "server: 5\n"])
    def test_bad_config_file_exits(self, tmp_path, text):
        p = tmp_path / "params.yaml"
        p.write_text(text)
        with patch("tile_server.service.run_server") as run_server:
            with pytest.raises(SystemExit, match="Invalid configuration"):
                main(["--config", str(p)])
        run_server.assert_not_called()

    def test_help_mentions_api(self):
        assert "/tiles/{z}/{x}/{y}" in build_parser().format_help()
