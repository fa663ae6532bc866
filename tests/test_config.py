"""Tests for server configuration.

1. Defaults, including the stock accounting policy
2. Environment variable loading
3. Field validation
4. The global config singleton
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from school_library_mcp.config import ServerConfig, get_config, reset_config, set_config


class TestServerConfig:
    """Test server configuration behavior."""

    def test_default_configuration(self, clean_env, tmp_path):
        config = ServerConfig(database_path=tmp_path / "library.db")

        assert config.server_name == "school-library"
        assert config.server_version == "0.1.0"
        assert config.transport == "stdio"

        # Observed behaviour of the original system: lending is never refused
        assert config.strict_stock_check is False
        assert config.low_stock_threshold == 5
        assert config.default_school_id is None
        assert config.max_page_size == 100

    def test_environment_variable_loading(self, clean_env, tmp_path):
        env_vars = {
            "SCHOOL_LIBRARY_SERVER_NAME": "escola-library",
            "SCHOOL_LIBRARY_DATABASE_PATH": str(tmp_path / "env.db"),
            "SCHOOL_LIBRARY_STRICT_STOCK_CHECK": "true",
            "SCHOOL_LIBRARY_LOW_STOCK_THRESHOLD": "2",
            "SCHOOL_LIBRARY_DEFAULT_SCHOOL_ID": "school_20240101000001",
            "SCHOOL_LIBRARY_TRANSPORT": "streamable_http",
        }

        with patch.dict(os.environ, env_vars):
            config = ServerConfig()

        assert config.server_name == "escola-library"
        assert config.database_path == tmp_path / "env.db"
        assert config.strict_stock_check is True
        assert config.low_stock_threshold == 2
        assert config.default_school_id == "school_20240101000001"
        assert config.transport == "streamable_http"

    def test_case_insensitive_env_vars(self, clean_env, tmp_path):
        with patch.dict(
            os.environ,
            {
                "school_library_debug": "true",
                "SCHOOL_LIBRARY_DATABASE_PATH": str(tmp_path / "x.db"),
            },
        ):
            config = ServerConfig()
        assert config.debug is True

    @pytest.mark.parametrize("name", ["MCP_Server", "mcp server", "ab", "a" * 51])
    def test_invalid_server_names(self, name, tmp_path):
        with pytest.raises(ValidationError):
            ServerConfig(server_name=name, database_path=tmp_path / "x.db")

    def test_version_validation(self, tmp_path):
        assert ServerConfig(server_version="1.2.3-beta.1", database_path=tmp_path / "x.db")
        with pytest.raises(ValidationError):
            ServerConfig(server_version="v1", database_path=tmp_path / "x.db")

    def test_transport_validation(self, tmp_path):
        with pytest.raises(ValidationError):
            ServerConfig(transport="websocket", database_path=tmp_path / "x.db")

    def test_stock_settings_validation(self, tmp_path):
        with pytest.raises(ValidationError):
            ServerConfig(low_stock_threshold=-1, database_path=tmp_path / "x.db")
        with pytest.raises(ValidationError):
            ServerConfig(max_page_size=0, database_path=tmp_path / "x.db")

    def test_default_school_id_must_be_a_school_id(self, tmp_path):
        with pytest.raises(ValidationError):
            ServerConfig(default_school_id="book_202401010001", database_path=tmp_path / "x.db")

    def test_database_path_creates_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "library.db"
        config = ServerConfig(database_path=db_path)

        assert config.database_path.is_absolute()
        assert db_path.parent.is_dir()
        assert config.get_database_url() == f"sqlite:///{db_path}"

    def test_server_info(self, tmp_path):
        config = ServerConfig(database_path=tmp_path / "x.db", debug=True)
        assert config.is_development is True
        assert config.server_info == {
            "name": "school-library",
            "version": "0.1.0",
            "transport": "stdio",
        }


class TestConfigSingleton:
    def test_set_config_is_returned_by_get_config(self, test_config):
        assert get_config() is test_config

    def test_reset_and_replace(self, tmp_path):
        replacement = ServerConfig(database_path=tmp_path / "other.db", strict_stock_check=True)
        set_config(replacement)
        assert get_config().strict_stock_check is True

        reset_config()
        set_config(replacement)
        assert get_config() is replacement
