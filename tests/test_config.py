import json

import pytest
import yaml

from mcp_chat.config import Settings, load_config
from mcp_chat.errors import ConfigError
from mcp_chat.utils.secrets import get_api_key


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ANTHROPIC_API_KEY", "ANTHROPIC_API_BASE", "ANTHROPIC_MODEL", "LOG_LEVEL", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


def test_load_yaml_config(tmp_path):
    path = write_yaml(tmp_path / "mcp_chat.config.yaml", {
        "mcp": {
            "servers": {
                "files": {"command": "npx", "args": ["-y", "server-filesystem", "/tmp"]},
                "search": {"transport": "sse", "url": "http://localhost:8000/sse"},
            }
        },
        "chat": {"tool_separator": "."},
    })

    settings = load_config(path)

    assert list(settings.mcp.servers) == ["files", "search"]
    assert settings.mcp.servers["files"].args == ["-y", "server-filesystem", "/tmp"]
    assert settings.mcp.servers["search"].url == "http://localhost:8000/sse"
    assert settings.chat.tool_separator == "."
    assert settings.chat.exit_command == ":exit"


def test_load_desktop_style_json_config(tmp_path):
    path = tmp_path / "mcp_config.json"
    path.write_text(json.dumps({
        "mcpServers": {
            "weather": {"command": "node", "args": ["build/index.js"]},
            "notes": {"command": "uvx", "args": ["notes-server"], "env": {"NOTES_DIR": "/n"}},
        }
    }))

    settings = load_config(path)

    assert list(settings.mcp.servers) == ["weather", "notes"]
    assert settings.mcp.servers["notes"].env == {"NOTES_DIR": "/n"}
    assert settings.mcp.servers["weather"].transport == "stdio"


def test_default_file_is_found_in_cwd(tmp_path, monkeypatch):
    write_yaml(tmp_path / "mcp_chat.config.yaml", {"mcpServers": {"a": {"command": "a"}}})
    monkeypatch.chdir(tmp_path)

    assert list(load_config().mcp.servers) == ["a"]


def test_missing_file_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize("data", [{}, {"mcpServers": {}}, {"mcp": {"servers": {}}}])
def test_empty_server_list_is_a_config_error(tmp_path, data):
    path = write_yaml(tmp_path / "config.yaml", data)

    with pytest.raises(ConfigError):
        load_config(path)


def test_unparsable_file_is_a_config_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    with pytest.raises(ConfigError):
        load_config(path)


def test_stdio_server_without_command_is_a_config_error(tmp_path):
    path = write_yaml(tmp_path / "config.yaml", {"mcpServers": {"broken": {"args": ["x"]}}})

    with pytest.raises(ConfigError):
        load_config(path)


def test_secrets_file_and_environment_override(tmp_path, monkeypatch):
    path = write_yaml(tmp_path / "config.yaml", {
        "mcpServers": {"a": {"command": "a"}},
        "anthropic": {"model": "from-file", "api_key": "file-key"},
    })
    write_yaml(tmp_path / "config.secrets.yaml", {"anthropic": {"api_key": "secret-key"}})

    settings = load_config(path)
    assert settings.anthropic.api_key == "secret-key"
    assert settings.anthropic.model == "from-file"

    monkeypatch.setenv("ANTHROPIC_MODEL", "from-env")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = load_config(path)
    assert settings.anthropic.model == "from-env"
    assert settings.logging.level == "debug"


def test_require_servers_on_empty_settings():
    with pytest.raises(ConfigError):
        Settings().require_servers()


def test_api_key_from_environment_wins(tmp_path, monkeypatch):
    path = write_yaml(tmp_path / "config.yaml", {
        "mcpServers": {"a": {"command": "a"}},
        "anthropic": {"api_key": "file-key"},
    })
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

    assert load_config(path).anthropic.api_key == "env-key"


def test_api_key_lookup_by_provider(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

    assert get_api_key("Anthropic") == "env-key"
    with pytest.raises(ValueError):
        get_api_key("acme")
