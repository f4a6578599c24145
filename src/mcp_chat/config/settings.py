"""
Settings models for mcp-chat.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from mcp_chat.errors import ConfigError

DEFAULT_CONFIG_FILES = ("mcp_chat.config.yaml", "mcp_config.json")


class MCPServerSettings(BaseModel):
    """Launch specification for one tool server."""

    transport: Literal["stdio", "sse"] = "stdio"
    command: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    env: Optional[Dict[str, str]] = None
    url: Optional[str] = None
    read_timeout_seconds: Optional[float] = None

    @model_validator(mode="after")
    def _check_transport(self) -> "MCPServerSettings":
        if self.transport == "stdio" and not self.command:
            raise ValueError("'command' is required for stdio transport")
        if self.transport == "sse" and not self.url:
            raise ValueError("'url' is required for sse transport")
        return self


class MCPSettings(BaseModel):
    """Tool servers keyed by the caller-chosen server name."""

    servers: Dict[str, MCPServerSettings] = Field(default_factory=dict)


class AnthropicSettings(BaseModel):
    """Settings for the Anthropic messages endpoint."""

    api_key: Optional[str] = None
    api_base: str = "https://api.anthropic.com/v1"
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 1000


class ChatSettings(BaseModel):
    """Settings for the conversation loop."""

    system_prompt: Optional[str] = None
    max_tool_rounds: int = 10
    tool_separator: str = "-"
    best_effort_connect: bool = False
    exit_command: str = ":exit"


class LoggingSettings(BaseModel):
    """Settings for logging configuration."""

    level: str = "warning"
    file_path: Optional[str] = None


class Settings(BaseModel):
    """Root settings object for mcp-chat."""

    mcp: MCPSettings = Field(default_factory=MCPSettings)
    anthropic: AnthropicSettings = Field(default_factory=AnthropicSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def _accept_mcp_servers_key(cls, data: Any) -> Any:
        # Desktop-client style documents list servers under a top-level "mcpServers".
        if isinstance(data, dict) and "mcpServers" in data:
            data = dict(data)
            servers = data.pop("mcpServers")
            mcp = dict(data.get("mcp") or {})
            mcp.setdefault("servers", servers)
            data["mcp"] = mcp
        return data

    def require_servers(self) -> Dict[str, MCPServerSettings]:
        """
        Return the configured servers.

        Raises:
            ConfigError: If no server is configured.
        """
        if not self.mcp.servers:
            raise ConfigError("No MCP servers found in configuration.")
        return self.mcp.servers


def find_config_file(directory: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Return the first default config file present in ``directory`` (cwd by default)."""
    base = Path(directory) if directory is not None else Path.cwd()
    for name in DEFAULT_CONFIG_FILES:
        candidate = base / name
        if candidate.exists():
            return candidate
    return None


def _read_document(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_config(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load and validate the configuration.

    Args:
        config_path: Path to a YAML or JSON configuration file. If None, look
            for one of ``DEFAULT_CONFIG_FILES`` in the current directory.

    Returns:
        Settings: Validated configuration object.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid, or if it
            names no servers.
    """
    if config_path is None:
        path = find_config_file()
        if path is None:
            raise ConfigError(
                f"No config file found (looked for {', '.join(DEFAULT_CONFIG_FILES)})"
            )
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

    config_data = _read_document(path)

    secrets_path = path.with_suffix(".secrets.yaml")
    if secrets_path.exists():
        _merge_dicts(config_data, _read_document(secrets_path))

    env_config = _load_from_env()
    if env_config:
        _merge_dicts(config_data, env_config)

    try:
        settings = Settings.model_validate(config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    settings.require_servers()
    return settings


def _load_from_env() -> Dict[str, Any]:
    """
    Load configuration overrides from environment variables.
    """
    # Imported here so that reading .env files happens only when config is loaded.
    from mcp_chat.utils.secrets import get_api_key, get_secret

    config: Dict[str, Any] = {}

    _set_nested_dict(config, ["anthropic", "api_key"], get_api_key("anthropic"))
    _set_nested_dict(config, ["anthropic", "api_base"], get_secret("ANTHROPIC_API_BASE"))
    _set_nested_dict(config, ["anthropic", "model"], get_secret("ANTHROPIC_MODEL"))

    _set_nested_dict(config, ["logging", "level"], os.environ.get("LOG_LEVEL"))
    _set_nested_dict(config, ["logging", "file_path"], os.environ.get("LOG_FILE"))

    return config


def _set_nested_dict(d: Dict[str, Any], path: List[str], value: Any) -> None:
    """
    Set a value in a nested dictionary based on a path. None values are skipped.
    """
    if value is None:
        return

    if len(path) == 1:
        d[path[0]] = value
        return

    if path[0] not in d or not isinstance(d[path[0]], dict):
        d[path[0]] = {}

    _set_nested_dict(d[path[0]], path[1:], value)


def _merge_dicts(target: Dict, source: Dict) -> None:
    """
    Recursively merge source dictionary into target dictionary.
    Values in source override values in target.
    """
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _merge_dicts(target[key], value)
        else:
            target[key] = value
