"""
Credential lookup for mcp-chat.

API keys are read from the environment, after loading the first ``.env`` file
found in the usual locations. Keys are passed through to the model provider
unchanged.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Paths to check for .env files, in order of precedence
ENV_PATHS = [
    Path.cwd() / ".env",
    Path.cwd() / ".secrets.env",
    Path.home() / ".mcp_chat" / ".env",
]

PROVIDER_KEYS = {
    "anthropic": "ANTHROPIC_API_KEY",
}

_loaded = False


def load_env_files() -> Optional[Path]:
    """
    Load the first existing .env file into the process environment.

    Variables that are already set are not overridden. Only the first call
    does any work.

    Returns:
        The file that was loaded, or None.
    """
    global _loaded
    if _loaded:
        return None
    _loaded = True

    for env_path in ENV_PATHS:
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)
            return env_path
    return None


def get_secret(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get a secret from the environment, loading .env files first."""
    load_env_files()
    return os.environ.get(key, default)


def get_api_key(provider: str) -> Optional[str]:
    """
    Get the API key for a model provider.

    Raises:
        ValueError: If the provider is not supported.
    """
    env_name = PROVIDER_KEYS.get(provider.lower())
    if env_name is None:
        raise ValueError(f"Unknown provider: {provider}")
    return get_secret(env_name)
