"""Settings store for the flowsync CLI.

This module provides the persistent settings shared across commands. Plain
settings live in ``~/.flowsync/config.json``:

- email: Account used for auto-login
- api_base: Service base URL
- sync_folder: Root of the watched tree
- selected_team_id: Destination of the uploads

The account password is kept in the OS keyring, never in the file.
"""

from __future__ import annotations

import contextlib
import json
import logging
from pathlib import Path

import keyring
from keyring.errors import KeyringError

from flowsync.core.config import DEFAULT_API_BASE, AgentConfig, default_sync_folder

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "flowsync"
SETTINGS_KEYS = ("email", "api_base", "sync_folder", "selected_team_id")


def get_config_dir() -> Path:
    """Get the directory holding the flowsync settings."""
    return Path.home() / ".flowsync"


def get_config_file() -> Path:
    """Get the path to the settings file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load the saved settings.

    Unknown keys and non-string values are dropped. An unreadable or corrupt
    file is treated as empty so that ``login`` can rewrite it.

    Returns:
        The known settings that are set.
    """
    config_file = get_config_file()
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Failed to load settings from %s: %s, using defaults", config_file, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: not a JSON object", config_file)
        return {}
    return {
        key: value
        for key, value in data.items()
        if key in SETTINGS_KEYS and isinstance(value, str) and value
    }


def save_config(config: dict[str, str]) -> None:
    """Write the settings file, creating its directory if needed."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2, sort_keys=True), encoding="utf-8")
    logger.debug("Settings saved to %s", config_file)


def update_config(**values: str | None) -> dict[str, str]:
    """Set (or remove, when None) keys in the settings file."""
    unknown = set(values) - set(SETTINGS_KEYS)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    config = load_config()
    for key, value in values.items():
        if value is None:
            config.pop(key, None)
        else:
            config[key] = value
    save_config(config)
    return config


def get_sync_folder() -> Path:
    """Get the sync folder: the saved one, else the platform default."""
    saved = load_config().get("sync_folder")
    if saved:
        return Path(saved).expanduser().resolve()
    return default_sync_folder()


def get_api_base() -> str:
    """Get the service base URL."""
    return load_config().get("api_base") or DEFAULT_API_BASE


def build_agent_config() -> AgentConfig:
    """Build the agent configuration from the saved settings."""
    return AgentConfig(
        api_base=get_api_base(),
        sync_folder=get_sync_folder(),
        receiver_email=load_config().get("email", ""),
    )


def save_password(email: str, password: str) -> bool:
    """Store the account password in the OS keyring.

    Returns:
        True if stored, False if no usable keyring is available.
    """
    try:
        keyring.set_password(KEYRING_SERVICE, email, password)
    except KeyringError as e:
        logger.error("Failed to store password for %s: %s", email, e)
        return False
    return True


def load_password(email: str) -> str | None:
    """Get the saved account password, if any."""
    try:
        return keyring.get_password(KEYRING_SERVICE, email)
    except KeyringError:
        return None


def delete_password(email: str) -> None:
    """Remove the saved account password."""
    with contextlib.suppress(KeyringError):
        keyring.delete_password(KEYRING_SERVICE, email)
