"""Configuration management for ttt."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

logger = logging.getLogger(__name__)

TTT_HOME = Path(os.environ.get("TTT_HOME", Path.home() / ".ttt"))
CONFIG_FILE = TTT_HOME / "config.json"
TOKEN_FILE = TTT_HOME / "auth" / "msgraph_tokens.json"
DATA_DIR = TTT_HOME

# "common" accepts personal accounts and any organisation.
DEFAULT_TENANT_ID = "common"
# Public Azure CLI client; supports the device code flow without a secret.
DEFAULT_CLIENT_ID = "04b07795-8542-4c4a-95af-30b2c573d5ab"
DEFAULT_PROJECT = "Meetings"


@dataclass
class OutlookConfig:
    """Microsoft Graph / Outlook sync settings."""

    tenant_id: str = DEFAULT_TENANT_ID
    client_id: str = DEFAULT_CLIENT_ID
    default_project: str = DEFAULT_PROJECT
    timezone: str = ""


@dataclass
class Config:
    """ttt configuration."""

    outlook: OutlookConfig = field(default_factory=OutlookConfig)


def strip_line_comments(text: str) -> str:
    """Drop lines whose first non-blank characters are '//'."""
    return "\n".join(
        line for line in text.splitlines() if not line.lstrip(" \t").startswith("//")
    )


def load_config(path: Path | None = None) -> Config:
    """Load configuration from config.json, falling back to defaults."""
    path = path or CONFIG_FILE
    config = Config()

    if not path.exists():
        return config

    try:
        data = json.loads(strip_line_comments(path.read_text()))
    except json.JSONDecodeError as e:
        raise ConfigError(
            f"parsing config file {path}: {e} (delete the file to use defaults)"
        ) from e
    except OSError as e:
        raise ConfigError(f"reading config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")

    outlook = data.get("outlook") or {}
    if not isinstance(outlook, dict):
        logger.warning(f"Ignoring non-object 'outlook' section in {path}")
        outlook = {}

    # Empty values keep the built-in defaults so a partial file still works.
    config.outlook.tenant_id = outlook.get("tenant_id") or DEFAULT_TENANT_ID
    config.outlook.client_id = outlook.get("client_id") or DEFAULT_CLIENT_ID
    config.outlook.default_project = outlook.get("default_project") or DEFAULT_PROJECT
    config.outlook.timezone = outlook.get("timezone") or ""

    return config
