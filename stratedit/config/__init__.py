"""Workspace configuration.

`.env` is loaded at import time, then callers read the validated YAML config:
    from stratedit.config import get_config
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from stratedit.config.loader import load_workspace_config
from stratedit.config.schema import ApiConfig, AutosaveConfig, WorkspaceConfig
from stratedit.constants import ENV_CONFIG_PATH, ENV_DOTENV_PATH

# Project root (relative to this file)
_project_root = Path(__file__).parent.parent.parent

_env_path = os.getenv(ENV_DOTENV_PATH)
_dotenv_path = Path(_env_path).expanduser() if _env_path else _project_root / ".env"
if not _dotenv_path.is_absolute():
    _dotenv_path = (_project_root / _dotenv_path).resolve()

load_dotenv(_dotenv_path)

DEFAULT_CONFIG_PATH = Path("~/.stratedit/stratedit.yml")


def config_path() -> Path:
    """Return the config file location, honouring `STRATEDIT_CONFIG`."""
    override = os.getenv(ENV_CONFIG_PATH)
    return Path(override or DEFAULT_CONFIG_PATH).expanduser()


def get_config(path: Optional[Path] = None) -> WorkspaceConfig:
    """Load the workspace config from `path` or the default location."""
    return load_workspace_config(path or config_path())


__all__ = ["ApiConfig", "AutosaveConfig", "WorkspaceConfig", "config_path", "get_config"]
