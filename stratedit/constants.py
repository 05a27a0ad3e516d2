"""Constants used across stratedit.

This module defines shared constants to ensure consistency.
"""

# Store API
DEFAULT_API_BASE_URL = "http://localhost:3001"
DEFAULT_API_TIMEOUT_S = 5.0

SOURCE_GET_ROUTE = "/strategy/source/get"
SOURCE_SAVE_ROUTE = "/strategy/source/save"
SOURCE_DELETE_ROUTE = "/strategy/source/delete"
SOURCE_MOVE_ROUTE = "/strategy/source/move"
STRATEGY_ADD_ROUTE = "/strategy/add"
HEALTH_ROUTE = "/health"

# Autosave
DEFAULT_AUTOSAVE_DELAY_S = 2.0  # Inactivity window after the last edit

# Tree
ROOT_PATH = ""
PATH_SEPARATOR = "/"

# Editor language by file extension
LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".rs": "rust",
    ".toml": "toml",
    ".json": "json",
    ".md": "markdown",
}
DEFAULT_LANGUAGE = "plaintext"

# Env vars
ENV_CONFIG_PATH = "STRATEDIT_CONFIG"
ENV_DOTENV_PATH = "STRATEDIT_ENV_PATH"
ENV_LOG_LEVEL = "STRATEDIT_LOG_LEVEL"
