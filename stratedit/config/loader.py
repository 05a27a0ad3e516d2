from pathlib import Path
from typing import Type, TypeVar

import structlog
import yaml
from pydantic import BaseModel

from stratedit.config.schema import WorkspaceConfig
from stratedit.utils import expand_env_vars

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if model.model_extra:
        logger.warning(
            "Unknown config keys", section=path, config_path=str(config_path), keys=list(model.model_extra.keys())
        )

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def load_config(path: Path, model_class: Type[T]) -> T:
    """Load and validate configuration from a YAML file.

    A missing or unreadable file yields the model defaults. Invalid values
    raise pydantic's ValidationError.

    Args:
        path: Path to the YAML file.
        model_class: The Pydantic model class to use for validation.

    Returns:
        The validated configuration model.
    """
    if not path.exists():
        return model_class()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file", config_path=str(path), error=str(e))
        return model_class()

    expanded = expand_env_vars(raw)
    model = model_class.model_validate(expanded)
    _warn_unknown_keys(model, "root", path)
    return model


def load_workspace_config(path: Path) -> WorkspaceConfig:
    """Load the workspace configuration file."""
    return load_config(path, WorkspaceConfig)
