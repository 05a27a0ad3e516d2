from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stratedit.constants import DEFAULT_API_BASE_URL, DEFAULT_API_TIMEOUT_S, DEFAULT_AUTOSAVE_DELAY_S


class ApiConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    base_url: str = DEFAULT_API_BASE_URL
    timeout_s: float = Field(default=DEFAULT_API_TIMEOUT_S, gt=0)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Routes are joined with a leading slash, so drop the trailing one."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base_url: {v}. Expected an http(s) URL")
        return v.rstrip("/")


class AutosaveConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    enabled: bool = True
    delay_s: float = Field(default=DEFAULT_AUTOSAVE_DELAY_S, gt=0)


class WorkspaceConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    api: ApiConfig = ApiConfig()
    autosave: AutosaveConfig = AutosaveConfig()
    log_level: Optional[str] = None
