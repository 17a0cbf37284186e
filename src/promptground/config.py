"""Connection settings and user configuration."""

import importlib
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from loguru import logger
from pydantic import AliasChoices, BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.config import DEFAULT_MODEL

CONFIG_FILENAME = "promptground.yaml"
USER_DATA_DIR = Path(".promptground") / "data"
DEV_DATA_DIR = Path("data")


class Settings(BaseSettings):
    """LLM connection and storage settings from environment or direct initialization."""

    api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "PROMPTGROUND_API_KEY", "OPENAI_API_KEY", "API_KEY", "api_key"
        ),
    )
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PROMPTGROUND_BASE_URL", "OPENAI_BASE_URL", "base_url"),
    )
    data_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("PROMPTGROUND_DATA_DIR", "data_dir"),
    )
    config_path: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("PROMPTGROUND_CONFIG_PATH", "config_path"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def resolve_data_dir(self, cwd: Optional[Path] = None) -> Path:
        """Resolve the data directory used by the JSON stores."""
        if self.data_dir:
            return Path(self.data_dir)
        base = cwd or Path.cwd()
        user_dir = base / USER_DATA_DIR
        dev_dir = base / DEV_DATA_DIR
        if user_dir.exists():
            return user_dir
        if dev_dir.exists():
            logger.debug(f"Using development data directory: {dev_dir}")
            return dev_dir
        return user_dir

    def resolve_config_path(self, cwd: Optional[Path] = None) -> Path:
        """Resolve the YAML user config path."""
        if self.config_path:
            return Path(self.config_path)
        return (cwd or Path.cwd()) / CONFIG_FILENAME


def get_settings() -> Settings:
    """Load settings from environment."""
    return Settings()


class ToolSpec(BaseModel):
    """Tool declared in the user config.

    ``handler`` is an import path of the form ``package.module:function``.
    """

    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    handler: str

    def resolve_handler(self) -> Callable[..., Any]:
        """Import the handler callable."""
        module_name, _, attr = self.handler.partition(":")
        if not module_name or not attr:
            raise ValueError(f"Tool '{self.name}' handler must look like 'module:function'")
        module = importlib.import_module(module_name)
        handler = getattr(module, attr)
        if not callable(handler):
            raise TypeError(f"Tool '{self.name}' handler {self.handler} is not callable")
        return handler


class UserConfig(BaseModel):
    """User-level configuration: tools, default model and system prompt."""

    tools: List[ToolSpec] = Field(default_factory=list)
    system_prompt: Optional[str] = None
    default_model: str = DEFAULT_MODEL
    optimize: Dict[str, Any] = Field(default_factory=dict)


class UserConfigLoader:
    """Loads ``promptground.yaml`` once per instance; ``reload()`` re-reads it."""

    def __init__(self, path: Optional[Path] = None):
        """Initialize loader with an explicit config path."""
        self.path = path
        self._config: Optional[UserConfig] = None
        self._tools: Optional[List[Any]] = None

    @classmethod
    def from_config(cls, config: UserConfig) -> "UserConfigLoader":
        """Build a loader around an in-memory config."""
        loader = cls(path=None)
        loader._config = config
        return loader

    def load(self) -> UserConfig:
        """Return the cached config, reading the file on first use."""
        if self._config is None:
            self._config = self._read()
        return self._config

    def reload(self) -> UserConfig:
        """Drop cached state and read the config again."""
        self._config = None
        self._tools = None
        return self.load()

    def tools(self) -> List[Any]:
        """Resolve configured tools into callable tool objects; broken tools are skipped."""
        if self._tools is None:
            from .clients.tools import Tool

            resolved = []
            for spec in self.load().tools:
                try:
                    resolved.append(Tool.from_spec(spec))
                except Exception as e:
                    logger.warning(f"Skipping tool '{spec.name}': {e}")
            self._tools = resolved
        return self._tools

    def _read(self) -> UserConfig:
        if self.path is None or not Path(self.path).exists():
            logger.warning(f"Config file not found ({self.path}), using defaults")
            return UserConfig()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            config = UserConfig.model_validate(data if isinstance(data, dict) else {})
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.warning(f"Could not load user config, using defaults: {e}")
            return UserConfig()
        logger.info(f"Loaded user config from {self.path} ({len(config.tools)} tools)")
        return config
