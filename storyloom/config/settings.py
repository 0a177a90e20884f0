"""Configuration management using Pydantic."""
from pathlib import Path
from typing import Dict, Optional
from functools import lru_cache
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from .constants import (
    OPENROUTER_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_MAX_HISTORY_CHAPTERS,
    DEFAULT_TEMPERATURES,
    DEFAULT_MAX_TOKENS,
    USER_CONFIG_FILE
)


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True
    )

    # API Configuration
    openrouter_api_key: Optional[str] = Field(
        default=None,
        description="OpenRouter API key (required for AI features only)",
        alias="OPENROUTER_API_KEY"
    )
    openrouter_base_url: str = Field(
        default=OPENROUTER_BASE_URL,
        description="OpenRouter API base URL"
    )
    proxy_url: Optional[str] = Field(
        default=None,
        description="HTTP proxy for AI requests, e.g. http://127.0.0.1:7897"
    )

    # Model configuration
    default_model: str = Field(
        default=DEFAULT_MODEL,
        description="Default LLM model to use"
    )
    current_model: Optional[str] = Field(
        default=None,
        description="Currently selected model (runtime)"
    )

    # Context assembly
    max_history_chapters: int = Field(
        default=DEFAULT_MAX_HISTORY_CHAPTERS,
        ge=0,
        description="Number of trailing chapter summaries injected into AI context"
    )

    # Generation parameters
    temperature: Dict[str, float] = Field(
        default_factory=lambda: DEFAULT_TEMPERATURES.copy(),
        description="Temperature settings for different request types"
    )
    max_tokens: Dict[str, int] = Field(
        default_factory=lambda: DEFAULT_MAX_TOKENS.copy(),
        description="Max tokens for different request types"
    )

    # Session state
    last_opened_project: Optional[Path] = Field(
        default=None,
        description="Project directory opened most recently"
    )
    verbose: bool = Field(
        default=False,
        description="Enable verbose logging"
    )

    @field_validator('openrouter_api_key', 'proxy_url')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank strings as unset."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @property
    def active_model(self) -> str:
        """Get the currently active model."""
        return self.current_model or self.default_model

    def set_model(self, model: str) -> None:
        """Set the current model."""
        self.current_model = model

    def get_temperature(self, request_type: str) -> float:
        """Get temperature for a specific request type."""
        return self.temperature.get(request_type, 0.7)

    def get_max_tokens(self, request_type: str) -> int:
        """Get max tokens for a specific request type."""
        return self.max_tokens.get(request_type, 4000)

    def load_config_file(self, config_path: Path) -> None:
        """Load additional settings from a YAML config file."""
        if config_path.exists():
            with open(config_path, encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}

            # Update settings with config file data
            for key, value in config_data.items():
                if key == 'last_opened_project' and value is not None:
                    value = Path(value)
                if hasattr(self, key):
                    setattr(self, key, value)

    def save_config_file(self, config_path: Path) -> None:
        """Save current settings to a YAML config file."""
        config_data = {
            'default_model': self.default_model,
            'proxy_url': self.proxy_url,
            'max_history_chapters': self.max_history_chapters,
            'temperature': self.temperature,
            'max_tokens': self.max_tokens,
            'last_opened_project': str(self.last_opened_project) if self.last_opened_project else None,
            'verbose': self.verbose
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()

    # Load user config if it exists
    if USER_CONFIG_FILE.exists():
        settings.load_config_file(USER_CONFIG_FILE)

    # Load project config if it exists
    project_config = Path('config.yaml')
    if project_config.exists():
        settings.load_config_file(project_config)

    return settings
