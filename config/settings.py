"""Configuration settings loaded from .env file."""

from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

IMAGE_MODELS = ("gemini-2.5-flash-image", "gemini-3-pro-image-preview")
IMAGE_SIZES = ("1K", "2K", "4K")


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    Script writing goes through the Claude Agent SDK (authenticated by the
    Claude Code CLI); image rendering goes through Gemini and needs
    GEMINI_API_KEY.
    """

    # Script LLM
    llm_model_script: str = "claude-sonnet-4-6"        # ScriptAgent
    llm_model_description: str = "claude-haiku-4-5"    # environment descriptions

    # Image service
    gemini_api_key: Optional[str] = None
    image_model: str = "gemini-3-pro-image-preview"
    image_size: str = "1K"
    image_aspect_ratio: str = "16:9"
    ai_timeout_seconds: float = 180.0

    # Storage
    storage_path: Path = Path("./data/studio.db")
    storage_prefix: str = "comicstudio"
    workspace_version: str = "3.1.3"
    autosave_delay_seconds: float = 1.0

    # Generation defaults
    default_panel_count: int = 3
    max_panel_count: int = 8

    # Volumes / export
    default_page_width: int = 1920
    default_page_height: int = 1080
    default_background_color: str = "#dbdac8"
    export_dir: Path = Path("./data/exports")
    external_fetch_timeout_seconds: float = 20.0

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("image_model")
    @classmethod
    def validate_image_model(cls, v: str) -> str:
        if v not in IMAGE_MODELS:
            raise ValueError(f"image_model must be one of {', '.join(IMAGE_MODELS)}")
        return v

    @field_validator("image_size")
    @classmethod
    def validate_image_size(cls, v: str) -> str:
        if v not in IMAGE_SIZES:
            raise ValueError(f"image_size must be one of {', '.join(IMAGE_SIZES)}")
        return v

    @field_validator("default_page_width", "default_page_height")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Page dimensions must be >= 1")
        return v

    @field_validator("ai_timeout_seconds", "external_fetch_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v

    @field_validator("autosave_delay_seconds")
    @classmethod
    def validate_autosave_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("autosave_delay_seconds must be >= 0")
        return v

    @field_validator("storage_path", "export_dir", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def validate_panel_range(self) -> "Settings":
        if not 1 <= self.default_panel_count <= self.max_panel_count:
            raise ValueError(
                f"default_panel_count ({self.default_panel_count}) must be between "
                f"1 and max_panel_count ({self.max_panel_count})"
            )
        return self


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
