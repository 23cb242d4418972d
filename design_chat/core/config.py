"""Configuration and settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # OpenAI API
    openai_api_key: str = Field(default="")
    openai_timeout_seconds: float = Field(default=300.0)
    analysis_model: str = Field(default="gpt-4o")
    specification_model: str = Field(default="gpt-4.1")
    html_primary_model: str = Field(default="gpt-4.1")
    html_fallback_model: str = Field(default="gpt-4o")

    # Screenshot API (APIFlash)
    screenshot_api_key: str = Field(default="")
    screenshot_api_url: str = Field(default="https://api.apiflash.com/v1/urltoimage")
    screenshot_timeout_seconds: float = Field(default=60.0)
    screenshot_width: int = Field(default=1920)
    screenshot_height: int = Field(default=1080)

    # Pacing and retries
    model_call_delay_seconds: float = Field(default=5.0)
    retry_max_attempts: int = Field(default=3)
    retry_base_delay_seconds: float = Field(default=1.0)

    # Session lifecycle
    max_sessions_per_client: int = Field(default=2)
    max_reference_entries: int = Field(default=3)
    state_dir: str = Field(default="./state")

    # Notifications
    webhook_url: str = Field(default="")
    webhook_timeout_seconds: float = Field(default=10.0)

    # Server
    backend_host: str = Field(default="localhost")
    backend_port: int = Field(default=8000)
    frontend_url: str = Field(default="http://localhost:5173")
    environment: str = Field(default="development")

    # API Configuration
    api_title: str = "Design Chat API"
    api_version: str = "0.1.0"


# Global settings instance
settings = Settings()
