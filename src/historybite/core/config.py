"""Application configuration using pydantic-settings."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Later files take priority; missing files are skipped.
        env_file=(".env", "/etc/historybite/.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "History Bite"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "127.0.0.1"
    port: int = 3001
    base_path: str = "/indianhistorybite"
    static_dir: Path | None = None

    # Runtime files
    runtime_dir: Path = Path("runtime")
    generate_on_startup: bool = True

    # Claude API
    claude_api_key: str = ""
    claude_api_url: str = "https://api.anthropic.com/v1/messages"
    claude_model: str = "claude-3-5-haiku-20241022"
    claude_max_tokens: int = 4000
    claude_api_version: str = "2023-06-01"
    claude_timeout_seconds: float = 60.0

    # Access control
    app_api_key: str = ""
    allowed_origins: str = ""

    # Rate Limiting
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60
    refresh_rate_limit_requests: int = 10
    refresh_rate_limit_window_seconds: int = 60 * 60

    # Audit log
    audit_timezone: str = "America/Los_Angeles"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    @property
    def prompt_file(self) -> Path:
        """Path of the base prompt read before every generation."""
        return self.runtime_dir / "data" / "prompt.txt"

    @property
    def log_file(self) -> Path:
        """Path of the append-only generation audit log."""
        return self.runtime_dir / "logs" / "claude_runs.log"

    @property
    def normalized_base_path(self) -> str:
        """Base path with a single leading slash and no trailing slash."""
        stripped = self.base_path.strip("/")
        return f"/{stripped}" if stripped else ""

    @property
    def allowed_origin_list(self) -> list[str]:
        """Parse the comma-separated CORS origin list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def has_claude_key(self) -> bool:
        """Check if the Claude API key is configured."""
        return bool(self.claude_api_key)

    def has_app_api_key(self) -> bool:
        """Check if refresh endpoint protection is enabled."""
        return bool(self.app_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
