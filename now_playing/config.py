from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent  # now-playing/


class Settings(BaseSettings):
    """Application settings with validation.

    Source credentials are optional at start-up: a source without credentials
    reports a failed PlaybackState instead of preventing the app from booting.
    All secrets must be provided via environment variables or .env file.
    """

    # API server settings
    api_host: str = Field(default="127.0.0.1", min_length=1, description="API server host (e.g., '0.0.0.0')")
    api_port: int = Field(ge=1, le=65535, default=8000, description="API server port")

    # Spotify API
    spotify_client_id: str = Field(default="", description="Spotify OAuth client ID")
    spotify_client_secret: str = Field(default="", description="Spotify OAuth client secret")
    spotify_refresh_token: str = Field(default="", description="Spotify refresh token")

    # Apple Music API
    apple_team_id: str = Field(default="", description="Apple developer team ID (JWT issuer)")
    apple_key_id: str = Field(default="", description="Apple MusicKit key ID (JWT kid header)")
    apple_private_key: str = Field(default="", description="Apple MusicKit private key (PKCS#8 PEM)")
    apple_music_user_token: str = Field(default="", description="Apple Music user token")

    # Storage for the result cache and the Apple Music state record
    store_backend: Literal["memory", "file"] = Field(default="memory", description="Key-value store backend")
    store_dir: Path = Field(default=BASE_DIR / "data", description="Directory for the file store backend")

    # Outbound HTTP
    http_timeout: float = Field(default=10.0, gt=0, description="Read timeout in seconds for source APIs")

    # CORS - comma separated list of origins
    cors_origins: str = Field(default="*", description="Allowed CORS origins")

    # Logging
    log_level: str = Field(default="INFO", description="Console log level")
    log_dir: Path = Field(default=BASE_DIR / "logs", description="Directory for the rotating JSON log")

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @property
    def spotify_configured(self) -> bool:
        """Whether all Spotify credentials are present."""
        return bool(self.spotify_client_id and self.spotify_client_secret and self.spotify_refresh_token)

    @property
    def apple_music_configured(self) -> bool:
        """Whether all Apple Music credentials are present."""
        return bool(
            self.apple_team_id and self.apple_key_id and self.apple_private_key and self.apple_music_user_token
        )

    @field_validator("api_host", mode="after")
    @classmethod
    def validate_api_host(cls, v: str) -> str:
        """Ensure api_host is not empty or whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("api_host cannot be empty")
        return v

    @field_validator("apple_private_key", mode="after")
    @classmethod
    def expand_private_key_newlines(cls, v: str) -> str:
        """Expand literal \\n sequences so single-line env values yield a valid PEM."""
        return v.replace("\\n", "\n").strip()


# Singleton settings instance (cached for performance)
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance for dependency injection.

    This function creates a singleton to avoid re-reading .env file
    on every request. Use this with FastAPI's Depends() for
    dependency injection.

    Returns:
        Cached Settings instance
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def get_cors_origins(settings: Settings) -> list[str]:
    """Get allowed CORS origins from settings."""
    return [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
