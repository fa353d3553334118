"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings read from ``CC_``-prefixed environment variables and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="CC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "code-cast"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    # Directory holding config.json, re-read on every webhook
    config_dir: str = "/etc/code-cast"

    # Request authentication
    agent: str = "GitHub-Hookshot/"
    event_header: str = "x-github-event"

    # Inbound throttle shared by every webhook
    rate_limit_max: int = 2
    rate_limit_window_seconds: float = 60.0

    # Default strategy commands, run inside the working copy
    install_command: str = "npm install"
    build_command: str = "npm run build"


settings = Settings()
