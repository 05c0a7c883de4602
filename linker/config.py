"""Configuration for the link server.

Values come from environment variables (a ``.env`` file is loaded by the
entry point through python-dotenv) and are collected into one explicit
``LinkConfig`` object that is handed to the handler.
"""
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional


# field name -> environment variable
REQUIRED_VARIABLES = {
    "client_id": "DISCORD_CLIENT_ID",
    "client_secret": "DISCORD_CLIENT_SECRET",
    "redirect_uri": "DISCORD_REDIRECT_URI",
    "guild_id": "DISCORD_GUILD_ID",
    "role_id": "DISCORD_ROLE_ID",
    "bot_token": "DISCORD_BOT_TOKEN",
    "log_webhook_id": "LOG_WEBHOOK_ID",
    "log_webhook_token": "LOG_WEBHOOK_TOKEN",
}


class ConfigError(Exception):
    """Raised when required configuration is missing or malformed."""
    pass


@dataclass(frozen=True)
class LinkConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    guild_id: str
    role_id: str
    bot_token: str
    log_webhook_id: str
    log_webhook_token: str

    api_base: str = "https://discord.com/api/v10"
    page_title: str = "Discord Auth"
    host: str = "0.0.0.0"
    port: int = 8080
    link_path: str = "/"
    http_timeout: float = 30
    log_file: str = "linker.log"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LinkConfig":
        """Build a config from environment variables. Missing required values become empty strings."""
        if environ is None:
            environ = os.environ

        values = {field: environ.get(name, "").strip() for field, name in REQUIRED_VARIABLES.items()}

        try:
            port = int(environ.get("OAUTH2_PORT", "8080"))
            http_timeout = float(environ.get("HTTP_TIMEOUT", "30"))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        return cls(
            **values,
            api_base=environ.get("DISCORD_API_BASE", "https://discord.com/api/v10"),
            page_title=environ.get("LINK_PAGE_TITLE", "Discord Auth"),
            host=environ.get("OAUTH2_HOST", "0.0.0.0"),
            port=port,
            link_path=environ.get("LINK_PATH", "/"),
            http_timeout=http_timeout,
            log_file=environ.get("LOG_FILE", "linker.log"),
        )

    def validate(self) -> List[str]:
        """Return the environment variable names of all missing required settings."""
        return [
            name for field, name in REQUIRED_VARIABLES.items()
            if not getattr(self, field)
        ]

    def require(self) -> "LinkConfig":
        missing = self.validate()
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")
        return self
