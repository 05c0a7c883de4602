from .discord_web_api import DiscordWebAPI, DiscordAPIError, OAUTH2_SCOPES

__all__ = ['DiscordWebAPI', 'DiscordAPIError', 'OAUTH2_SCOPES']
