from .config import LinkConfig, ConfigError
from .errors import LinkError, OAuth2Error, UpstreamError, SteamLinkError
from .handler import LinkingHandler, LinkResult
from .oauth2_server import LinkServer

__all__ = [
    'LinkConfig', 'ConfigError',
    'LinkError', 'OAuth2Error', 'UpstreamError', 'SteamLinkError',
    'LinkingHandler', 'LinkResult', 'LinkServer',
]
