class LinkError(Exception):
    """Base exception for failures that end the link flow with an error page."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OAuth2Error(LinkError):
    """Raised when Discord reports an OAuth2 failure on the callback."""
    pass


class UpstreamError(LinkError):
    """Raised when a Discord call fails."""
    pass


class SteamLinkError(LinkError):
    """Raised when the user has no usable Steam account linked."""
    pass
