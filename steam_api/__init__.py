from .steam_id import SteamID, Universe, AccountType, Instance, normalize_connection_id
from .steam_community import SteamCommunity, SteamAPIError, PrivateProfileError, ProfileNotFoundError

__all__ = [
    'SteamID', 'Universe', 'AccountType', 'Instance', 'normalize_connection_id',
    'SteamCommunity', 'SteamAPIError', 'PrivateProfileError', 'ProfileNotFoundError',
]
