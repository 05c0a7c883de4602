import aiohttp
import asyncio
import time
from typing import Optional


class SteamAPIError(Exception):
    """Base exception for Steam community errors."""
    pass


class PrivateProfileError(SteamAPIError):
    """Raised when a Steam profile is private or friends-only."""
    pass


class ProfileNotFoundError(SteamAPIError):
    """Raised when Steam has no profile for the requested Steam ID."""
    pass


class SteamCommunity:
    """Reads public profile data from steamcommunity.com. No API key is sent."""

    BASE_URL = "https://steamcommunity.com"
    PRIVACY_MARKER = "<privacyMessage>"
    ERROR_MARKER = "<error>"

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, timeout: float = 30, logger=None):
        self.logger = logger
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None
        self._closed = False

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._closed:
            raise RuntimeError("Cannot use SteamCommunity after it has been closed")

        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                raise_for_status=False
            )
            self._owns_session = True
        return self.session

    def profile_url(self, steam_id: str) -> str:
        return f"{self.BASE_URL}/profiles/{steam_id}"

    async def get_profile_xml(self, steam_id: str) -> str:
        """
        Fetch the XML rendition of a community profile.

        :param steam_id: 64-bit Steam ID
        :return: Raw XML document
        :raises SteamAPIError: On transport errors or a non-2xx status
        """
        session = await self._get_session()
        start_time = time.time()

        try:
            async with session.request("GET", self.profile_url(steam_id), params={"xml": 1}) as response:
                response_time_ms = int((time.time() - start_time) * 1000)
                if self.logger:
                    self.logger.debug(
                        f"Steam profile {steam_id} answered {response.status} in {response_time_ms}ms"
                    )

                if not 200 <= response.status < 300:
                    if self.logger:
                        self.logger.warning(f"Steam profile request failed ({response.status}) for {steam_id}")
                    raise SteamAPIError(f"Steam community returned HTTP {response.status}")

                return await response.text()

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if self.logger:
                self.logger.error(f"Steam profile request failed: {e!r}")
            raise SteamAPIError(f"Steam community request failed: {e!r}") from e

    async def ensure_public_profile(self, steam_id: str) -> str:
        """
        Make sure the profile exists and is publicly visible.

        :param steam_id: 64-bit Steam ID
        :return: Raw XML document of the profile
        :raises PrivateProfileError: If the profile is not public
        :raises ProfileNotFoundError: If Steam does not know the profile
        """
        body = await self.get_profile_xml(steam_id)

        if self.PRIVACY_MARKER in body:
            raise PrivateProfileError("Steam profile is private or friends-only")

        # Unknown profiles come back as 200 with <response><error>...</error></response>
        if self.ERROR_MARKER in body:
            raise ProfileNotFoundError(f"No Steam profile found for {steam_id}")

        return body

    async def close(self):
        """Close the aiohttp session if this client created it."""
        if self._owns_session and not self._closed and self.session and not self.session.closed:
            await self.session.close()
            if self.logger:
                self.logger.debug("SteamCommunity session closed")
        self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
