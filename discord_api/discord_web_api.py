"""
Discord REST client for the link flow

Covers the OAuth2 code exchange, the user-token endpoints (identity and
connections) and the bot-token endpoints used to put a member into the guild,
plus the webhook used for the audit trail.
"""

import aiohttp
import asyncio
import json
import time
from typing import Optional, Dict, List, Any, Iterable

import discord


OAUTH2_SCOPES = ("identify", "connections", "guilds.join")


class DiscordAPIError(Exception):
    """
    Raised when a Discord endpoint answers with a non-2xx status.

    ``status`` is 0 when the request never got an answer.
    """

    def __init__(self, status: int, message: str, endpoint: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.endpoint = endpoint


class DiscordWebAPI:
    """
    Thin aiohttp wrapper around the Discord endpoints needed for linking.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        bot_token: str,
        api_base: str = "https://discord.com/api/v10",
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30,
        logger=None
    ):
        """
        :param client_id: Discord application client ID
        :param client_secret: Discord application client secret
        :param redirect_uri: OAuth2 redirect URI registered for the application
        :param bot_token: Token of the bot that manages the guild
        :param api_base: Base URL of the REST API, including the version
        :param session: Optional shared aiohttp session
        :param timeout: Total timeout for requests when the client creates its own session
        :param logger: Optional logger instance
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.bot_token = bot_token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.logger = logger
        self.session = session
        self._owns_session = session is None
        self._closed = False

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._closed:
            raise RuntimeError("Cannot use DiscordWebAPI after it has been closed")

        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                raise_for_status=False
            )
            self._owns_session = True
        return self.session

    def _bot_headers(self) -> Dict[str, str]:
        return {'Authorization': f'Bot {self.bot_token}'}

    @staticmethod
    def _bearer_headers(access_token: str) -> Dict[str, str]:
        return {'Authorization': f'Bearer {access_token}'}

    async def _make_request(
        self,
        method: str,
        path: str,
        endpoint_name: str,
        raw_error: bool = False,
        **kwargs
    ) -> tuple[int, Any]:
        """
        Send one request and decode the answer.

        :param method: HTTP method
        :param path: Path below ``api_base`` (leading slash included)
        :param endpoint_name: Human-readable endpoint name for logs and errors
        :param raw_error: Use the raw response text as error message instead of the JSON message
        :param kwargs: Passed through to ``ClientSession.request``
        :return: Tuple of (status, decoded JSON body or None)
        :raises DiscordAPIError: On transport errors or a non-2xx status
        """
        url = f"{self.api_base}{path}"
        session = await self._get_session()
        start_time = time.time()

        try:
            async with session.request(method, url, **kwargs) as response:
                response_time_ms = int((time.time() - start_time) * 1000)
                if self.logger:
                    self.logger.debug(f"Discord {endpoint_name} answered {response.status} in {response_time_ms}ms")

                if not 200 <= response.status < 300:
                    error_text = await response.text()
                    message = self._error_message(response.status, error_text, raw_error)
                    if self.logger:
                        self.logger.error(f"Discord {endpoint_name} failed ({response.status}): {message}")
                    raise DiscordAPIError(response.status, message, endpoint_name)

                if response.status == 204:
                    return response.status, None

                try:
                    return response.status, await response.json(content_type=None)
                except ValueError:
                    return response.status, None

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if self.logger:
                self.logger.error(f"Discord {endpoint_name} request failed: {e!r}")
            raise DiscordAPIError(0, f"Could not reach Discord ({endpoint_name})", endpoint_name) from e

    @staticmethod
    def _error_message(status: int, error_text: str, raw_error: bool) -> str:
        fallback = f"Discord API returned HTTP {status}"
        if raw_error:
            return error_text or fallback

        try:
            data = json.loads(error_text)
        except ValueError:
            return fallback

        if isinstance(data, dict):
            # OAuth2 endpoints use error_description, the REST API uses message
            for key in ('error_description', 'message', 'error'):
                if data.get(key):
                    return str(data[key])
        return fallback

    def authorize_url(self) -> str:
        """
        Generate OAuth2 authorization URL.

        :return: OAuth2 URL for user to authorize
        """
        return discord.utils.oauth_url(
            self.client_id,
            redirect_uri=self.redirect_uri,
            scopes=OAUTH2_SCOPES,
        )

    async def exchange_code(self, code: str) -> Dict:
        """
        Exchange OAuth2 authorization code for access token.

        :param code: Authorization code from OAuth2 callback
        :return: Token data including access_token
        """
        data = {
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'code': code,
            'grant_type': 'authorization_code',
            'redirect_uri': self.redirect_uri,
            'scope': ' '.join(OAUTH2_SCOPES)
        }

        headers = {
            'Content-Type': 'application/x-www-form-urlencoded'
        }

        status, token_data = await self._make_request(
            'POST', '/oauth2/token', 'token exchange', data=data, headers=headers
        )
        if not isinstance(token_data, dict) or not token_data.get('access_token'):
            raise DiscordAPIError(status, "Discord did not return an access token", 'token exchange')
        return token_data

    async def get_current_user(self, access_token: str) -> Dict:
        """
        Get user information from Discord API.

        :param access_token: OAuth2 access token
        :return: User information including ID and username
        """
        status, user = await self._make_request(
            'GET', '/users/@me', 'current user', headers=self._bearer_headers(access_token)
        )
        if not isinstance(user, dict) or not user.get('id'):
            raise DiscordAPIError(status, "Discord did not return a user id", 'current user')
        return user

    async def get_connections(self, access_token: str) -> List[Dict]:
        """
        Get user's connected accounts from Discord.

        :param access_token: OAuth2 access token
        :return: List of connection objects
        """
        status, connections = await self._make_request(
            'GET', '/users/@me/connections', 'connections', headers=self._bearer_headers(access_token)
        )
        if connections is None:
            return []
        if not isinstance(connections, list):
            raise DiscordAPIError(status, "Discord returned malformed connections", 'connections')
        return connections

    @staticmethod
    def find_connection(connections: Iterable[Dict], connection_type: str) -> Optional[Dict]:
        """Return the first connection of the given type, or None."""
        for connection in connections:
            if isinstance(connection, dict) and connection.get('type') == connection_type:
                return connection
        return None

    async def add_guild_member(
        self,
        guild_id: str,
        user_id: str,
        access_token: str,
        roles: List[str]
    ) -> bool:
        """
        Add the user to the guild with the given roles.

        :return: True if a new member was created, False if the user already was a member
        """
        status, _ = await self._make_request(
            'PUT',
            f'/guilds/{guild_id}/members/{user_id}',
            'guild member add',
            json={'access_token': access_token, 'roles': list(roles)},
            headers=self._bot_headers()
        )
        # 204 means the user already was a member and nothing changed, roles included
        return status != 204

    async def add_member_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        await self._make_request(
            'PUT',
            f'/guilds/{guild_id}/members/{user_id}/roles/{role_id}',
            'guild member role add',
            headers=self._bot_headers()
        )

    async def execute_webhook(self, webhook_id: str, webhook_token: str, content: str) -> None:
        """
        Post a message through a webhook. Mentions in the content are rendered but never ping.

        :raises DiscordAPIError: With the raw response body as message
        """
        await self._make_request(
            'POST',
            f'/webhooks/{webhook_id}/{webhook_token}',
            'log webhook',
            raw_error=True,
            json={
                'content': content,
                'allowed_mentions': discord.AllowedMentions.none().to_dict()
            }
        )

    async def close(self):
        """Close the aiohttp session if this client created it."""
        if self._owns_session and not self._closed and self.session and not self.session.closed:
            await self.session.close()
            if self.logger:
                self.logger.debug("DiscordWebAPI session closed")
        self._closed = True
