"""
Linking handler

Runs the whole link flow for one request: OAuth2 code exchange, Discord
identity and connections lookup, Steam profile check, guild join (or role
grant for existing members) and the audit webhook. Every step depends on the
one before it, so the calls run strictly one after another and the first
failure ends the request with an error page.
"""

import logging
import textwrap
from dataclasses import dataclass

from aiohttp import web

from discord_api import DiscordWebAPI, DiscordAPIError
from linker.config import LinkConfig
from linker.errors import LinkError, OAuth2Error, UpstreamError, SteamLinkError
from steam_api import SteamCommunity, SteamAPIError, normalize_connection_id


NO_STEAM_LINK_MESSAGE = "You must link your Steam account in your Discord settings"
INVALID_STEAM_MESSAGE = "Invalid Steam response"
SUCCESS_MESSAGE = "Authentication was successful"


@dataclass
class LinkResult:
    user_id: str
    steam_id: str
    profile_url: str
    new_member: bool


class LinkingHandler:
    """
    Request handler for the link endpoint.
    """

    def __init__(
        self,
        config: LinkConfig,
        discord_api: DiscordWebAPI,
        steam_community: SteamCommunity,
        logger=None
    ):
        """
        :param config: Link configuration
        :param discord_api: Client for the Discord REST API
        :param steam_community: Client for the Steam community site
        :param logger: Optional logger instance
        """
        self.config = config
        self.discord_api = discord_api
        self.steam_community = steam_community
        self.logger = logger or logging.getLogger(__name__)

    async def handle(self, request: web.Request) -> web.Response:
        """Handle one request to the link endpoint."""
        params = request.query

        try:
            if "error" in params:
                raise OAuth2Error(params.get("error_description") or params["error"])

            if "code" not in params:
                raise web.HTTPFound(self.discord_api.authorize_url())

            result = await self.link(params["code"])

        except UpstreamError as e:
            self.logger.error(f"Link failed upstream: {e.message}")
            return self.error_response(e.message)
        except LinkError as e:
            self.logger.warning(f"Link failed: {e.message}")
            return self.error_response(e.message)

        self.logger.info(
            f"Linked Discord user {result.user_id} to Steam {result.steam_id} "
            f"({'new member' if result.new_member else 'existing member'})"
        )
        return self.success_response()

    async def link(self, code: str) -> LinkResult:
        """
        Run the link flow for an authorization code.

        :param code: Authorization code from the OAuth2 callback
        :return: LinkResult
        :raises LinkError: On the first failing step
        """
        config = self.config

        try:
            token_data = await self.discord_api.exchange_code(code)
            access_token = token_data["access_token"]

            user = await self.discord_api.get_current_user(access_token)
            user_id = str(user["id"])

            connections = await self.discord_api.get_connections(access_token)
        except DiscordAPIError as e:
            raise UpstreamError(e.message) from e

        steam_connection = self.discord_api.find_connection(connections, "steam")
        if steam_connection is None:
            raise SteamLinkError(NO_STEAM_LINK_MESSAGE)

        try:
            steam_id = normalize_connection_id(steam_connection.get("id", ""))
        except ValueError as e:
            self.logger.warning(f"Unusable Steam connection id for user {user_id}: {e}")
            raise SteamLinkError(INVALID_STEAM_MESSAGE) from e

        try:
            await self.steam_community.ensure_public_profile(steam_id)
        except SteamAPIError as e:
            self.logger.info(f"Steam profile {steam_id} rejected for user {user_id}: {e}")
            raise SteamLinkError(INVALID_STEAM_MESSAGE) from e

        profile_url = self.steam_community.profile_url(steam_id)

        try:
            new_member = await self.discord_api.add_guild_member(
                config.guild_id, user_id, access_token, [config.role_id]
            )

            # Existing members keep their roles on join, so the role is granted separately
            if not new_member:
                await self.discord_api.add_member_role(config.guild_id, user_id, config.role_id)
        except DiscordAPIError as e:
            raise UpstreamError(e.message) from e

        try:
            await self.discord_api.execute_webhook(
                config.log_webhook_id,
                config.log_webhook_token,
                f"<@{user_id}> linked to <{profile_url}>"
            )
        except DiscordAPIError as e:
            self.logger.warning(f"User {user_id} joined the guild but the audit webhook failed")
            raise UpstreamError(e.message) from e

        return LinkResult(
            user_id=user_id,
            steam_id=steam_id,
            profile_url=profile_url,
            new_member=new_member
        )

    def success_response(self) -> web.Response:
        """Generate the plain-text success page."""
        text = textwrap.dedent(f"""
            ~ {self.config.page_title} ~

            {SUCCESS_MESSAGE}
        """)
        return web.Response(text=text, content_type="text/plain")

    def error_response(self, error_message: str) -> web.Response:
        """Generate the plain-text error page."""
        text = textwrap.dedent("""
            ~ {title} ~

            Ran into an error:
                {message}

            It's very possible that trying again will fix it:
                {retry_url}

            If it doesn't, please contact administrators
        """).format(
            title=self.config.page_title,
            message=error_message,
            retry_url=self.config.redirect_uri,
        )
        return web.Response(text=text, status=400, content_type="text/plain")
