"""
OAuth2 Web Server for Steam-gated guild access

This module provides the web server that receives Discord OAuth2 callbacks
and hands them to the linking handler.
"""

from aiohttp import web
import aiohttp
import logging
from typing import Optional

from discord_api import DiscordWebAPI
from linker.config import LinkConfig
from linker.handler import LinkingHandler
from steam_api import SteamCommunity


class LinkServer:
    """
    Web server that serves the link endpoint.
    """

    def __init__(
        self,
        config: LinkConfig,
        session: Optional[aiohttp.ClientSession] = None,
        logger=None
    ):
        """
        Initialize the link server.

        :param config: Link configuration
        :param session: Optional aiohttp session shared by the API clients
        :param logger: Optional logger instance
        """
        self.config = config
        self.host = config.host
        self.port = config.port
        self.logger = logger or logging.getLogger(__name__)

        self.discord_api = DiscordWebAPI(
            config.client_id,
            config.client_secret,
            config.redirect_uri,
            config.bot_token,
            api_base=config.api_base,
            session=session,
            timeout=config.http_timeout,
            logger=self.logger
        )
        self.steam_community = SteamCommunity(
            session=session,
            timeout=config.http_timeout,
            logger=self.logger
        )
        self.handler = LinkingHandler(
            config,
            self.discord_api,
            self.steam_community,
            logger=self.logger
        )

        self.app = web.Application()
        self.setup_routes()

        self.runner: Optional[web.AppRunner] = None

    def setup_routes(self):
        """Set up the link route."""
        self.app.router.add_get(self.config.link_path, self.handler.handle)

    async def start(self):
        """Start the web server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()

        self.logger.info(f"Link server started on http://{self.host}:{self.port}{self.config.link_path}")
        self.logger.info(f"Redirect URI: {self.config.redirect_uri}")

    async def stop(self):
        """Stop the web server and close outbound sessions."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            self.logger.info("Link server stopped")

        await self.discord_api.close()
        await self.steam_community.close()
