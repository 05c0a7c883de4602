"""
Shared fixtures for the link server tests.

Outbound HTTP goes through ``FakeSession``, which answers by method and URL
suffix and records every request so tests can assert on call order.
"""

import json
from unittest.mock import AsyncMock

import pytest

from discord_api import DiscordWebAPI
from linker import LinkConfig, LinkingHandler
from steam_api import SteamCommunity


STEAM_ID = "76561197960287930"

PUBLIC_PROFILE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    "<profile><steamID64>76561197960287930</steamID64>"
    "<steamID><![CDATA[Rabscuttle]]></steamID>"
    "<privacyState>public</privacyState><visibilityState>3</visibilityState>"
    "</profile>"
)

PRIVATE_PROFILE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    "<profile><steamID64>76561197960287930</steamID64>"
    "<privacyState>private</privacyState><visibilityState>1</visibilityState>"
    "<privacyMessage><![CDATA[This profile is private.]]></privacyMessage>"
    "</profile>"
)

MISSING_PROFILE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    "<response><error><![CDATA[The specified profile could not be found.]]></error></response>"
)


def make_response(status=200, json_data=None, text=None):
    """Build a mock aiohttp response."""
    response = AsyncMock()
    response.status = status
    if text is None:
        text = json.dumps(json_data) if json_data is not None else ""
    response.text = AsyncMock(return_value=text)
    response.json = AsyncMock(return_value=json_data)
    return response


class MockContextManager:
    """Helper for creating async context manager mocks."""

    def __init__(self, response):
        self.response = response

    async def __aenter__(self):
        return self.response

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


class FakeSession:
    """Stands in for aiohttp.ClientSession."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.closed = False
        self.close = AsyncMock()

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        for (route_method, suffix), response in self.routes.items():
            if route_method == method and url.endswith(suffix):
                return MockContextManager(response)
        raise AssertionError(f"Unexpected request: {method} {url}")

    def call_names(self):
        """Return the requests as 'METHOD url' strings, in order."""
        return [f"{method} {url}" for method, url, _ in self.calls]

    def find_calls(self, method, suffix):
        return [call for call in self.calls if call[0] == method and call[1].endswith(suffix)]


TOKEN_ROUTE = ("POST", "/oauth2/token")
USER_ROUTE = ("GET", "/users/@me")
CONNECTIONS_ROUTE = ("GET", "/users/@me/connections")
STEAM_ROUTE = ("GET", f"/profiles/{STEAM_ID}")
MEMBER_ROUTE = ("PUT", "/guilds/111/members/555")
ROLE_ROUTE = ("PUT", "/guilds/111/members/555/roles/222")
WEBHOOK_ROUTE = ("POST", "/webhooks/333/hook-token")


@pytest.fixture
def config():
    return LinkConfig(
        client_id="1234",
        client_secret="client-secret",
        redirect_uri="https://link.example/callback",
        guild_id="111",
        role_id="222",
        bot_token="bot-token",
        log_webhook_id="333",
        log_webhook_token="hook-token",
        page_title="Test Auth",
    )


@pytest.fixture
def routes():
    """Every upstream call succeeds and the user is new to the guild."""
    return {
        TOKEN_ROUTE: make_response(200, {"access_token": "user-token", "token_type": "Bearer"}),
        USER_ROUTE: make_response(200, {"id": "555", "username": "rabscuttle"}),
        CONNECTIONS_ROUTE: make_response(200, [
            {"type": "twitch", "id": "twitch-id", "name": "rabscuttle"},
            {"type": "steam", "id": STEAM_ID, "name": "Rabscuttle"},
        ]),
        STEAM_ROUTE: make_response(200, text=PUBLIC_PROFILE_XML),
        MEMBER_ROUTE: make_response(201, {"user": {"id": "555"}, "roles": ["222"]}),
        ROLE_ROUTE: make_response(204),
        WEBHOOK_ROUTE: make_response(204),
    }


@pytest.fixture
def make_handler(config):
    def _make(session):
        discord_api = DiscordWebAPI(
            config.client_id,
            config.client_secret,
            config.redirect_uri,
            config.bot_token,
            api_base=config.api_base,
            session=session,
        )
        steam_community = SteamCommunity(session=session)
        return LinkingHandler(config, discord_api, steam_community)
    return _make
