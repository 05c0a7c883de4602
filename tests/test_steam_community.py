import asyncio

import aiohttp
import pytest

from steam_api import SteamCommunity, SteamAPIError, PrivateProfileError, ProfileNotFoundError

from conftest import (
    FakeSession,
    make_response,
    STEAM_ID,
    STEAM_ROUTE,
    PUBLIC_PROFILE_XML,
    PRIVATE_PROFILE_XML,
    MISSING_PROFILE_XML,
)


def test_profile_url():
    assert SteamCommunity().profile_url(STEAM_ID) == f"https://steamcommunity.com/profiles/{STEAM_ID}"


@pytest.mark.asyncio
async def test_public_profile_is_accepted():
    session = FakeSession({STEAM_ROUTE: make_response(200, text=PUBLIC_PROFILE_XML)})
    steam = SteamCommunity(session=session)

    body = await steam.ensure_public_profile(STEAM_ID)

    assert body == PUBLIC_PROFILE_XML
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert kwargs["params"] == {"xml": 1}
    assert "headers" not in kwargs


@pytest.mark.asyncio
async def test_private_profile_is_rejected_even_with_200():
    session = FakeSession({STEAM_ROUTE: make_response(200, text=PRIVATE_PROFILE_XML)})

    with pytest.raises(PrivateProfileError):
        await SteamCommunity(session=session).ensure_public_profile(STEAM_ID)


@pytest.mark.asyncio
async def test_missing_profile_is_rejected():
    session = FakeSession({STEAM_ROUTE: make_response(200, text=MISSING_PROFILE_XML)})

    with pytest.raises(ProfileNotFoundError):
        await SteamCommunity(session=session).ensure_public_profile(STEAM_ID)


@pytest.mark.asyncio
async def test_non_2xx_raises():
    session = FakeSession({STEAM_ROUTE: make_response(503, text="busy")})

    with pytest.raises(SteamAPIError) as excinfo:
        await SteamCommunity(session=session).get_profile_xml(STEAM_ID)
    assert "503" in str(excinfo.value)


@pytest.mark.asyncio
async def test_transport_errors_become_steam_errors():
    class BrokenSession(FakeSession):
        def request(self, method, url, **kwargs):
            raise aiohttp.ClientConnectionError("connection reset")

    with pytest.raises(SteamAPIError):
        await SteamCommunity(session=BrokenSession({})).get_profile_xml(STEAM_ID)

    class SlowSession(FakeSession):
        def request(self, method, url, **kwargs):
            raise asyncio.TimeoutError()

    with pytest.raises(SteamAPIError):
        await SteamCommunity(session=SlowSession({})).get_profile_xml(STEAM_ID)


@pytest.mark.asyncio
async def test_close_leaves_shared_session_open():
    session = FakeSession({})
    steam = SteamCommunity(session=session)

    await steam.close()

    session.close.assert_not_awaited()
    with pytest.raises(RuntimeError):
        await steam.get_profile_xml(STEAM_ID)
