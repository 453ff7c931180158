"""
Tests for services.aur: async AUR RPC client.

Uses an in-process aiohttp test server standing in for the AUR.
All tests require @pytest.mark.asyncio (asyncio_mode = strict).
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as AURTestServer

from core.config import AURConfig
from core.errors import NetworkError
from services.aur import AURClient

AUR_PACKAGES = {
    "yay": "12.3.5-1",
    "paru": "1:2.0.3-1",
}


async def rpc_info(request: web.Request) -> web.Response:
    name = request.query.get("arg[]", "")
    if name == "broken":
        return web.json_response({"type": "error", "error": "Incorrect request type specified."})
    if name == "server-error":
        return web.Response(status=503, text="Service Unavailable")
    if name == "slow":
        await asyncio.sleep(2)
    if name == "not-json":
        return web.Response(text="<html>maintenance</html>")

    results = []
    if name in AUR_PACKAGES:
        results.append({"Name": name, "Version": AUR_PACKAGES[name]})
    return web.json_response({
        "version": 5,
        "type": "multiinfo",
        "resultcount": len(results),
        "results": results,
    })


@pytest.fixture
def app():
    application = web.Application()
    application.router.add_get("/rpc/v5/info", rpc_info)
    return application


async def make_client(server: AURTestServer, timeout: int = 30) -> AURClient:
    config = AURConfig(api_base_url=str(server.make_url("/rpc")), request_timeout=timeout)
    client = AURClient(config)
    await client.start()
    return client


@pytest.mark.asyncio
async def test_lookup_found(app):
    async with AURTestServer(app) as server:
        client = await make_client(server)
        try:
            version = await client.lookup("yay")
            epoch_version = await client.lookup("paru")
        finally:
            await client.close()

    assert str(version) == "12.3.5-1"
    assert epoch_version.epoch == 1
    assert epoch_version.pkgver == "2.0.3"


@pytest.mark.asyncio
async def test_lookup_not_found(app):
    async with AURTestServer(app) as server:
        async with AURClient(AURConfig(api_base_url=str(server.make_url("/rpc")))) as client:
            assert await client.lookup("no-such-package") is None


@pytest.mark.asyncio
async def test_client_is_callable(app):
    async with AURTestServer(app) as server:
        async with AURClient(AURConfig(api_base_url=str(server.make_url("/rpc")))) as client:
            assert str(await client("yay")) == "12.3.5-1"


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["broken", "server-error", "not-json"])
async def test_lookup_errors(app, name):
    async with AURTestServer(app) as server:
        client = await make_client(server)
        try:
            with pytest.raises(NetworkError):
                await client.lookup(name)
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_lookup_timeout(app):
    async with AURTestServer(app) as server:
        client = await make_client(server, timeout=1)
        try:
            with pytest.raises(TimeoutError):
                await client.lookup("slow")
        finally:
            await client.close()


@pytest.mark.asyncio
async def test_connection_refused():
    client = AURClient(AURConfig(api_base_url="http://127.0.0.1:1/rpc"))
    try:
        with pytest.raises(NetworkError):
            await client.lookup("yay")
    finally:
        await client.close()
