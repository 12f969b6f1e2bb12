"""
Shared fixtures: fake gateways served by aiohttp on localhost.
"""

import asyncio
import socket
from contextlib import asynccontextmanager
from ipaddress import IPv4Address

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from gwscan.scanner.models import GatewayDetection, GatewayType
from gwscan.scanner.hardware_address import HardwareAddress


def build_gateway_app(hello=None, status=None, hello_delay=0.0, status_delay=0.0, requests=None):
    """
    Build an aiohttp app impersonating a gateway.

    hello / status are either a JSON-serializable object or raw text; None
    leaves the route out so it answers 404. Incoming requests are appended
    to `requests` as (method, path, headers, body).
    """
    app = web.Application()

    def make_handler(payload, delay):
        async def handler(request):
            body = await request.read()
            if requests is not None:
                requests.append((request.method, request.path, dict(request.headers), body))
            if delay:
                await asyncio.sleep(delay)
            if isinstance(payload, str):
                return web.Response(text=payload, content_type="text/html")
            return web.json_response(payload)
        return handler

    if hello is not None:
        app.router.add_get("/hello", make_handler(hello, hello_delay))
    if status is not None:
        app.router.add_post("/cgi-bin/cgic-statusget", make_handler(status, status_delay))
    return app


@asynccontextmanager
async def serve(app):
    """Serve an aiohttp app on 127.0.0.1 and yield its port."""
    server = TestServer(app, host="127.0.0.1")
    await server.start_server()
    try:
        yield server.port
    finally:
        await server.close()


@pytest.fixture
def gateway_app():
    """Factory for fake gateway apps"""
    return build_gateway_app


@pytest.fixture
def serve_app():
    """Async context manager serving an app on a local port"""
    return serve


@pytest.fixture
def closed_port():
    """A local port nothing listens on"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def make_detection():
    """Factory for detections at a given address"""
    def factory(address, gateway=GatewayType.MG3, mac="AA:BB:CC:DD:EE:FF"):
        return GatewayDetection(IPv4Address(address), gateway, HardwareAddress.parse(mac))
    return factory
