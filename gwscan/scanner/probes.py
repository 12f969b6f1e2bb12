"""
Gateway fingerprinting over HTTP.

Each address goes through two stages:
- TCP reachability on the probe port, so silent hosts cost one connect
- a race between the G1 status endpoint and the MG3 hello endpoint
"""

import asyncio
import json
import logging
from ipaddress import IPv4Address
from typing import Any, Optional

import aiohttp

from ..core.exceptions import ConnectError, ProtocolMismatch, ScanError
from ..core.logging_config import TRACE
from .hardware_address import HardwareAddress
from .models import GatewayDetection, GatewayType
from .race import race_probes

logger = logging.getLogger(__name__)

DEFAULT_PORT = 80
DEFAULT_TIMEOUT = 3.0

# G1 status endpoint, authenticated as "admin" with an empty password
G1_STATUS_PATH = "/cgi-bin/cgic-statusget"
G1_AUTHORIZATION = "Basic YWRtaW46"
G1_STATUS_REQUEST = json.dumps({"header": {"version": 1}}, separators=(",", ":"))
G1_SUCCESS_CODE = 200

MG3_HELLO_PATH = "/hello"


def _lookup(data: Any, *path: str) -> Any:
    """Walk nested JSON objects, returning None where the path breaks."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class GatewayProber:
    """Runs the reachability check and the protocol race against one address."""

    def __init__(self, port: int = DEFAULT_PORT, connect_timeout: float = DEFAULT_TIMEOUT,
                 probe_timeout: float = DEFAULT_TIMEOUT, log: Optional[logging.Logger] = None):
        self.port = port
        self.connect_timeout = connect_timeout
        self.probe_timeout = probe_timeout
        self.logger = log or logger

    def _url(self, address: IPv4Address, path: str) -> str:
        if self.port == DEFAULT_PORT:
            return f"http://{address}{path}"
        return f"http://{address}:{self.port}{path}"

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.probe_timeout)
        )

    async def probe(self, address: IPv4Address) -> Optional[GatewayDetection]:
        """
        Run the full pipeline for one address.

        Returns:
            GatewayDetection, or None if the address is not a gateway
        """
        try:
            await self.check_reachable(address)
            return await race_probes(
                [self.probe_g1(address), self.probe_mg3(address)],
                timeout=self.probe_timeout,
                address=address,
                log=self.logger
            )
        except ScanError as e:
            self.logger.log(TRACE, f"Error: {e}")
            return None

    async def check_reachable(self, address: IPv4Address) -> None:
        """
        Open and close a TCP connection to the probe port.

        Raises:
            ConnectError: refused, unreachable or timed out
        """
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(str(address), self.port),
                timeout=self.connect_timeout
            )
        except (asyncio.TimeoutError, OSError) as e:
            raise ConnectError(f"Error getting tcp connection to {address}: {e!r}", address)

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

    async def probe_g1(self, address: IPv4Address) -> GatewayDetection:
        """
        Query the G1 status endpoint.

        Raises:
            ConnectError: the request failed
            ProtocolMismatch: the response is not a G1 status
        """
        url = self._url(address, G1_STATUS_PATH)
        headers = {
            "Authorization": G1_AUTHORIZATION,
            "Content-Type": "application/json",
        }
        async with self._session() as session:
            try:
                async with session.post(url, data=G1_STATUS_REQUEST, headers=headers) as response:
                    payload = await self._read_json(response, address)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise ConnectError(f"Error requesting {url}: {e!r}", address)

        code = _lookup(payload, "header", "code")
        if not isinstance(code, int) or isinstance(code, bool) or code != G1_SUCCESS_CODE:
            raise ProtocolMismatch(f"Error mac not found in response {payload!r}", address)

        mac = _lookup(payload, "body", "gateway", "status", "mac")
        if not isinstance(mac, str):
            raise ProtocolMismatch(f"Error parsing mac address from response {payload!r}", address)

        return GatewayDetection(address, GatewayType.G1, HardwareAddress.parse(mac))

    async def probe_mg3(self, address: IPv4Address) -> GatewayDetection:
        """
        Query the MG3 hello endpoint.

        Raises:
            ConnectError: the request failed
            ProtocolMismatch: the response is not an MG3 hello
        """
        url = self._url(address, MG3_HELLO_PATH)
        async with self._session() as session:
            try:
                async with session.get(url) as response:
                    payload = await self._read_json(response, address)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise ConnectError(f"Error requesting {url}: {e!r}", address)

        mac = _lookup(payload, "mac")
        if not isinstance(mac, str):
            raise ProtocolMismatch(f"Error mac not found in response {payload!r}", address)

        return GatewayDetection(address, GatewayType.MG3, HardwareAddress.parse(mac))

    async def _read_json(self, response: aiohttp.ClientResponse, address: IPv4Address) -> Any:
        # Gateways do not reliably send a JSON content type
        try:
            return await response.json(content_type=None)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolMismatch(f"Malformed JSON from {response.url}: {e}", address)
