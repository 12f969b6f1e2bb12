"""
IPv4 address ranges to scan.

Ranges are inclusive on both ends and never materialized: a /8 is iterated
one address at a time.
"""

import ipaddress
import logging
import socket
from typing import Iterator, Optional, Union

from ..core.exceptions import LocalAddressError, RangeParseError

logger = logging.getLogger(__name__)

RANGE_SEPARATOR = ".."

AddressLike = Union[str, int, ipaddress.IPv4Address]


class AddressRange:
    """Inclusive, restartable range of IPv4 addresses in ascending order."""

    def __init__(self, start: AddressLike, end: AddressLike):
        self.start = ipaddress.IPv4Address(start)
        self.end = ipaddress.IPv4Address(end)

    @classmethod
    def parse(cls, text: str) -> 'AddressRange':
        """
        Parse range text like '192.168.1.1..192.168.1.20'.

        Raises:
            RangeParseError: missing '..' or an invalid IPv4 address
        """
        if RANGE_SEPARATOR not in text:
            raise RangeParseError(f"Range argument must contain '{RANGE_SEPARATOR}', got {text!r}")

        first, last = text.split(RANGE_SEPARATOR, 1)
        try:
            start = ipaddress.IPv4Address(first.strip())
        except ValueError:
            raise RangeParseError(
                f"Error parsing start ip address {first!r}. Expected ip v4 address like '192.168.1.1'"
            )
        try:
            end = ipaddress.IPv4Address(last.strip())
        except ValueError:
            raise RangeParseError(
                f"Error parsing end ip address {last!r}. Expected ip v4 address like '192.168.1.2'"
            )
        return cls(start, end)

    @classmethod
    def default(cls, local_ip: Optional[AddressLike] = None) -> 'AddressRange':
        """
        Range covering .1 to .255 of the local address's /24.

        Args:
            local_ip: Address to derive the range from (looked up if None)
        """
        if local_ip is None:
            local_ip = get_local_ipv4()
        try:
            octets = ipaddress.IPv4Address(local_ip).packed
        except ValueError:
            raise LocalAddressError(
                f"Cannot extract a local ipv4 address from {local_ip!r}. "
                "Please specify start and end ip range"
            )
        prefix = octets[:3]
        return cls(
            ipaddress.IPv4Address(prefix + bytes([1])),
            ipaddress.IPv4Address(prefix + bytes([255])),
        )

    def __iter__(self) -> Iterator[ipaddress.IPv4Address]:
        for value in range(int(self.start), int(self.end) + 1):
            yield ipaddress.IPv4Address(value)

    def __len__(self) -> int:
        return max(0, int(self.end) - int(self.start) + 1)

    def __contains__(self, address) -> bool:
        try:
            address = ipaddress.IPv4Address(address)
        except ValueError:
            return False
        return self.start <= address <= self.end

    def __eq__(self, other):
        if not isinstance(other, AddressRange):
            return NotImplemented
        return (self.start, self.end) == (other.start, other.end)

    def __str__(self) -> str:
        return f"{self.start}{RANGE_SEPARATOR}{self.end}"

    def __repr__(self) -> str:
        return f"AddressRange('{self.start}', '{self.end}')"


def get_local_ipv4() -> ipaddress.IPv4Address:
    """
    Get the IPv4 address of the interface holding the default route.

    Connecting a UDP socket sends nothing; it only makes the kernel pick
    the source address.

    Raises:
        LocalAddressError: no IPv4 route is available
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("8.8.8.8", 80))
        local_ip = sock.getsockname()[0]
    except OSError as e:
        raise LocalAddressError(f"Error getting local ip address: {e}")
    finally:
        sock.close()

    logger.debug(f"Local address: {local_ip}")
    return ipaddress.IPv4Address(local_ip)
