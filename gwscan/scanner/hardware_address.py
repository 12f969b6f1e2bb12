"""
Hardware (MAC) address value type.

Gateways report their MAC in various shapes ("aabbccddeeff",
"AA:BB:CC:DD:EE:FF"); everything is normalized to the canonical uppercase,
colon separated form.
"""

import re
from functools import total_ordering
from typing import Union

from ..core.exceptions import AddressMalformedError

HARDWARE_ADDRESS_LENGTH = 6

_HEX_DIGITS = re.compile(r'[0-9A-Fa-f]*')


@total_ordering
class HardwareAddress:
    """A 6-byte hardware address."""

    __slots__ = ('_bytes',)

    def __init__(self, raw: Union[bytes, bytearray]):
        raw = bytes(raw)
        if len(raw) != HARDWARE_ADDRESS_LENGTH:
            raise AddressMalformedError(
                f"Hardware address must be {HARDWARE_ADDRESS_LENGTH} bytes, got {len(raw)}"
            )
        self._bytes = raw

    @classmethod
    def parse(cls, text: str) -> 'HardwareAddress':
        """
        Parse a hardware address from text.

        Args:
            text: Hex digits, optionally separated by ':' or '-', any case
                (e.g. "aabbccddeeff", "AA:BB:CC:DD:EE:FF")

        Returns:
            HardwareAddress

        Raises:
            AddressMalformedError: non-hex characters or not exactly 6 bytes
        """
        if not isinstance(text, str):
            raise AddressMalformedError(f"Hardware address must be text, got {type(text).__name__}")

        digits = text.replace(':', '').replace('-', '')
        if not _HEX_DIGITS.fullmatch(digits):
            raise AddressMalformedError(f"Invalid hardware address {text!r}: not hexadecimal")
        if len(digits) != HARDWARE_ADDRESS_LENGTH * 2:
            raise AddressMalformedError(
                f"Invalid hardware address {text!r}: expected {HARDWARE_ADDRESS_LENGTH} bytes"
            )
        return cls(bytes.fromhex(digits))

    @property
    def packed(self) -> bytes:
        return self._bytes

    def __str__(self) -> str:
        return ':'.join(f'{b:02X}' for b in self._bytes)

    def __repr__(self) -> str:
        return f"HardwareAddress('{self}')"

    def __eq__(self, other):
        if not isinstance(other, HardwareAddress):
            return NotImplemented
        return self._bytes == other._bytes

    def __lt__(self, other):
        if not isinstance(other, HardwareAddress):
            return NotImplemented
        return self._bytes < other._bytes

    def __hash__(self):
        return hash(self._bytes)
