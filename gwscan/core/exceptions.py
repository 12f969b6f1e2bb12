"""
Exceptions raised by the gateway scanner.

Configuration errors stop a scan before it starts. Probe errors only ever
exclude a single address.
"""


class ScanError(Exception):
    """Base class for scanner errors."""


class ScanConfigError(ScanError):
    """The scan cannot start."""


class RangeParseError(ScanConfigError):
    """Range text is not of the form 'a.b.c.d..e.f.g.h'."""


class LocalAddressError(ScanConfigError):
    """No local IPv4 address to derive a default range from."""


class ProbeError(ScanError):
    """A single address did not turn out to be a gateway."""

    def __init__(self, message: str, address=None):
        super().__init__(message)
        self.address = address


class ConnectError(ProbeError):
    """TCP connect or HTTP transport failed."""


class ProbeTimeout(ProbeError):
    """No probe succeeded before the race deadline."""


class ProtocolMismatch(ProbeError):
    """The response did not carry the expected fields."""


class AddressMalformedError(ProtocolMismatch, ValueError):
    """Hardware address text does not decode to 6 bytes."""
