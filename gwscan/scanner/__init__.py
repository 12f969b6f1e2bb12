# Scanner module
from .address_range import AddressRange
from .gateway_scanner import GatewayScanner, resolve_range
from .hardware_address import HardwareAddress
from .models import GatewayDetection, GatewayType, ScanReport
from .probes import GatewayProber
from .race import race_probes

__all__ = [
    "AddressRange",
    "GatewayScanner",
    "resolve_range",
    "HardwareAddress",
    "GatewayDetection",
    "GatewayType",
    "ScanReport",
    "GatewayProber",
    "race_probes",
]
