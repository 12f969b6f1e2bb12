"""
Tests for the bounded-concurrency gateway scanner.
"""

import asyncio
from ipaddress import IPv4Address

import pytest

from gwscan.core.config import Settings
from gwscan.core.exceptions import RangeParseError
from gwscan.scanner.address_range import AddressRange
from gwscan.scanner.gateway_scanner import GatewayScanner, resolve_range
from gwscan.scanner.models import GatewayType
from gwscan.scanner.probes import GatewayProber


class InstrumentedScanner(GatewayScanner):
    """Scanner whose pipeline only sleeps and counts concurrent runs"""

    def __init__(self, concurrency, delay=0.01, found=None, fail=None):
        super().__init__(concurrency=concurrency, prober=GatewayProber())
        self.delay = delay
        self.found = found or {}
        self.fail = fail or set()
        self.active = 0
        self.max_active = 0
        self.probed = []

    async def probe_address(self, address):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.probed.append(address)
        try:
            await asyncio.sleep(self.delay)
            if address in self.fail:
                raise RuntimeError(f"probe of {address} blew up")
            return self.found.get(address)
        finally:
            self.active -= 1


def run(coro):
    return asyncio.run(coro)


class TestConcurrencyLimit:
    """Test that the scanner never exceeds its concurrency limit"""

    @pytest.mark.parametrize("concurrency", [1, 3, 8])
    @pytest.mark.parametrize("size", [0, 1, 5, 20])
    def test_limit_respected(self, concurrency, size):
        scanner = InstrumentedScanner(concurrency)
        address_range = AddressRange(IPv4Address("10.0.0.1"), IPv4Address(int(IPv4Address("10.0.0.1")) + size - 1))

        run(scanner.scan(address_range))

        assert scanner.max_active <= concurrency
        assert scanner.max_active == min(concurrency, size)
        assert sorted(scanner.probed) == list(address_range)

    def test_next_address_admitted_when_slot_frees(self):
        scanner = InstrumentedScanner(2, delay=0.05)
        run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.6")))

        assert scanner.probed == list(AddressRange("10.0.0.1", "10.0.0.6"))

    def test_per_scan_override(self):
        scanner = InstrumentedScanner(8)
        run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.10"), concurrency=2))
        assert scanner.max_active == 2

    def test_consumes_generators_lazily(self):
        pulled = []

        def addresses():
            for n in range(1, 11):
                pulled.append(n)
                yield IPv4Address(f"10.0.0.{n}")

        scanner = InstrumentedScanner(2)
        run(scanner.scan(addresses()))
        assert pulled == list(range(1, 11))
        assert len(scanner.probed) == 10
        assert scanner.last_report.range == "(address list)"

    @pytest.mark.parametrize("concurrency", [0, -1])
    def test_invalid_limit(self, concurrency):
        with pytest.raises(ValueError):
            GatewayScanner(concurrency=concurrency)

    def test_invalid_override(self):
        scanner = InstrumentedScanner(4)
        with pytest.raises(ValueError):
            run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.2"), concurrency=0))


class TestResults:
    """Test collecting detections"""

    def test_collects_successes_only(self, make_detection):
        found = {
            IPv4Address("10.0.0.2"): make_detection("10.0.0.2"),
            IPv4Address("10.0.0.7"): make_detection("10.0.0.7", GatewayType.G1),
        }
        scanner = InstrumentedScanner(4, found=found)

        results = run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.10")))

        assert set(results) == set(found.values())

    def test_probe_errors_do_not_abort_scan(self, make_detection):
        found = {IPv4Address("10.0.0.3"): make_detection("10.0.0.3")}
        fail = {IPv4Address("10.0.0.1"), IPv4Address("10.0.0.2")}
        scanner = InstrumentedScanner(2, found=found, fail=fail)

        results = run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.4")))

        assert results == [found[IPv4Address("10.0.0.3")]]
        assert len(scanner.probed) == 4

    def test_empty_scan_is_not_an_error(self):
        scanner = InstrumentedScanner(4)
        assert run(scanner.scan(AddressRange("10.0.0.5", "10.0.0.1"))) == []
        assert scanner.last_report.addresses_scanned == 0

    def test_report(self, make_detection):
        found = {IPv4Address("10.0.0.2"): make_detection("10.0.0.2")}
        scanner = InstrumentedScanner(4, found=found)

        run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.3")))
        report = scanner.last_report

        assert report.range == "10.0.0.1..10.0.0.3"
        assert report.addresses_scanned == 3
        assert report.gateways == list(found.values())
        assert report.duration >= 0
        assert scanner.is_running is False

    def test_report_labels_plain_iterables(self):
        scanner = InstrumentedScanner(4)
        addresses = [IPv4Address("10.0.0.1"), IPv4Address("10.0.0.9")]

        run(scanner.scan(addresses))

        assert scanner.last_report.range == "(address list)"
        assert scanner.last_report.addresses_scanned == 2


class TestCancellation:
    """Test cancelling a scan in progress"""

    def test_cancel_waits_for_in_flight_addresses(self):
        scanner = InstrumentedScanner(3, delay=10)

        async def scenario():
            task = asyncio.create_task(scanner.scan(AddressRange("10.0.0.1", "10.0.0.10")))
            await asyncio.sleep(0.05)
            assert scanner.active == 3

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            assert scanner.active == 0
            assert scanner.is_running is False

        run(scenario())
        assert scanner.last_report is None


class TestCallbacks:
    """Test scan event callbacks"""

    def test_events(self, make_detection):
        events = []

        async def callback(event_type, data):
            events.append((event_type, data))

        found = {IPv4Address("10.0.0.2"): make_detection("10.0.0.2")}
        scanner = InstrumentedScanner(2, found=found)
        scanner.register_callback(callback)

        run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.3")))

        assert [e[0] for e in events] == ["scan_started", "gateway_detected", "scan_completed"]
        assert events[1][1] == {"ip": "10.0.0.2", "gateway": "MG3", "mac": "AA:BB:CC:DD:EE:FF"}
        assert events[2][1]["gateways_found"] == 1

    def test_failing_callback_is_ignored(self):
        async def callback(event_type, data):
            raise RuntimeError("client went away")

        scanner = InstrumentedScanner(2)
        scanner.register_callback(callback)
        assert run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.2"))) == []

    def test_unregister(self):
        events = []

        async def callback(event_type, data):
            events.append(event_type)

        scanner = InstrumentedScanner(2)
        scanner.register_callback(callback)
        scanner.unregister_callback(callback)
        run(scanner.scan(AddressRange("10.0.0.1", "10.0.0.2")))
        assert events == []


class TestEndToEnd:
    """Test full scans against fake gateways on localhost"""

    def test_single_mg3_gateway(self, gateway_app, serve_app):
        async def scenario():
            async with serve_app(gateway_app(hello={"mac": "aabbccddeeff"})) as port:
                scanner = GatewayScanner(concurrency=4, prober=GatewayProber(port=port, probe_timeout=2))
                return await scanner.scan(AddressRange("127.0.0.1", "127.0.0.1"))

        results = run(scenario())

        assert len(results) == 1
        assert results[0].to_dict() == {"ip": "127.0.0.1", "gateway": "MG3", "mac": "AA:BB:CC:DD:EE:FF"}

    def test_refused_address_yields_nothing(self, closed_port):
        scanner = GatewayScanner(concurrency=4, prober=GatewayProber(port=closed_port, connect_timeout=1))
        assert run(scanner.scan(AddressRange("127.0.0.1", "127.0.0.1"))) == []

    def test_from_settings(self, gateway_app, serve_app):
        async def scenario():
            async with serve_app(gateway_app(hello={"mac": "aabbccddeeff"})) as port:
                config = Settings(PROBE_PORT=port, PROBE_TIMEOUT=2, SCAN_CONCURRENCY=2)
                scanner = GatewayScanner(config=config)
                assert scanner.concurrency == 2
                return await scanner.scan_range("127.0.0.1..127.0.0.1")

        assert len(run(scenario())) == 1


class TestResolveRange:
    """Test picking the range to scan"""

    def test_explicit_range(self):
        assert resolve_range("10.0.0.1..10.0.0.5") == AddressRange("10.0.0.1", "10.0.0.5")

    def test_configured_range(self):
        config = Settings(DEFAULT_RANGE="10.1.0.1..10.1.0.9")
        assert resolve_range(None, config) == AddressRange("10.1.0.1", "10.1.0.9")

    def test_local_range(self, monkeypatch):
        monkeypatch.setattr(
            "gwscan.scanner.address_range.get_local_ipv4", lambda: IPv4Address("172.16.4.20")
        )
        config = Settings(DEFAULT_RANGE=None)
        assert resolve_range(None, config) == AddressRange("172.16.4.1", "172.16.4.255")

    def test_bad_range(self):
        with pytest.raises(RangeParseError):
            resolve_range("10.0.0.1")
