from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from ruuvi_exporter.collector import RUUVI_COMPANY_ID, RawAdvertisement
from ruuvi_exporter.metrics import ExporterMetrics

# 2.50 degrees, 25.00 %, 1000.00 hPa
SAMPLE_PAYLOAD = bytes.fromhex("0501f42710c350")
TAG_ADDRESS = "C4:D9:12:7A:00:01"


class FakeScanner:
    """Stands in for BleakScanner: replays advertisements once started."""

    def __init__(self, advertisements=(), start_error=None, stop_error=None):
        self.advertisements = list(advertisements)
        self.start_error = start_error
        self.stop_error = stop_error
        self.started = False
        self.stopped = False
        self.delivered = 0

    def __call__(self, detection_callback, scanning_mode):
        self.detection_callback = detection_callback
        self.scanning_mode = scanning_mode
        return self

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True
        asyncio.get_running_loop().call_soon(self._deliver)

    def _deliver(self) -> None:
        for device, advertisement_data in self.advertisements:
            if self.stopped:
                return
            self.delivered += 1
            self.detection_callback(device, advertisement_data)

    async def stop(self) -> None:
        self.stopped = True
        if self.stop_error is not None:
            raise self.stop_error


class FakeCollector:
    """Returns (or raises) the queued results, one per collect() call."""

    def __init__(self, results, delay: float = 0.0):
        self.results = list(results)
        self.delay = delay
        self.calls: list[tuple[float, float]] = []
        self.active = 0
        self.max_active = 0

    async def collect(self) -> RawAdvertisement:
        loop = asyncio.get_running_loop()
        started = loop.time()
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            result = self.results.pop(0)
            if isinstance(result, BaseException):
                raise result
            return result
        finally:
            self.active -= 1
            self.calls.append((started, loop.time()))


def make_advertisement(
    name: str | None = "Ruuvi 0001",
    address: str = TAG_ADDRESS,
    manufacturer_data: dict | None = None,
    rssi: int = -60,
    local_name: str | None = None,
):
    if manufacturer_data is None:
        manufacturer_data = {RUUVI_COMPANY_ID: SAMPLE_PAYLOAD}
    device = SimpleNamespace(name=name, address=address)
    advertisement_data = SimpleNamespace(
        local_name=local_name if local_name is not None else name,
        manufacturer_data=manufacturer_data,
        rssi=rssi,
    )
    return device, advertisement_data


def make_raw(payload: bytes = SAMPLE_PAYLOAD, address: str = TAG_ADDRESS) -> RawAdvertisement:
    return RawAdvertisement(address=address, name="Ruuvi 0001", rssi=-60, payload=payload)


@pytest.fixture()
def metrics() -> ExporterMetrics:
    return ExporterMetrics()


@pytest.fixture()
def advertisement():
    return make_advertisement


@pytest.fixture()
def raw():
    return make_raw


@pytest.fixture()
def scanner_cls():
    return FakeScanner


@pytest.fixture()
def collector_cls():
    return FakeCollector
