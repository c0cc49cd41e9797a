# MIT License
#
# Copyright (c) 2025-26 University of Bristol
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from bleak import BleakScanner
from bleak.exc import BleakBluetoothNotAvailableError, BleakError

from .errors import AdapterUnavailable, ScanStartFailed, ScanStopFailed, ScanTimeout

logger = logging.getLogger(__name__)

# We only process manufacturer-specific data if the manufacturer is Ruuvi Innovations (0x0499)
RUUVI_COMPANY_ID = 1177
DEFAULT_NAME_MARKER = 'Ruuvi'


@dataclass(frozen=True)
class RawAdvertisement:
    address: str
    name: str
    rssi: Optional[int]
    payload: bytes


class ScanCollector:
    """Runs one BLE scan per call and returns the first advertisement from a tag.

    A device qualifies when its advertised name contains ``name_marker`` and its
    manufacturer data has an entry for ``company_id``. Whichever qualifying
    advertisement the adapter delivers first is kept and the scan is stopped.
    """

    def __init__(self, name_marker=DEFAULT_NAME_MARKER, company_id=RUUVI_COMPANY_ID,
                 timeout: Optional[float] = None, scanner_factory=BleakScanner):
        self.name_marker = name_marker
        self.company_id = company_id
        self.timeout = timeout
        self._scanner_factory = scanner_factory

    def matches(self, device, advertisement_data) -> bool:
        # device.name is None when the tag has only sent a generic packet so far
        name = advertisement_data.local_name or device.name or ''
        if self.name_marker not in name:
            return False
        return self.company_id in advertisement_data.manufacturer_data

    async def collect(self) -> RawAdvertisement:
        loop = asyncio.get_running_loop()
        found = loop.create_future()

        def detection_callback(device, advertisement_data):
            logger.debug("Scanned device '%s' (%s), RSSI: %s" % (device.name, device.address, advertisement_data.rssi))
            if found.done() or not self.matches(device, advertisement_data):
                return

            payload = bytes(advertisement_data.manufacturer_data[self.company_id])
            logger.debug(f"       Payload: {payload.hex(' ')}")
            found.set_result(RawAdvertisement(
                address=device.address,
                name=advertisement_data.local_name or device.name,
                rssi=advertisement_data.rssi,
                payload=payload,
            ))

        try:
            # scanning_mode='active' requests the OS to ask for Scan Response packets (names)
            scanner = self._scanner_factory(detection_callback=detection_callback, scanning_mode='active')
            await scanner.start()
        except BleakBluetoothNotAvailableError as e:
            raise AdapterUnavailable("Bluetooth not available: %s" % (e,)) from e
        except (BleakError, OSError) as e:
            raise ScanStartFailed("Starting scan: %s" % (e,)) from e

        advertisement = None
        try:
            advertisement = await asyncio.wait_for(found, timeout=self.timeout)
        except asyncio.TimeoutError:
            pass
        except asyncio.CancelledError:
            logger.debug("Scan cancelled, stopping scan")
            try:
                await scanner.stop()
            except Exception as e:
                logger.warning("Error stopping cancelled scan: %s" % (e,))
            raise

        logger.debug("Stopping scan")
        try:
            await scanner.stop()
        except Exception as e:
            # A match is not reported if we failed to stop scanning
            raise ScanStopFailed("Stopping scan: %s" % (e,)) from e

        if advertisement is None:
            raise ScanTimeout("No advertisement from '%s' within %.1fs" % (self.name_marker, self.timeout))

        logger.debug("Found '%s' (%s)" % (advertisement.name, advertisement.address))
        return advertisement
