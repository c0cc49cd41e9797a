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

from .decoder import decode_payload
from .errors import MeasurementError

logger = logging.getLogger(__name__)


class MeasurementScheduler:
    """Takes a measurement right away, then once every ``interval`` seconds.

    Cycles run one after the other on the calling task. When a cycle overruns
    the interval the next one starts right away, any further ticks that fell
    inside the long cycle are skipped rather than queued up.
    """

    def __init__(self, collector, metrics, interval: float, decode=decode_payload):
        if interval <= 0:
            raise ValueError("interval must be positive, got %r" % (interval,))
        self.collector = collector
        self.metrics = metrics
        self.interval = interval
        self.decode = decode

    async def measure(self):
        with self.metrics.time_cycle():
            try:
                advertisement = await self.collector.collect()
                measurement = self.decode(advertisement.payload)
            except MeasurementError:
                self.metrics.record_failure()
                raise

            self.metrics.record_success(advertisement.address, measurement)

        logger.info("%s: T=%.2f°C, H=%.2f%%, P=%.2f hPa, RSSI=%s" % (
            advertisement.address, measurement.temperature, measurement.humidity,
            measurement.pressure, advertisement.rssi))
        return measurement

    async def run(self, max_cycles=None):
        """Measure forever, or until ``max_cycles`` cycles have completed.

        A failure of the first cycle is raised to the caller: if we cannot
        measure once at startup, something is wrong with the setup. Later
        failures are logged and the next tick is awaited, unless the error is
        fatal.
        """
        loop = asyncio.get_running_loop()

        await self.measure()
        cycles = 1

        logger.info("Starting measurements ticker, every %ss" % (self.interval,))
        next_tick = loop.time() + self.interval
        while max_cycles is None or cycles < max_cycles:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

            try:
                await self.measure()
            except MeasurementError as e:
                if e.fatal:
                    raise
                logger.warning("Measurement failed: %s" % (e,))
            cycles += 1

            next_tick += self.interval
            now = loop.time()
            if next_tick <= now:
                # One tick is kept and measured right away, the rest are dropped
                missed = int((now - next_tick) // self.interval)
                logger.warning("Measurement overran the interval, measuring again now and skipping %d tick(s)"
                               % (missed,))
                next_tick += missed * self.interval
