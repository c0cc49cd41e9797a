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

"""Prometheus metrics for the exporter.

All metrics live in a registry owned by ``ExporterMetrics`` instead of the
process wide default registry. The scheduler writes to it after each cycle and
the exposition server reads from it on every scrape; the prometheus_client
primitives do their own locking, so nothing else is shared between the two.
"""
import logging

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from .decoder import Measurement

logger = logging.getLogger(__name__)


def linear_buckets(start, width, count):
    return [start + width * i for i in range(count)]


# Seconds, 1 to 96. A cycle includes the wait for the tag to advertise.
DURATION_BUCKETS = linear_buckets(1, 5, 20)


class ExporterMetrics:

    def __init__(self, registry=None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.measurements = Counter('measurement_count', 'Successful measurements', registry=self.registry)
        self.measurement_errors = Counter('measurement_err_count', 'Failed measurements', registry=self.registry)
        # Labelled so that a series only appears after the first successful measurement
        self.temperature = Gauge('temperature', 'Temperature in celcius', ['address'], registry=self.registry)
        self.humidity = Gauge('humidity', 'Humidity in percentage', ['address'], registry=self.registry)
        self.pressure = Gauge('pressure', 'Atmospheric pressure in hectopascal', ['address'],
                              registry=self.registry)
        self.duration = Histogram('measurement_duration', 'Seconds it took to make a measurement',
                                  buckets=DURATION_BUCKETS, registry=self.registry)

    def record_success(self, address: str, measurement: Measurement):
        self.temperature.labels(address=address).set(measurement.temperature)
        self.humidity.labels(address=address).set(measurement.humidity)
        self.pressure.labels(address=address).set(measurement.pressure)
        self.measurements.inc()

    def record_failure(self):
        self.measurement_errors.inc()

    def time_cycle(self):
        """Context manager observing the elapsed time, also when the body raises."""
        return self.duration.time()


def serve_metrics(metrics: ExporterMetrics, host: str, port: int):
    logger.info("Serving metrics on http://%s:%d/metrics" % (host, port))
    return start_http_server(port, addr=host, registry=metrics.registry)
