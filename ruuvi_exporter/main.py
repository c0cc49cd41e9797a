#!/usr/bin/env python3

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

import sys
import asyncio
import re
import argparse
# Configure a logger.
# We create a separate logger here so we can control ourselves without messing around with bleak
import logging

from . import __version__
from .collector import DEFAULT_NAME_MARKER, RUUVI_COMPANY_ID, ScanCollector
from .errors import MeasurementError
from .metrics import ExporterMetrics, serve_metrics
from .scheduler import MeasurementScheduler

logger = logging.getLogger('ruuvi_exporter')

defaults = {
    'measure_every': '5m',
    'addr': '127.0.0.1:8045',
    'name': DEFAULT_NAME_MARKER,
    'company_id': RUUVI_COMPANY_ID,
    'scan_timeout': None,
    'debug_level': 'INFO',
}

choices = {
    'debug_level': ('DEBUG', 'INFO', 'WARN', 'ERROR'),
}

_DURATION_UNITS = {
    'ms': 0.001,
    's': 1,
    'm': 60,
    'h': 3600,
}
_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ms|s|m|h)')


def parse_duration(value):
    """Parse '300', '90s', '5m', '1h30m' or '250ms' into seconds."""
    text = value.strip()
    if re.fullmatch(r"\d+(?:\.\d*)?|\.\d+", text):
        return float(text)

    pos = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise argparse.ArgumentTypeError("invalid duration: '%s'" % (value,))
    return seconds


def parse_addr(value):
    """Split HOST:PORT. An empty host listens on all interfaces."""
    host, sep, port = value.rpartition(':')
    if not sep or not port.isdigit() or int(port) > 65535:
        raise argparse.ArgumentTypeError("invalid address, expected HOST:PORT: '%s'" % (value,))
    host = host.strip('[]') or '0.0.0.0'
    return host, int(port)


def parse_company_id(value):
    try:
        company_id = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError("invalid company id: '%s'" % (value,))
    if company_id not in range(0x10000):
        raise argparse.ArgumentTypeError("company id out of range: '%s'" % (value,))
    return company_id


def log_init(debug_level):
    logger.setLevel(logging.DEBUG)

    # Create a handler and a formatted
    ch = logging.StreamHandler()
    ch.setLevel(debug_level)
    formatter = logging.Formatter('[%(asctime)s - %(name)s - %(levelname)s] %(message)s')
    ch.setFormatter(formatter)

    logger.addHandler(ch)


def arg_parser(argv=None):
    parser = argparse.ArgumentParser(add_help = False,
                                     description = "Periodically scan for a RuuviTag's BLE advertisements, decode "
                                                   "its measurements and expose them as Prometheus metrics.")

    meas_group = parser.add_argument_group('Measurement Options')
    meas_group.add_argument('-i', '--measure-every', action='store', type=parse_duration,
                            default=parse_duration(defaults['measure_every']),
                            help="Take a measurement once every MEASURE_EVERY (e.g. 300, 90s, 5m, 1h30m). "
                                 "Default: %s" % (defaults['measure_every'],))
    meas_group.add_argument('-T', '--scan-timeout', action='store', type=parse_duration,
                            default=defaults['scan_timeout'],
                            help="Give up on a scan if no tag was heard within SCAN_TIMEOUT. 0 waits forever. "
                                 "Default: the measurement interval")

    ble_group = parser.add_argument_group('BLE Options')
    ble_group.add_argument('-n', '--name', action='store', default=defaults['name'],
                           help="Only accept devices whose name contains NAME. Default: %s" % (defaults['name'],))
    ble_group.add_argument('-c', '--company-id', action='store', type=parse_company_id,
                           default=defaults['company_id'],
                           help="Manufacturer ID of the payload. Default: %d (0x%04x)"
                                % (defaults['company_id'], defaults['company_id']))

    out_group = parser.add_argument_group('Metrics Options')
    out_group.add_argument('-a', '--addr', action='store', type=parse_addr,
                           default=parse_addr(defaults['addr']),
                           help="address:port to serve /metrics on. Default: %s" % (defaults['addr'],))

    log_group = parser.add_argument_group('Debugging')
    log_group.add_argument('-D', '--debug-level', action = 'store',
                           choices = choices['debug_level'],
                           default = defaults['debug_level'],
                           help = "Print messages of severity DEBUG_LEVEL "
                                  "or higher (Default %s)"
                                   % (defaults['debug_level'],))

    gen_group = parser.add_argument_group('General Options')
    gen_group.add_argument('-v', '--version', action = 'version',
                           version = 'ruuvi-exporter v%s' % (__version__))
    gen_group.add_argument('-h', '--help', action = 'help',
                           help = 'Shows this message and exits')

    args = parser.parse_args(argv)
    if args.measure_every <= 0:
        parser.error("argument -i/--measure-every: must be positive")
    if args.scan_timeout is None:
        args.scan_timeout = args.measure_every
    elif args.scan_timeout == 0:
        args.scan_timeout = None
    return args


def build_scheduler(args, metrics):
    collector = ScanCollector(name_marker=args.name, company_id=args.company_id, timeout=args.scan_timeout)
    return MeasurementScheduler(collector, metrics, interval=args.measure_every)


def main(argv=None):
    args = arg_parser(argv)
    log_init(args.debug_level)

    metrics = ExporterMetrics()
    host, port = args.addr
    serve_metrics(metrics, host, port)

    scheduler = build_scheduler(args, metrics)
    try:
        logger.info("Starting exporter")
        asyncio.run(scheduler.run())
    except MeasurementError as e:
        logger.error("Could not measure, exiting: %s" % (e,))
        return 1
    except KeyboardInterrupt:
        logger.info("Stopping exporter")
    return 0


if __name__ == "__main__":
    sys.exit(main())
