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

import struct
from dataclasses import dataclass

from .errors import FieldDecodeFailed, TruncatedPayload, UnsupportedFormat

# Ruuvi data format 5 (RAWv2)
# https://docs.ruuvi.com/communication/bluetooth-advertisements/data-format-5-rawv2
SUPPORTED_FORMAT = 5
MIN_PAYLOAD_LENGTH = 7

# * Format. unsigned 1 byte
# * Temperature. signed 2 bytes, big-endian, 0.005 degrees
# * Humidity. unsigned 2 bytes, big-endian, 0.0025 %
# * Pressure. unsigned 2 bytes, big-endian, Pa with a -50000 offset
PAYLOAD_FORMAT = '>BhHH'

# Raw values the tag sends when a reading is not available
INVALID_TEMPERATURE = -0x8000
INVALID_HUMIDITY = 0xFFFF
INVALID_PRESSURE = 0xFFFF

TEMPERATURE_STEP = 0.005
HUMIDITY_STEP = 0.0025
PRESSURE_OFFSET = 50000


@dataclass(frozen=True)
class Measurement:
    temperature: float  # degrees Celsius
    humidity: float  # relative, percentage
    pressure: float  # hectopascal


def decode_payload(payload: bytes) -> Measurement:
    """Decode the manufacturer specific payload of a format 5 advertisement.

    Only the environmental fields at the head of the payload are read, any
    trailing bytes are ignored.

    Raises:
        UnsupportedFormat: the format byte is missing or is not 5.
        TruncatedPayload: the payload ends before the pressure field.
        FieldDecodeFailed: a field holds its "not available" marker.
    """
    if not payload or payload[0] != SUPPORTED_FORMAT:
        found = payload[0] if payload else None
        raise UnsupportedFormat("Unsupported data format %s, expected %d" % (found, SUPPORTED_FORMAT))

    if len(payload) < MIN_PAYLOAD_LENGTH:
        raise TruncatedPayload("Payload is %d bytes long, need at least %d" % (len(payload), MIN_PAYLOAD_LENGTH))

    try:
        _, t, h, p = struct.unpack_from(PAYLOAD_FORMAT, payload)
    except struct.error as e:
        raise FieldDecodeFailed("Error unpacking payload %s: %s" % (bytes(payload).hex(' '), e)) from e

    if t == INVALID_TEMPERATURE:
        raise FieldDecodeFailed("Temperature not available")
    if h == INVALID_HUMIDITY:
        raise FieldDecodeFailed("Humidity not available")
    if p == INVALID_PRESSURE:
        raise FieldDecodeFailed("Pressure not available")

    return Measurement(
        temperature=t * TEMPERATURE_STEP,
        humidity=h * HUMIDITY_STEP,
        pressure=(p + PRESSURE_OFFSET) / 100,
    )
