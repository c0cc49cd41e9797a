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

"""Errors raised while taking a measurement.

Every error carries a ``fatal`` flag set where the error is raised. The
scheduler only stops on fatal errors once it is cycling; anything else is
logged, counted and retried on the next tick.
"""


class MeasurementError(Exception):
    fatal = False


class AdapterUnavailable(MeasurementError):
    """The Bluetooth adapter is missing, powered off or not accessible."""
    fatal = True


class ScanError(MeasurementError):
    pass


class ScanStartFailed(ScanError):
    pass


class ScanTimeout(ScanStartFailed):
    """No matching advertisement was seen before the scan timeout."""


class ScanStopFailed(ScanError):
    pass


class DecodeError(MeasurementError):
    pass


class UnsupportedFormat(DecodeError):
    pass


class TruncatedPayload(DecodeError):
    pass


class FieldDecodeFailed(DecodeError):
    pass
