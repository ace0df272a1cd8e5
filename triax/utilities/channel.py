#
# @file channel.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Byte-stream channel interface shared by the serial, GPIB and simulated transports.
# @version See Git tags for version information.
# @date 2026.10.19
#
# @copyright Copyright (c) 2026
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
#

from __future__ import annotations
from abc import ABC, abstractmethod
from threading import RLock

CR = b'\r'

class Channel(ABC):
    """ A half-duplex byte stream.

    The driver only ever needs blocking writes, blocking reads of N bytes
    bounded by the read timeout, input/output flushes and a line terminator
    that can be switched once the device leaves its boot program.

    `lock` must be held for the whole of a request/reply exchange; it is
    re-entrant so a caller may hold it across several exchanges.
    """

    def __init__(self, timeout: float = 1.0, terminator: bytes = b''):
        self.lock = RLock()
        self._timeout = timeout
        self._terminator = terminator

    @property
    def timeout(self) -> float:
        return self._timeout

    @timeout.setter
    def timeout(self, value: float):
        self._timeout = value
        self._apply_timeout(value)

    @property
    def terminator(self) -> bytes:
        return self._terminator

    def write_line(self, text: str | bytes) -> int:
        """ Writes `text` followed by the current terminator. """
        if isinstance(text, str):
            text = text.encode('latin-1')
        return self.write(text + self._terminator)

    @abstractmethod
    def write(self, data: bytes) -> int:
        ...

    @abstractmethod
    def read(self, size: int = 1) -> bytes:
        """ Reads up to `size` bytes; returns fewer (possibly none) if the read timeout expires. """
        ...

    @abstractmethod
    def read_line(self) -> bytes:
        """ Reads until the terminator (stripped from the result) or the read timeout. """
        ...

    @abstractmethod
    def flush_input(self):
        ...

    @abstractmethod
    def flush_output(self):
        ...

    @abstractmethod
    def reopen(self, terminator: bytes):
        """ Closes and reopens the underlying transport with a new line terminator. """
        ...

    @abstractmethod
    def close(self):
        ...

    def _apply_timeout(self, value: float):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
