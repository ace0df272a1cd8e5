#
# @file safe_serial.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Mutex-locked serial communications.
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
import time
import serial

from triax.drivers.errors import ConfigError
from triax.utilities import log
from triax.utilities.channel import Channel

safe_ports = {}

# One channel (and therefore one lock) per port. Asking for a port that is already open returns the channel in charge of it.
def SafeSerial(port: str, baudrate: int, timeout: float = 1.0, terminator: bytes = b''):
    if port not in safe_ports.keys():
        safe_ports[port] = _SafeSerial(port, baudrate, timeout, terminator)
    elif safe_ports[port].baudrate != baudrate:
        log.warn('SafeSerial on port %s open at %d baud; switching to %d baud.'%(port, safe_ports[port].baudrate, baudrate))
        safe_ports[port].set_baudrate(baudrate)
    return safe_ports[port]

class _SafeSerial(Channel):
    OPEN_RETRIES = 10
    OPEN_DLY = 0.25

    def __init__(self, port: str, baudrate: int, timeout: float = 1.0, terminator: bytes = b''):
        super().__init__(timeout, terminator)
        self.port = port
        self.baudrate = baudrate
        self._s = None

        log.info('Creating SafeSerial on port %s at %d baud.'%(port, baudrate))
        self._open()

    def _open(self):
        retries = 0
        while True:
            try:
                # 8N1 is fixed by the instrument; only the baud rate is negotiable.
                self._s = serial.Serial(port=self.port, baudrate=self.baudrate, bytesize=serial.EIGHTBITS, parity=serial.PARITY_NONE, stopbits=serial.STOPBITS_ONE, timeout=self._timeout)
                break
            except serial.SerialException as e:
                retries += 1
                if retries > _SafeSerial.OPEN_RETRIES:
                    log.error('Failed to create SafeSerial on port', self.port, 'after %d retries. Last error was:'%(_SafeSerial.OPEN_RETRIES), e)
                    raise ConfigError('Port %s not valid. Is another program using the port?'%(self.port)) from e
                log.warn('Failed to create SafeSerial on port', self.port, 'because error:', e)
                time.sleep(_SafeSerial.OPEN_DLY)

        self._s.reset_output_buffer()
        self._s.reset_input_buffer()
        log.debug('SafeSerial created on port:', self.port)

    def set_baudrate(self, baudrate: int):
        with self.lock:
            self.baudrate = baudrate
            if self._s is not None:
                self._s.baudrate = baudrate
                self._s.reset_input_buffer()

    def _apply_timeout(self, value: float):
        with self.lock:
            if self._s is not None:
                self._s.timeout = value

    def write(self, data: bytes) -> int:
        with self.lock:
            log.debug('SafeSerial Write:', data)
            return self._s.write(data)

    def read(self, size: int = 1) -> bytes:
        with self.lock:
            retval = self._s.read(size)
            log.debug('SafeSerial Read:', retval)
            return retval

    def read_line(self) -> bytes:
        with self.lock:
            expected = self._terminator if len(self._terminator) else b'\n'
            retval = self._s.read_until(expected)
            log.debug('SafeSerial Read Line:', retval)
            if retval.endswith(expected):
                retval = retval[:-len(expected)]
            return retval

    def flush_input(self):
        with self.lock:
            self._s.reset_input_buffer()

    def flush_output(self):
        with self.lock:
            self._s.reset_output_buffer()

    def reopen(self, terminator: bytes):
        with self.lock:
            log.info('Reopening SafeSerial on port %s with terminator %r.'%(self.port, terminator))
            self._s.close()
            self._terminator = terminator
            self._open()

    def close(self):
        with self.lock:
            log.info('Closing SafeSerial on port %s.'%(self.port))
            if self._s is not None:
                self._s.close()
                self._s = None
            if safe_ports.get(self.port) is self:
                del safe_ports[self.port]
