#
# @file safe_gpib.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Mutex-locked GPIB communications through VISA.
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
import pyvisa
from pyvisa import constants

from triax.drivers.errors import ConfigError
from triax.utilities import log
from triax.utilities.channel import Channel

# Tried in order; '' is the system VISA library, '@py' is pyvisa-py.
DEFAULT_BACKENDS = ['', '@py']
# Boards whose vendor ships no VISA library go through pyvisa-py (linux-gpib / gpib-ctypes) first.
VENDOR_BACKENDS = {
    'ni': ['', '@py'],
    'keysight': ['', '@py'],
    'ics': ['@py', ''],
    'mcc': ['@py', ''],
    'adlink': ['@py', ''],
}

def backends_for_vendor(vendor: str) -> list:
    return VENDOR_BACKENDS.get(vendor, DEFAULT_BACKENDS)

class SafeGpib(Channel):
    def __init__(self, board_index: int, primary_address: int, timeout: float = 1.0, terminator: bytes = b'', vendor: str = 'ni', backends: list = None):
        super().__init__(timeout, terminator)
        self.resource = 'GPIB%d::%d::INSTR'%(board_index, primary_address)
        self.vendor = vendor
        self.backends = backends if backends is not None else backends_for_vendor(vendor)
        self.backend_in_use = None
        self._rm = None
        self._inst = None

        log.info('Creating SafeGpib on %s (%s board).'%(self.resource, vendor))
        self._open()

    def _open(self):
        last_err = None
        for be in self.backends:
            try:
                self._rm = pyvisa.ResourceManager(be) if be else pyvisa.ResourceManager()
                self._inst = self._rm.open_resource(self.resource)
                self.backend_in_use = be or 'default'
                break
            except (pyvisa.errors.Error, OSError, ValueError) as e:
                log.warn('VISA backend %r could not open %s:'%(be, self.resource), e)
                last_err = e
                self._rm = None
                self._inst = None

        if self._inst is None:
            log.error('Failed to open %s on any VISA backend.'%(self.resource))
            raise ConfigError('GPIB resource %s could not be opened.'%(self.resource)) from last_err

        self._inst.timeout = int(self._timeout * 1000)
        term = self._terminator.decode('latin-1') if len(self._terminator) else None
        self._inst.read_termination = term
        self._inst.write_termination = ''
        self._inst.clear()
        log.debug('SafeGpib created on %s using backend %s.'%(self.resource, self.backend_in_use))

    def _apply_timeout(self, value: float):
        with self.lock:
            if self._inst is not None:
                self._inst.timeout = int(value * 1000)

    def write(self, data: bytes) -> int:
        with self.lock:
            log.debug('SafeGpib Write:', data)
            return self._inst.write_raw(data)

    def read(self, size: int = 1) -> bytes:
        with self.lock:
            try:
                retval = self._inst.read_bytes(size)
            except pyvisa.errors.VisaIOError as e:
                if e.error_code != constants.StatusCode.error_timeout:
                    raise
                retval = b''
            log.debug('SafeGpib Read:', retval)
            return retval

    def read_line(self) -> bytes:
        with self.lock:
            try:
                retval = self._inst.read_raw()
            except pyvisa.errors.VisaIOError as e:
                if e.error_code != constants.StatusCode.error_timeout:
                    raise
                retval = b''
            log.debug('SafeGpib Read Line:', retval)
            if len(self._terminator) and retval.endswith(self._terminator):
                retval = retval[:-len(self._terminator)]
            return retval

    def flush_input(self):
        with self.lock:
            self._inst.flush(constants.BufferOperation.discard_read_buffer)

    def flush_output(self):
        with self.lock:
            self._inst.flush(constants.BufferOperation.discard_write_buffer)

    def reopen(self, terminator: bytes):
        with self.lock:
            log.info('Reopening SafeGpib on %s with terminator %r.'%(self.resource, terminator))
            self._inst.close()
            self._terminator = terminator
            self._open()

    def close(self):
        with self.lock:
            log.info('Closing SafeGpib on %s.'%(self.resource))
            if self._inst is not None:
                self._inst.close()
                self._inst = None
            self._rm = None
