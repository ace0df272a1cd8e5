#
# @file triax_sim.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief In-memory TRIAX firmware for dummy operation and tests.
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
import re

from triax.drivers.speed import MotorSpeed
from triax.drivers.units import SLIT, format_raw
from triax.utilities import log
from triax.utilities.channel import CR, Channel

# Firmware modes, as reported by the where-am-I byte.
AUTOBAUD = 'autobaud'
TERMINAL = 'terminal'
BOOT = 'boot'
MAIN = 'main'

_WHERE_AM_I = {AUTOBAUD: b'*', TERMINAL: b' ', BOOT: b'B', MAIN: b'F'}

class TriaxSimulator(Channel):
    """ Answers the TRIAX command set the way the firmware does.

    Starts in `mode` ('autobaud' after power-up, 'terminal', 'boot' or
    'main'). Motion commands leave the motors busy for `busy_polls` status
    polls. Commands starting with any prefix in `fail_commands` are refused
    with a 'b' byte.
    """

    def __init__(self, mode: str = AUTOBAUD, busy_polls: int = 1, initialized: bool = False, timeout: float = 1.0, terminator: bytes = b''):
        super().__init__(timeout, terminator)
        if mode not in _WHERE_AM_I:
            raise ValueError('Unknown firmware mode %r.'%(mode))
        self.mode = mode
        self.busy_polls = busy_polls
        self.initialized = initialized
        self.fail_commands = set()
        self.commands = [] # Every main-program command received, in order.
        self.is_open = True

        self.speed = MotorSpeed(1000, 4000, 250)
        self.speed_history = []
        self.grating_index = 0
        self.raw_wavelength = 0.0
        self.slit_steps = [0, 0, 0, 0]
        self.slit_speeds = [SLIT.motor_speed] * 4
        self.entrance_mirror = 'side'
        self.exit_mirror = 'side'
        self.shutter_open = False

        self._busy = 0
        self._reboot_armed = False
        self._rx = bytearray()
        self._line = bytearray()

        self._handlers = [
            (re.compile(r'^A$'), self._initialize),
            (re.compile(r'^C0$'), self._get_speed),
            (re.compile(r'^B0,(\d+),(\d+),(\d+)$'), self._set_speed),
            (re.compile(r'^(E|Z453)$'), self._status),
            (re.compile(r'^Z451,0,0,0,(\d+)$'), self._set_turret),
            (re.compile(r'^Z452,0,0,0$'), self._get_turret),
            (re.compile(r'^Z60,0,(-?[\d.]+)$'), self._set_wavelength),
            (re.compile(r'^Z61,0,(-?[\d.]+)$'), self._move_wavelength),
            (re.compile(r'^Z62,0$'), self._get_wavelength),
            (re.compile(r'^g0,(\d),(\d+)$'), self._set_slit_speed),
            (re.compile(r'^h0,(\d)$'), self._get_slit_speed),
            (re.compile(r'^i0,(\d),(-?\d+)$'), self._set_slit),
            (re.compile(r'^j0,(\d)$'), self._get_slit),
            (re.compile(r'^k0,(\d),(-?\d+)$'), self._move_slit),
            (re.compile(r'^([cdef])0$'), self._mirror),
            (re.compile(r'^([WX])0$'), self._shutter),
        ]

    # -------------------------------------------------------------------------
    # Channel

    def write(self, data: bytes) -> int:
        with self.lock:
            for b in data:
                if self._terminator == b'':
                    self._utility_byte(b)
                elif bytes([b]) == CR:
                    self._dispatch(self._line.decode('latin-1'))
                    self._line.clear()
                else:
                    self._line.append(b)
        return len(data)

    def read(self, size: int = 1) -> bytes:
        with self.lock:
            out = bytes(self._rx[:size])
            del self._rx[:size]
        return out

    def read_line(self) -> bytes:
        with self.lock:
            idx = self._rx.find(CR)
            if idx < 0:
                out = bytes(self._rx)
                self._rx.clear()
            else:
                out = bytes(self._rx[:idx])
                del self._rx[:idx + 1]
        return out

    def flush_input(self):
        with self.lock:
            self._rx.clear()

    def flush_output(self):
        pass

    def reopen(self, terminator: bytes):
        with self.lock:
            self._terminator = terminator
            self._line.clear()
            self.is_open = True

    def close(self):
        # The port is opened again without a terminator.
        with self.lock:
            self.is_open = False
            self._terminator = b''
            self._line.clear()

    # -------------------------------------------------------------------------
    # Boot-level protocol

    def _utility_byte(self, b: int):
        if self._line:
            # Inside a boot command such as 'O2000<NUL>'.
            if b == 0:
                self._boot_command(self._line.decode('latin-1'))
                self._line.clear()
            else:
                self._line.append(b)
        elif b == 0x20:
            self._rx += _WHERE_AM_I[self.mode]
        elif b == 0xF7:
            if self.mode == AUTOBAUD:
                self.mode = BOOT
                self._rx += b'='
        elif b == 0xF8:
            self._reboot_armed = True
        elif b == 0xDE:
            if self._reboot_armed:
                self._reboot_armed = False
                self.mode = BOOT
                self.initialized = False
        else:
            self._line.append(b)

    def _boot_command(self, command: str):
        log.debug('SIM boot command:', command)
        if command == 'O2000' and self.mode == BOOT:
            self.mode = MAIN
            self.initialized = False
            self._rx += b'*'

    # -------------------------------------------------------------------------
    # Main program

    def _dispatch(self, command: str):
        self.commands.append(command)
        if self.mode != MAIN or any(command.startswith(p) for p in self.fail_commands):
            self._rx += b'b'
            return
        for pattern, handler in self._handlers:
            match = pattern.match(command)
            if match is not None:
                reply = handler(*match.groups())
                self._rx += b'o'
                if isinstance(reply, bytes):
                    # Status bytes follow the acknowledgement without a terminator.
                    self._rx += reply
                elif reply is not None:
                    self._rx += reply.encode('latin-1') + CR
                return
        log.warn('SIM unknown command %r.'%(command))
        self._rx += b'b'

    def _start_motion(self):
        self._busy = self.busy_polls

    def _initialize(self):
        self.initialized = True
        self.grating_index = 0
        self.raw_wavelength = 0.0

    def _get_speed(self):
        return str(self.speed)

    def _set_speed(self, lo, hi, rise):
        self.speed = MotorSpeed(int(lo), int(hi), int(rise))
        self.speed_history.append(self.speed)

    def _status(self, _command):
        if self._busy > 0:
            self._busy -= 1
            return b'q'
        return b'z'

    def _set_turret(self, index):
        self.grating_index = int(index)
        self._start_motion()

    def _get_turret(self):
        return '%d'%(self.grating_index)

    def _set_wavelength(self, raw):
        self.raw_wavelength = float(raw)

    def _move_wavelength(self, raw):
        self.raw_wavelength = float(raw)
        self._start_motion()

    def _get_wavelength(self):
        return format_raw(self.raw_wavelength)

    def _set_slit_speed(self, slit, hz):
        self.slit_speeds[int(slit)] = int(hz)

    def _get_slit_speed(self, slit):
        return '%d'%(self.slit_speeds[int(slit)])

    def _set_slit(self, slit, steps):
        self.slit_steps[int(slit)] = int(steps)

    def _get_slit(self, slit):
        return '%d'%(self.slit_steps[int(slit)])

    def _move_slit(self, slit, steps):
        s = int(slit)
        self.slit_steps[s] = min(max(self.slit_steps[s] + int(steps), 0), SLIT.steps_max)
        self._start_motion()

    def _mirror(self, which):
        if which in 'cd':
            self.entrance_mirror = 'side' if which == 'c' else 'front'
        else:
            self.exit_mirror = 'side' if which == 'e' else 'front'

    def _shutter(self, which):
        self.shutter_open = which == 'W'
