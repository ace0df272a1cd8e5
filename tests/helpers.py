#
# @file helpers.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Channels and fixtures shared by the TRIAX tests.
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

import unittest
from unittest import mock

from triax.drivers import handshake
from triax.drivers.hj_triax import HJ_Triax
from triax.drivers.triax_sim import TriaxSimulator
from triax.utilities.channel import CR, Channel
from triax.utilities.config import ConnectionConfig

class ScriptedChannel(Channel):
    """ Replays canned replies, one per read() or read_line() call, and records what was written. """

    def __init__(self, script=(), terminator: bytes = CR):
        super().__init__(1.0, terminator)
        self.script = list(script)
        self.written = []
        self.events = []
        self.timeouts = []
        self.closed = False

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        self.events.append(('write', bytes(data)))
        return len(data)

    def read(self, size: int = 1) -> bytes:
        return self.script.pop(0) if self.script else b''

    def read_line(self) -> bytes:
        return self.script.pop(0) if self.script else b''

    def flush_input(self):
        self.events.append(('flush_input',))

    def flush_output(self):
        self.events.append(('flush_output',))

    def reopen(self, terminator: bytes):
        self._terminator = terminator
        self.events.append(('reopen', terminator))

    def close(self):
        self.closed = True

    def _apply_timeout(self, value: float):
        self.timeouts.append(value)

class FastHandshakeTestCase(unittest.TestCase):
    """ Removes the handshake pauses so the tests run quickly. """

    def setUp(self):
        patcher = mock.patch.multiple(handshake, READ_DLY=0, MODE_DLY=0, MAIN_DLY=0)
        patcher.start()
        self.addCleanup(patcher.stop)

class TriaxTestCase(FastHandshakeTestCase):
    """ A Triax 320 wired to a simulated instrument that has just been powered up. """

    MODEL = 'Triax 320'
    TORQUE_BOOST = True

    def setUp(self):
        super().setUp()
        self.sim = TriaxSimulator(busy_polls=2)
        self.config = ConnectionConfig.serial('COM1')
        self.mono = make_triax(self.MODEL, self.TORQUE_BOOST, lambda config: self.sim)

    def connect(self):
        self.mono.connect(self.config)
        self.sim.commands.clear()

def make_triax(model: str, torque_boost: bool, channel_factory) -> HJ_Triax:
    mono = HJ_Triax(model, torque_boost, channel_factory=channel_factory)
    mono.POLL_DLY = 0
    mono.MIRROR_DLY = 0
    mono.SHUTTER_DLY = 0
    mono.DRAIN_DLY = 0
    return mono
