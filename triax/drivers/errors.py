#
# @file errors.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Exceptions raised by the TRIAX driver.
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

POWER_CYCLE_HINT = 'Try to power-down and power-up the device. If the error persists, start the device once with the Horiba software.'

class TriaxError(RuntimeError):
    """ Base class for every error raised by the TRIAX driver. """
    pass

class ConfigError(TriaxError):
    """ Invalid connection parameters or instrument model. """
    pass

class HandshakeFailed(TriaxError):
    """ The device could not be brought into the main program in remote mode. """

    def __init__(self, reason: str):
        super().__init__('%s %s'%(reason, POWER_CYCLE_HINT))
        self.reason = reason

class ProtocolError(TriaxError):
    """ The acknowledgement byte was not 'o', or a reply could not be parsed. """

    def __init__(self, command: str, reply: bytes = b'', detail: str = 'Command error.'):
        super().__init__('%s (command %r, reply %r)'%(detail, command, reply))
        self.command = command
        self.reply = reply

class RangeError(TriaxError, ValueError):
    """ An argument lies outside the physical limits of the instrument. """
    pass

class StateError(TriaxError):
    """ The operation is not allowed in the current connection state. """
    pass

class Timeout(TriaxError):
    """ A busy-wait poll exceeded its deadline or was cancelled. """

    def __init__(self, reason: str):
        super().__init__('%s %s'%(reason, POWER_CYCLE_HINT))
        self.reason = reason
