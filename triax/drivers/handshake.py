#
# @file handshake.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Brings a TRIAX into its main program in intelligent (remote) mode.
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

import time

from triax.drivers.errors import HandshakeFailed
from triax.utilities import log
from triax.utilities.channel import CR, Channel

ATTEMPTS = 10

# Utility commands; sent without terminator.
WHERE_AM_I = b' '
STARTUP_INTELLIGENT = bytes([247])
SET_INTELLIGENT = bytes([248])
REBOOT_IF_HUNG = bytes([222])
START_MAIN = b'O2000\x00'

# Replies to WHERE_AM_I.
AUTOBAUD = b'*'
BOOT = b'B'
MAIN = b'F'
TERMINAL = b' '
INTELLIGENT_OK = b'='

READ_DLY = 0.05 # Lets slower trailing characters arrive before the flush.
MODE_DLY = 0.2 # Recommended by the manual after each utility byte.
MAIN_DLY = 0.5 # Recommended by the manual after starting the main program.

def _probe(channel: Channel) -> bytes:
    channel.write(WHERE_AM_I)
    answer = channel.read(1)
    time.sleep(READ_DLY)
    channel.flush_input()
    log.debug('Where-am-I answered:', answer)
    return answer

def _force_intelligent(channel: Channel):
    channel.write(SET_INTELLIGENT)
    time.sleep(MODE_DLY)
    channel.write(REBOOT_IF_HUNG)
    time.sleep(MODE_DLY)

def negotiate(channel: Channel) -> bool:
    """ Drives the device into the main program, remote mode.

    The channel must be open without a line terminator. On success it is
    reopened with a carriage-return terminator for all later commands.

    Args:
        channel (Channel): The freshly opened channel.

    Raises:
        HandshakeFailed: Raised if the boot program refuses to start the main program, or if the attempts run out.

    Returns:
        bool: True if the device came up through its boot program and its motors must be initialized.
    """

    needs_init = False

    with channel.lock:
        channel.flush_output()
        channel.flush_input()

        for attempt in range(1, ATTEMPTS + 1):
            answer = _probe(channel)

            if answer == MAIN:
                log.info('Device is running its MAIN program in intelligent mode (attempt %d).'%(attempt))
                break
            elif answer == AUTOBAUD:
                # First contact after power-up: autobauding succeeded.
                log.info('Device autobauded; entering intelligent mode.')
                needs_init = True
                channel.write(STARTUP_INTELLIGENT)
                reply = channel.read(1)
                if reply != INTELLIGENT_OK:
                    log.warn('Startup intelligent mode answered %r; forcing re-boot.'%(reply))
                    _force_intelligent(channel)
            elif answer == BOOT:
                log.info('Device is running its BOOT program; starting MAIN program.')
                needs_init = True
                channel.flush_input()
                channel.write(START_MAIN)
                time.sleep(MAIN_DLY)
                reply = channel.read(1)
                if reply != AUTOBAUD:
                    log.error('Device did not enter MAIN program (answered %r).'%(reply))
                    raise HandshakeFailed('Device did not enter MAIN program.')
            elif answer == TERMINAL:
                log.warn('Device is in terminal mode; forcing intelligent mode.')
                _force_intelligent(channel)
            elif len(answer) == 0:
                log.warn('No answer to where-am-I (attempt %d of %d).'%(attempt, ATTEMPTS))
            else:
                log.warn('Unexpected answer %r to where-am-I (attempt %d of %d).'%(answer, attempt, ATTEMPTS))
        else:
            log.error('Device did not enter remote mode after %d attempts.'%(ATTEMPTS))
            raise HandshakeFailed('Device did not enter remote mode.')

        channel.reopen(CR)
        channel.flush_output()
        channel.flush_input()

    return needs_init
