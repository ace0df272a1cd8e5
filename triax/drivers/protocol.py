#
# @file protocol.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Command / acknowledgement exchanges with a TRIAX running its main program.
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
import time
from typing import NamedTuple

from triax.drivers.errors import ProtocolError
from triax.utilities import log
from triax.utilities.channel import Channel

ACK = b'o'

_NUMBER = re.compile(r'^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$')

class AckResult(NamedTuple):
    ok: bool
    byte: bytes

def parse_number(text: str) -> float:
    """ Parses a scalar reply such as '375.0000' or '4'. Raises ValueError if malformed. """
    t = text.strip()
    if not _NUMBER.match(t):
        raise ValueError('Not a number: %r'%(text))
    return float(t)

def parse_numbers(text: str) -> tuple:
    """ Parses a comma-delimited reply such as '1000,4000,250'. """
    return tuple(parse_number(part) for part in text.split(','))

class CommandProtocol:
    """ Strictly half-duplex request / acknowledgement exchanges.

    Every exchange flushes stale input, sends one command line and reads the
    single acknowledgement byte while holding the channel lock. Replies that
    carry data follow the acknowledgement as one terminator-delimited line.
    """

    def __init__(self, channel: Channel):
        self.channel = channel

    def execute(self, command: str, settle: float = 0) -> AckResult:
        """ Sends `command` and checks its acknowledgement.

        Args:
            command (str): The command, without terminator.
            settle (float, optional): Seconds to wait between sending and reading the acknowledgement. Defaults to 0.

        Raises:
            ProtocolError: Raised if the acknowledgement byte is not 'o' (or never arrived).

        Returns:
            AckResult: The acknowledgement.
        """

        with self.channel.lock:
            # Leftovers from an earlier timed-out exchange must not be taken for this reply.
            self.channel.flush_input()
            log.debug('TX:', command)
            self.channel.write_line(command)
            if settle > 0:
                time.sleep(settle)
            answer = self.channel.read(1)
            log.debug('RX ack:', answer)

        if answer != ACK:
            log.error('Command error: %r answered %r.'%(command, answer))
            raise ProtocolError(command, answer)
        return AckResult(True, answer)

    def query(self, command: str) -> str:
        with self.channel.lock:
            self.execute(command)
            reply = self.channel.read_line()
        log.debug('RX data:', reply)
        return reply.decode('latin-1').strip()

    def query_number(self, command: str) -> float:
        reply = self.query(command)
        try:
            return parse_number(reply)
        except ValueError as e:
            log.error('Malformed reply to %r: %r.'%(command, reply))
            raise ProtocolError(command, reply.encode('latin-1'), 'Malformed reply.') from e

    def query_numbers(self, command: str, count: int) -> tuple:
        reply = self.query(command)
        try:
            values = parse_numbers(reply)
        except ValueError as e:
            log.error('Malformed reply to %r: %r.'%(command, reply))
            raise ProtocolError(command, reply.encode('latin-1'), 'Malformed reply.') from e
        if len(values) != count:
            log.error('Reply to %r has %d fields, expected %d.'%(command, len(values), count))
            raise ProtocolError(command, reply.encode('latin-1'), 'Malformed reply.')
        return values

    def read_status(self, command: str) -> bytes:
        """ Sends a busy-status poll and returns the status byte following its acknowledgement. """
        with self.channel.lock:
            self.execute(command)
            status = self.channel.read(1)
        log.debug('RX status:', status)
        return status
