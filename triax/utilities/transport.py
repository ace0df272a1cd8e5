#
# @file transport.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Opens the channel described by a ConnectionConfig.
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

from triax.drivers.errors import ConfigError
from triax.utilities import config as cfg
from triax.utilities import log
from triax.utilities.channel import Channel
from triax.utilities.safe_gpib import SafeGpib
from triax.utilities.safe_serial import SafeSerial

# Default read timeout in seconds while changing settings.
TIMEOUT = 1.0

def open_channel(config: cfg.ConnectionConfig, timeout: float = TIMEOUT) -> Channel:
    """ Opens a channel with no line terminator, as the handshake requires. """

    log.info('Opening channel to %s.'%(config.describe()))
    if config.port_choice == cfg.SERIAL:
        channel = SafeSerial(config.port, config.baud_rate, timeout=timeout)
        # The port may already be open in main-program framing.
        if channel.terminator != b'':
            channel.reopen(b'')
        return channel
    elif config.port_choice == cfg.GPIB:
        return SafeGpib(config.board_index, config.primary_address, timeout=timeout, vendor=config.vendor)

    log.error('Port choice invalid: %r.'%(config.port_choice))
    raise ConfigError('Port choice invalid: %r.'%(config.port_choice))
