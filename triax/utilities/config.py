#
# @file config.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Connection settings for the TRIAX and their INI file storage.
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

import configparser as confp
import os
import re
from dataclasses import dataclass
from typing import Optional

from triax.drivers.errors import ConfigError
from triax.utilities import log

SERIAL = 'serialport'
GPIB = 'gpib'

BAUD_RATES = (1200, 2400, 4800, 9600, 19200)
DEFAULT_BAUD_RATE = 19200
GPIB_VENDORS = ('keysight', 'ics', 'mcc', 'ni', 'adlink')
DEFAULT_VENDOR = 'ni'
DEFAULT_PRIMARY_ADDRESS = 1
DEFAULT_MODEL = 'Triax 320'

_COM_PORT = re.compile(r'^com(\d{1,3})$', re.IGNORECASE)

@dataclass(frozen=True)
class ConnectionConfig:
    """ Where and how to reach the monochromator.

    Build one with `ConnectionConfig.serial()` or `ConnectionConfig.gpib()`;
    both validate their arguments and raise `ConfigError`.
    """
    port_choice: str
    port: Optional[str] = None
    baud_rate: int = DEFAULT_BAUD_RATE
    vendor: str = DEFAULT_VENDOR
    board_index: int = 0
    primary_address: int = DEFAULT_PRIMARY_ADDRESS

    @classmethod
    def serial(cls, port: str, baud_rate: int = DEFAULT_BAUD_RATE) -> ConnectionConfig:
        return cls(SERIAL, port=check_port(port), baud_rate=check_baud_rate(baud_rate))

    @classmethod
    def gpib(cls, board_index: int = 0, primary_address: int = DEFAULT_PRIMARY_ADDRESS, vendor: str = DEFAULT_VENDOR) -> ConnectionConfig:
        return cls(GPIB, vendor=check_vendor(vendor), board_index=check_board_index(board_index), primary_address=check_primary_address(primary_address))

    def describe(self) -> str:
        if self.port_choice == SERIAL:
            return '%s @ %d baud'%(self.port, self.baud_rate)
        return 'GPIB%d::%d (%s)'%(self.board_index, self.primary_address, self.vendor)

def _is_int(val) -> bool:
    return isinstance(val, int) and not isinstance(val, bool)

def check_port(port) -> str:
    if not isinstance(port, str) or len(port.strip()) == 0:
        log.error('Serial port is none type or empty.')
        raise ConfigError('Serial port invalid: %r.'%(port,))
    port = port.strip()
    m = _COM_PORT.match(port)
    if m is not None:
        if not 1 <= int(m.group(1)) <= 256:
            log.error('Serial port number out of range: %s.'%(port))
            raise ConfigError('Serial port number invalid: %s.'%(port))
        return port.upper()
    if port.startswith('/dev/'):
        return port
    log.error('Serial port name not recognized: %s.'%(port))
    raise ConfigError('Serial port invalid: %s.'%(port))

def check_baud_rate(baud_rate) -> int:
    if not _is_int(baud_rate) or baud_rate not in BAUD_RATES:
        log.error('Serial port baudrate invalid: %r.'%(baud_rate,))
        raise ConfigError('Serial port baudrate invalid: %r. Must be one of %s.'%(baud_rate, BAUD_RATES))
    return baud_rate

def check_vendor(vendor) -> str:
    if isinstance(vendor, str) and vendor.strip().lower() in GPIB_VENDORS:
        return vendor.strip().lower()
    log.error('GPIB vendor invalid: %r.'%(vendor,))
    raise ConfigError('GPIB vendor invalid: %r.'%(vendor,))

def check_board_index(board_index) -> int:
    if not _is_int(board_index) or not 0 <= board_index <= 99:
        log.error('GPIB board index invalid: %r.'%(board_index,))
        raise ConfigError('GPIB board index invalid: %r.'%(board_index,))
    return board_index

def check_primary_address(primary_address) -> int:
    if not _is_int(primary_address) or not 1 <= primary_address <= 31:
        log.error('GPIB primary address invalid: %r.'%(primary_address,))
        raise ConfigError('GPIB primary address invalid: %r.'%(primary_address,))
    return primary_address

def save_config(path: str, config: Optional[ConnectionConfig] = None, model: str = DEFAULT_MODEL, torque_boost: bool = True):
    if config is None:
        config = ConnectionConfig.serial('COM1')

    save_config = confp.ConfigParser()
    save_config.optionxform = str

    save_config['CONNECTION'] = {'portChoice': config.port_choice,
                                 'port': config.port or '',
                                 'baudRate': str(config.baud_rate),
                                 'vendor': config.vendor,
                                 'boardIndex': str(config.board_index),
                                 'primaryAddress': str(config.primary_address)}
    save_config['INSTRUMENT'] = {'model': model,
                                 'torqueBoost': 'True' if torque_boost else 'False'}

    with open(path, 'w') as confFile:
        save_config.write(confFile)

def reset_config(path: str):
    log.warn('Resetting configuration file...')
    if os.path.exists(path):
        os.remove(path)
    save_config(path)

    if not os.path.exists(path):
        log.error('For some reason the configuration file failed to be created.')

def load_config(path: str) -> dict:
    """ Loads the connection settings saved by `save_config()`.

    A missing file is created with default settings first.

    Args:
        path (str): Path of the INI file.

    Raises:
        ConfigError: Raised if the file is malformed or holds invalid settings.

    Returns:
        dict: 'connection' (ConnectionConfig), 'model' (str) and 'torqueBoost' (bool).
    """

    log.info('Beginning load for %s.'%(path))

    if not os.path.exists(path):
        log.warn('No configuration file found, creating one...')
        save_config(path)

    config = confp.ConfigParser()
    config.optionxform = str
    try:
        config.read(path)
        conn = config['CONNECTION']
        port_choice = conn['portChoice'].strip().lower()
        if port_choice == SERIAL:
            connection = ConnectionConfig.serial(conn['port'], conn.getint('baudRate'))
        elif port_choice == GPIB:
            connection = ConnectionConfig.gpib(conn.getint('boardIndex'), conn.getint('primaryAddress'), conn['vendor'])
        else:
            raise ConfigError('Port choice invalid: %r.'%(port_choice))

        ret_dict = {
            'connection': connection,
            'model': config['INSTRUMENT'].get('model', DEFAULT_MODEL),
            'torqueBoost': config['INSTRUMENT'].getboolean('torqueBoost', True),
        }
    except (confp.Error, KeyError, ValueError) as e:
        log.error('Invalid configuration file %s: %s'%(path, e))
        raise ConfigError('Invalid configuration file %s: %s'%(path, e)) from e

    log.debug(ret_dict)
    return ret_dict
