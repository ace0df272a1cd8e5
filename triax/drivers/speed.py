#
# @file speed.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Grating motor speed commands and the temporary high-torque speed profile.
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
from typing import Callable, NamedTuple, Optional

from triax.drivers.errors import RangeError, TriaxError
from triax.drivers.protocol import CommandProtocol
from triax.drivers.units import is_number, round_half_away
from triax.utilities import log

GET_SPEED = 'C0'
SET_SPEED = 'B0,%d,%d,%d'

GRATING_MIN_SPEED = 100 # Hz (steps per second).
GRATING_MAX_SPEED = 80000
GRATING_MIN_RISE_TIME = 100 # ms
GRATING_MAX_RISE_TIME = 65535

SLIT_MIN_SPEED = 10 # Hz
SLIT_MAX_SPEED = 10000

class MotorSpeed(NamedTuple):
    min_hz: int
    max_hz: int
    rise_ms: int

    def __str__(self):
        return '%d,%d,%d'%(self.min_hz, self.max_hz, self.rise_ms)

# Slow enough to change gratings on TRIAX 180, 190 and 320 turrets that stall at normal speed.
HIGH_TORQUE_SPEED = MotorSpeed(1000, 1000, 250)

def check_motor_speed(min_hz, max_hz, rise_ms) -> MotorSpeed:
    if not is_number(min_hz):
        raise RangeError('Turret motor minimum steps/s invalid: %r.'%(min_hz,))
    if min_hz < GRATING_MIN_SPEED or min_hz > GRATING_MAX_SPEED:
        raise RangeError('Turret minimum steps/s out of range: %s (%d to %d).'%(min_hz, GRATING_MIN_SPEED, GRATING_MAX_SPEED))
    if not is_number(max_hz):
        raise RangeError('Turret motor maximum steps/s invalid: %r.'%(max_hz,))
    if max_hz > GRATING_MAX_SPEED or max_hz < min_hz:
        raise RangeError('Turret maximum steps/s out of range: %s (%s to %d).'%(max_hz, min_hz, GRATING_MAX_SPEED))
    if not is_number(rise_ms):
        raise RangeError('Turret motor rise time invalid: %r.'%(rise_ms,))
    if rise_ms < GRATING_MIN_RISE_TIME or rise_ms > GRATING_MAX_RISE_TIME:
        raise RangeError('Turret rise time out of range: %s ms (%d to %d).'%(rise_ms, GRATING_MIN_RISE_TIME, GRATING_MAX_RISE_TIME))
    return MotorSpeed(int(round_half_away(min_hz)), int(round_half_away(max_hz)), int(round_half_away(rise_ms)))

def get_motor_speed(protocol: CommandProtocol) -> MotorSpeed:
    values = protocol.query_numbers(GET_SPEED, 3)
    return MotorSpeed(*(int(v) for v in values))

def set_motor_speed(protocol: CommandProtocol, speed: MotorSpeed):
    protocol.execute(SET_SPEED%(speed.min_hz, speed.max_hz, speed.rise_ms))

class MotorSpeedProfile:
    """ Temporarily slows the grating motor to raise its torque.

    Used as a context manager; the speed read on entry is written back on
    every exit path, including errors raised inside the block.

        with MotorSpeedProfile(protocol):
            protocol.execute('A')
    """

    def __init__(self, protocol: CommandProtocol, boost: MotorSpeed = HIGH_TORQUE_SPEED):
        self.protocol = protocol
        self.boost = boost
        self.saved: Optional[MotorSpeed] = None

    def __enter__(self) -> MotorSpeed:
        self.saved = get_motor_speed(self.protocol)
        log.info('Lowering grating motor speed from %s to %s for torque.'%(self.saved, self.boost))
        set_motor_speed(self.protocol, self.boost)
        return self.saved

    def __exit__(self, exc_type, exc, tb):
        log.info('Restoring grating motor speed to %s.'%(self.saved))
        try:
            set_motor_speed(self.protocol, self.saved)
        except TriaxError as e:
            if exc is None:
                raise
            # The error from the block is the one reported; this one is only logged.
            log.error('Failed to restore grating motor speed to %s:'%(self.saved), e)
        return False

    def run(self, action: Callable):
        with self:
            return action()
