#
# @file hj_triax.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Driver for the Horiba Jobin-Yvon TRIAX 180, 190, 320 and 550 monochromators.
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
import functools
import time
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Event, RLock
from typing import Callable, Optional

from triax.drivers import handshake
from triax.drivers import units
from triax.drivers.errors import ProtocolError, RangeError, StateError, Timeout, TriaxError
from triax.drivers.protocol import CommandProtocol
from triax.drivers.speed import MotorSpeed, MotorSpeedProfile, SLIT_MAX_SPEED, SLIT_MIN_SPEED, check_motor_speed, get_motor_speed, set_motor_speed
from triax.utilities import log
from triax.utilities.channel import Channel
from triax.utilities.config import ConnectionConfig
from triax.utilities.transport import open_channel

# Motor commands.
INITIALIZE = 'A'
BUSY = 'E'
# TRIAX commands.
SET_TURRET = 'Z451,0,0,0,%d'
READ_TURRET = 'Z452,0,0,0'
TURRET_STATUS = 'Z453'
SET_WAVELENGTH = 'Z60,0,%s'
MOVE_WAVELENGTH = 'Z61,0,%s'
GET_WAVELENGTH = 'Z62,0'
# Slit commands.
SET_SLIT_SPEED = 'g0,%d,%d'
GET_SLIT_SPEED = 'h0,%d'
SET_SLIT_POSITION = 'i0,%d,%d'
GET_SLIT_POSITION = 'j0,%d'
MOVE_SLIT = 'k0,%d,%d'
# Accessory commands.
ENTRANCE_MIRROR_SIDE = 'c0'
ENTRANCE_MIRROR_FRONT = 'd0'
EXIT_MIRROR_SIDE = 'e0'
EXIT_MIRROR_FRONT = 'f0'
OPEN_SHUTTER = 'W0'
CLOSE_SHUTTER = 'X0'

STOPPED = b'z'

@dataclass
class DeviceState:
    connected: bool = False
    motors_initialized: Optional[bool] = None
    grating_index: Optional[int] = None
    grating_base_factor: Optional[float] = None
    last_error: Optional[TriaxError] = None

def _operation(func):
    # Serializes callers and records the outcome in `state.last_error`.
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            try:
                retval = func(self, *args, **kwargs)
            except TriaxError as e:
                self.state.last_error = e
                raise
            self.state.last_error = None
            return retval
    return wrapper

class HJ_Triax:
    """ Horiba Jobin-Yvon TRIAX monochromator over RS-232 or GPIB.

        mono = HJ_Triax('Triax 320')
        mono.connect(ConnectionConfig.serial('COM1', 19200))
        mono.initialize_motors()
        mono.exit_mirror_front()
        mono.move_grating_index(2)
        mono.move_slit_width(0, 'max')
        mono.move_to(500)
        mono.disconnect()
    """

    INIT_TIMEOUT = 300 # s; the A command only answers once every motor has been initialized (80 s minimum).
    GRATING_TIMEOUT = 120 # s
    SLIT_TIMEOUT = 60 # s
    POLL_DLY = 1.0 # s between busy polls.
    MIRROR_DLY = 2.0
    SHUTTER_DLY = 0.1
    DRAIN_DLY = 0.05

    def backend(self)->str:
        return 'HJ_TRIAX'

    def __init__(self, model: str = 'Triax 320', torque_boost: bool = True, channel_factory: Callable[[ConnectionConfig], Channel] = open_channel):
        """ HJ_Triax constructor. Does not touch the device; see `connect()`.

        Args:
            model (str, optional): Instrument model, e.g. 'Triax 180', 'Triax 190', 'Triax 320' or 'Triax 550'. Defaults to 'Triax 320'.
            torque_boost (bool, optional): Lower the grating motor speed while the turret turns. Defaults to True.
            channel_factory (Callable, optional): Opens the channel for a ConnectionConfig. Defaults to open_channel.

        Raises:
            ConfigError: Raised if `model` is not a supported TRIAX.
        """

        self.model = units.lookup_model(model)
        self.torque_boost = torque_boost
        self.s_name = 'TRIAX'
        self.l_name = 'Horiba Jobin-Yvon %s'%(self.model.name)
        self.state = DeviceState()
        self._channel_factory = channel_factory
        self._channel: Optional[Channel] = None
        self._protocol: Optional[CommandProtocol] = None
        self._lock = RLock()

    def short_name(self):
        return self.s_name

    def long_name(self):
        return self.l_name

    def is_connected(self) -> bool:
        return self.state.connected

    def is_initialized(self) -> bool:
        return bool(self.state.motors_initialized)

    # -------------------------------------------------------------------------
    # Connection

    @_operation
    def connect(self, config: ConnectionConfig) -> bool:
        """ Opens the channel and brings the device into remote mode.

        Args:
            config (ConnectionConfig): Serial port or GPIB address of the device.

        Raises:
            ConfigError: Raised if the port cannot be opened.
            HandshakeFailed: Raised if the device does not reach its main program; power-cycle it.

        Returns:
            bool: True if the motors are already initialized, False if `initialize_motors()` is required.
        """

        if self.state.connected:
            log.info('%s already connected.'%(self.l_name))
            return bool(self.state.motors_initialized)

        log.info('Attempting to connect to %s on %s.'%(self.l_name, config.describe()))
        channel = self._channel_factory(config)
        try:
            needs_init = handshake.negotiate(channel)
        except Exception:
            channel.close()
            raise

        self._channel = channel
        self._protocol = CommandProtocol(channel)
        # 'F' straight away keeps the last known initialization state.
        if needs_init:
            initialized = False
        elif self.state.motors_initialized is None:
            initialized = True
        else:
            initialized = self.state.motors_initialized

        self.state = DeviceState(connected=True, motors_initialized=initialized)
        log.info('%s connected; motors %s.'%(self.l_name, 'initialized' if initialized else 'require initialization'))
        return self.state.motors_initialized

    @_operation
    def disconnect(self):
        if self.state.connected:
            log.info('Disconnecting %s.'%(self.l_name))
            self._channel.close()
        self._channel = None
        self._protocol = None
        # Only the motor initialization flag is kept across reconnects.
        self.state = DeviceState(motors_initialized=self.state.motors_initialized)

    def close(self):
        self.disconnect()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()

    def _require_connected(self):
        if not self.state.connected:
            log.error('%s not connected.'%(self.l_name))
            raise StateError('Monochromator not connected.')

    @contextmanager
    def _read_timeout(self, seconds: float):
        previous = self._channel.timeout
        self._channel.timeout = seconds
        try:
            yield
        finally:
            self._channel.timeout = previous

    def _warn_uninitialized(self):
        if not self.state.motors_initialized:
            log.warn('Motors not initialized; reported positions may be wrong.')

    def _torque(self):
        return MotorSpeedProfile(self._protocol)

    def _drain(self):
        # Any reply still in flight is discarded before the channel is reused.
        with self._channel.lock:
            time.sleep(self.DRAIN_DLY)
            self._channel.flush_input()

    def _wait_until_stopped(self, command: str, timeout: float, cancel: Optional[Event]):
        deadline = time.monotonic() + timeout
        while True:
            status = self._protocol.read_status(command)
            if status == STOPPED:
                return
            if cancel is not None and cancel.is_set():
                self._drain()
                log.warn('Motion wait cancelled.')
                raise Timeout('Motion wait cancelled before the motors stopped.')
            if time.monotonic() >= deadline:
                self._drain()
                log.error('Motors still busy after %.1f s (last status %r).'%(timeout, status))
                raise Timeout('Motors still busy after %.1f s.'%(timeout))
            log.debug('Motors busy (%r).'%(status))
            if cancel is not None:
                cancel.wait(self.POLL_DLY)
            else:
                time.sleep(self.POLL_DLY)

    # -------------------------------------------------------------------------
    # Motors

    @_operation
    def initialize_motors(self, timeout: float = INIT_TIMEOUT):
        """ Initializes every motor of the monochromator. Takes at least 80 seconds.

        Skipped if the motors are already known to be initialized.

        Args:
            timeout (float, optional): Seconds to wait for the acknowledgement. Defaults to INIT_TIMEOUT.
        """

        self._require_connected()
        if self.state.motors_initialized:
            log.info('Motors already initialized.')
            return

        log.info('Initializing motors; this takes a while.')
        with self._read_timeout(timeout):
            if self.torque_boost:
                with self._torque():
                    self._protocol.execute(INITIALIZE)
            else:
                self._protocol.execute(INITIALIZE)

        # Initialization re-homes the turret.
        self.state.motors_initialized = True
        self.state.grating_index = None
        self.state.grating_base_factor = None
        log.info('Motors initialized.')

    @_operation
    def set_motor_speed(self, min_hz, max_hz, rise_ms):
        """ Sets the grating motor speed.

        Args:
            min_hz: Minimum frequency in steps per second (recommended 1000).
            max_hz: Maximum frequency in steps per second (recommended 4000).
            rise_ms: Ramp time from minimum to maximum frequency in milliseconds (recommended 250).
        """

        self._require_connected()
        speed = check_motor_speed(min_hz, max_hz, rise_ms)
        set_motor_speed(self._protocol, speed)

    @_operation
    def get_motor_speed(self) -> MotorSpeed:
        self._require_connected()
        return get_motor_speed(self._protocol)

    # -------------------------------------------------------------------------
    # Grating turret

    def _check_grating_index(self, index) -> int:
        if not units.is_number(index) or index != int(index):
            raise RangeError('Turret grating index invalid: %r.'%(index,))
        if index < 0 or index > 2:
            raise RangeError('Turret grating index out of range: %r.'%(index,))
        return int(index)

    def _read_grating_index(self) -> int:
        index = self._protocol.query_number(READ_TURRET)
        if index not in units.GRATINGS:
            log.error('Device reported turret index %r.'%(index))
            raise ProtocolError(READ_TURRET, str(index).encode(), 'Turret index out of range.')
        return int(index)

    def _base_factor(self) -> float:
        if self.state.grating_base_factor is None:
            if self.state.grating_index is None:
                self.state.grating_index = self._read_grating_index()
            self.state.grating_base_factor = units.base_factor_for_index(self.state.grating_index)
        return self.state.grating_base_factor

    @_operation
    def set_grating_index(self, index):
        """ Tells the driver which turret position is in use, without moving anything.

        After a power cycle the device reports index 0 whatever the turret
        position; this avoids a long motor initialization when the real index
        is known.
        """

        index = self._check_grating_index(index)
        self.state.grating_index = index
        self.state.grating_base_factor = units.base_factor_for_index(index)

    @_operation
    def get_grating_index(self) -> int:
        if self.state.grating_index is None:
            self._require_connected()
            self.state.grating_index = self._read_grating_index()
        return self.state.grating_index

    @_operation
    def move_grating_index(self, index, timeout: float = GRATING_TIMEOUT, cancel: Optional[Event] = None):
        """ Turns the turret to grating `index` and waits until it stops.

        Args:
            index (int): Turret position 0, 1 or 2.
            timeout (float, optional): Seconds to wait for the turret to stop. Defaults to GRATING_TIMEOUT.
            cancel (Event, optional): Set to abandon the wait early. Defaults to None.

        Raises:
            RangeError: Raised if `index` is not 0, 1 or 2.
            ProtocolError: Raised if a command is not acknowledged.
            Timeout: Raised if the turret is still busy at the deadline or the wait was cancelled.
        """

        self._require_connected()
        index = self._check_grating_index(index)

        current = self.state.grating_index
        if current is None:
            current = self._read_grating_index()
        log.info('Moving turret from grating %d to grating %d.'%(current, index))
        self._warn_uninitialized()

        if self.torque_boost:
            with self._torque():
                self._protocol.execute(SET_TURRET%(index))
                self._wait_until_stopped(BUSY, timeout, cancel)
        else:
            self._protocol.execute(SET_TURRET%(index))
            self._wait_until_stopped(TURRET_STATUS, timeout, cancel)

        self.state.grating_index = index
        self.state.grating_base_factor = units.base_factor_for_index(index)
        log.info('Turret at grating %d (%d gr/mm).'%(index, units.GRATINGS[index].density))

    @_operation
    def set_grating_base_factor(self, grooves):
        """ Sets the wavelength scale from a groove density in gr/mm. """

        if not units.is_number(grooves):
            raise RangeError('Grating gr/mm invalid: %r.'%(grooves,))
        if grooves <= 60 or grooves >= 3600:
            raise RangeError('Grating gr/mm out of range: %r.'%(grooves,))
        self.state.grating_base_factor = units.grating_base_factor(int(grooves))

    @_operation
    def get_grating_base_factor(self) -> float:
        if self.state.grating_base_factor is None:
            self._require_connected()
        return self._base_factor()

    # -------------------------------------------------------------------------
    # Wavelength

    def _raw_wavelength(self, nm) -> str:
        if not units.is_number(nm):
            raise RangeError('Wavelength value invalid: %r.'%(nm,))
        if self.state.grating_base_factor is None:
            # Rejects what no grating reaches before the turret index is queried.
            self._check_wavelength(nm, units.widest_base_factor())
        factor = self._base_factor()
        self._check_wavelength(nm, factor)
        return units.format_raw(units.wavelength_to_raw(nm, factor))

    def _check_wavelength(self, nm, factor: float):
        if not units.wavelength_in_range(nm, factor, self.model):
            lo, hi = units.wavelength_limits(factor, self.model)
            raise RangeError('Wavelength out of range: %s nm (%.4g to %.4g nm).'%(nm, lo, hi))

    @_operation
    def set_wavelength_position(self, nm):
        """ Declares the current wavelength without moving the grating. """

        self._require_connected()
        raw = self._raw_wavelength(nm)
        self._protocol.execute(SET_WAVELENGTH%(raw))

    @_operation
    def get_wavelength_position(self) -> float:
        self._require_connected()
        factor = self._base_factor()
        raw = self._protocol.query_number(GET_WAVELENGTH)
        return units.raw_to_wavelength(raw, factor)

    @_operation
    def move_to(self, nm):
        """ Moves the grating to wavelength `nm`. """

        self._require_connected()
        raw = self._raw_wavelength(nm)
        log.info('Moving to %s nm (raw %s).'%(nm, raw))
        self._warn_uninitialized()
        self._protocol.execute(MOVE_WAVELENGTH%(raw))

    # -------------------------------------------------------------------------
    # Slits

    def _check_slit(self, slit) -> int:
        if not units.is_number(slit) or slit != int(slit):
            raise RangeError('Slit number index invalid: %r.'%(slit,))
        if slit < 0 or slit > 3:
            raise RangeError('Slit number index out of range: %r.'%(slit,))
        return int(slit)

    @_operation
    def set_slit_motor_speed(self, slit, hz):
        self._require_connected()
        slit = self._check_slit(slit)
        if not units.is_number(hz):
            raise RangeError('Slit motor speed invalid: %r.'%(hz,))
        if hz < SLIT_MIN_SPEED or hz > SLIT_MAX_SPEED:
            raise RangeError('Slit motor speed out of range: %s Hz (%d to %d).'%(hz, SLIT_MIN_SPEED, SLIT_MAX_SPEED))
        self._protocol.execute(SET_SLIT_SPEED%(slit, int(units.round_half_away(hz))))

    @_operation
    def get_slit_motor_speed(self, slit) -> int:
        self._require_connected()
        slit = self._check_slit(slit)
        return int(self._protocol.query_number(GET_SLIT_SPEED%(slit)))

    @_operation
    def set_slit_width(self, slit, width):
        """ Declares the current aperture of `slit` (mm, or 'max') as an absolute motor position. """

        self._require_connected()
        slit = self._check_slit(slit)
        width = units.resolve_width(width)
        self._protocol.execute(SET_SLIT_POSITION%(slit, units.width_to_steps(width)))

    def _read_slit_width(self, slit: int) -> float:
        steps = self._protocol.query_number(GET_SLIT_POSITION%(slit))
        return units.steps_to_width(steps)

    @_operation
    def get_slit_width(self, slit) -> float:
        self._require_connected()
        slit = self._check_slit(slit)
        return self._read_slit_width(slit)

    def _move_slit(self, slit: int, width: float, timeout: float, cancel: Optional[Event]):
        current = self._read_slit_width(slit)
        steps = units.width_to_steps(width - current)
        if steps == 0:
            log.info('Slit %d already at %.2f mm; not moving (0 steps).'%(slit, current))
            return

        log.info('Moving slit %d from %.2f mm to %.2f mm (%d steps).'%(slit, current, width, steps))
        self._warn_uninitialized()
        # A late acknowledgement is still accepted for the estimated travel time.
        travel = abs(steps) / units.SLIT.motor_speed
        with self._read_timeout(self._channel.timeout + travel):
            self._protocol.execute(MOVE_SLIT%(slit, steps))
        self._wait_until_stopped(BUSY, timeout, cancel)

    @_operation
    def move_slit_width(self, slit, width, timeout: float = SLIT_TIMEOUT, cancel: Optional[Event] = None):
        """ Moves `slit` to `width` mm ('max' for the widest aperture) and waits until it stops.

        Args:
            slit (int): Slit number 0 to 3.
            width (float | str): Target aperture in mm, or 'max'.
            timeout (float, optional): Seconds to wait for the slit to stop. Defaults to SLIT_TIMEOUT.
            cancel (Event, optional): Set to abandon the wait early. Defaults to None.
        """

        self._require_connected()
        slit = self._check_slit(slit)
        width = units.resolve_width(width)
        self._move_slit(slit, width, timeout, cancel)

    @_operation
    def set_slit_bandwidth(self, slit, bandwidth, timeout: float = SLIT_TIMEOUT, cancel: Optional[Event] = None):
        """ Moves `slit` to the aperture giving `bandwidth` nm ('max' for the widest). """

        self._require_connected()
        slit = self._check_slit(slit)
        bandwidth = units.resolve_bandwidth(bandwidth, self.model)
        width = min(units.bandwidth_to_width(bandwidth, self.model), units.SLIT.aperture_max)
        self._move_slit(slit, width, timeout, cancel)

    @_operation
    def get_slit_bandwidth(self, slit) -> float:
        self._require_connected()
        slit = self._check_slit(slit)
        return units.width_to_bandwidth(self._read_slit_width(slit), self.model)

    # -------------------------------------------------------------------------
    # Mirrors and shutter

    def _switch(self, command: str, settle: float):
        self._require_connected()
        self._protocol.execute(command, settle=settle)

    @_operation
    def entrance_mirror_side(self):
        self._switch(ENTRANCE_MIRROR_SIDE, self.MIRROR_DLY)

    @_operation
    def entrance_mirror_front(self):
        self._switch(ENTRANCE_MIRROR_FRONT, self.MIRROR_DLY)

    @_operation
    def exit_mirror_side(self):
        self._switch(EXIT_MIRROR_SIDE, self.MIRROR_DLY)

    @_operation
    def exit_mirror_front(self):
        self._switch(EXIT_MIRROR_FRONT, self.MIRROR_DLY)

    @_operation
    def open_shutter(self):
        self._switch(OPEN_SHUTTER, self.SHUTTER_DLY)

    @_operation
    def close_shutter(self):
        self._switch(CLOSE_SHUTTER, self.SHUTTER_DLY)
