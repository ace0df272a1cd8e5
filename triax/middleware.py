#
# @file middleware.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Provides a layer of abstraction between applications and the TRIAX driver, real or dummy.
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
from typing import Optional

from triax.drivers.hj_triax import HJ_Triax
from triax.drivers.triax_sim import TriaxSimulator
from triax.drivers.units import MODELS
from triax.utilities import config as cfg
from triax.utilities import log
from triax.utilities.config import ConnectionConfig

SUPPORTED_MODELS = [m.name for m in MODELS.values()]

def new_monochromator(dummy: bool, model: str = cfg.DEFAULT_MODEL, config: Optional[ConnectionConfig] = None, torque_boost: bool = True, initialize: bool = True) -> HJ_Triax:
    """ Creates and connects a TRIAX monochromator.

    Args:
        dummy (bool): Is this a fake device? If no, it must be connected hardware.
        model (str, optional): Name of the device; i.e., 'Triax 320'. Defaults to 'Triax 320'.
        config (ConnectionConfig, optional): Where the device is attached. Defaults to serial COM1 at 19200 baud.
        torque_boost (bool, optional): Lower the grating motor speed for turret moves. Defaults to True.
        initialize (bool, optional): Initialize the motors if the device requires it. Defaults to True.

    Raises:
        ConfigError: Raised if the model or connection is invalid.
        HandshakeFailed: Raised if the device cannot be brought into remote mode.

    Returns:
        HJ_Triax: The connected controller.
    """

    if config is None:
        config = ConnectionConfig.serial('COM1', cfg.DEFAULT_BAUD_RATE)

    if dummy:
        log.info('Creating %s (DUMMY).'%(model))
        mono = HJ_Triax(model, torque_boost, channel_factory=lambda _config: TriaxSimulator())
        mono.s_name += '_DUMMY'
        mono.l_name += ' (DUMMY)'
    else:
        mono = HJ_Triax(model, torque_boost)

    initialized = mono.connect(config)
    if initialize and not initialized:
        mono.initialize_motors()
    return mono

def from_config_file(dummy: bool, path: str, initialize: bool = True) -> HJ_Triax:
    """ Creates and connects a TRIAX from the settings saved in `path` (created with defaults if missing). """
    settings = cfg.load_config(path)
    return new_monochromator(dummy, settings['model'], settings['connection'], settings['torqueBoost'], initialize)
