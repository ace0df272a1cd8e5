#
# @file units.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Calibration tables and unit conversions for the TRIAX monochromators.
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
import math as m
from dataclasses import dataclass
from typing import NamedTuple, Union

from triax.drivers.errors import ConfigError, RangeError
from triax.utilities import log

BASE_GRATING = 1200 # gr/mm; wavelengths are expressed relative to this density.

@dataclass(frozen=True)
class DeviceModel:
    name: str
    spectral_dispersion: float # nm of bandwidth per mm of slit, base grating.
    min_limit: float # nm, base grating.
    max_limit: float # nm, base grating.
    base_grating: int = BASE_GRATING

_TRIAX_180_190 = dict(spectral_dispersion=3.53, min_limit=-100, max_limit=1400)

MODELS = {
    'triax180': DeviceModel('Triax 180', **_TRIAX_180_190),
    'triax190': DeviceModel('Triax 190', **_TRIAX_180_190),
    'triax320': DeviceModel('Triax 320', spectral_dispersion=2.64, min_limit=-200, max_limit=1500),
    'triax550': DeviceModel('Triax 550', spectral_dispersion=1.55, min_limit=-200, max_limit=1500),
}

def lookup_model(name: str) -> DeviceModel:
    """ Returns the calibration record for a model name such as 'Triax 320' or 'triax550'. """
    key = name.lower().replace(' ', '') if isinstance(name, str) else None
    if key not in MODELS:
        log.error('Monochromator model invalid: %r.'%(name,))
        raise ConfigError('Monochromator model invalid: %r. Supported: %s.'%(name, ', '.join(d.name for d in MODELS.values())))
    return MODELS[key]

class Grating(NamedTuple):
    density: int # gr/mm
    calibration_nm: float # Rough calibration offset.

# Turret positions, identical on every instrument of the family.
GRATINGS = {
    0: Grating(1200, -10),
    1: Grating(900, -200),
    2: Grating(600, -300),
}

@dataclass(frozen=True)
class SlitGeometry:
    aperture_max: float = 2.24 # mm
    steps_max: int = 1080 # Steps between minimum and maximum aperture.
    steps_per_mm: float = 482.14
    backlash_steps: int = 10 # Not applied by any motion yet.
    motor_speed: int = 300 # Hz, factory default.

SLIT = SlitGeometry()
SLIT_NUMBERS = (0, 1, 2, 3)

Number = Union[int, float]

def round_half_away(val: float, ndigits: int = 0) -> float:
    """ Rounds halves away from zero, as the instrument firmware does. """
    scale = 10 ** ndigits
    return m.copysign(m.floor(abs(val) * scale + 0.5) / scale, val)

def is_number(val) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool) and m.isfinite(val)

def grating_base_factor(density: Number, base: int = BASE_GRATING) -> float:
    return density / base

def base_factor_for_index(index: int) -> float:
    return grating_base_factor(GRATINGS[index].density)

def widest_base_factor() -> float:
    """ Base factor of the coarsest grating on the turret, which has the widest wavelength limits. """
    return min(base_factor_for_index(i) for i in GRATINGS)

def wavelength_to_raw(nm: Number, factor: float) -> float:
    return round_half_away(nm * factor, 4)

def raw_to_wavelength(raw: Number, factor: float) -> float:
    return raw / factor

def wavelength_limits(factor: float, model: DeviceModel) -> tuple:
    return model.min_limit / factor, model.max_limit / factor

def wavelength_in_range(nm: Number, factor: float, model: DeviceModel) -> bool:
    lo, hi = wavelength_limits(factor, model)
    return not (nm > hi or nm < lo)

def format_raw(raw: Number) -> str:
    """ Renders a raw value with at most 4 decimals and no trailing zeros. """
    text = '%.4f'%(raw)
    text = text.rstrip('0').rstrip('.')
    return '0' if text in ('', '-0') else text

def width_to_steps(width_mm: Number) -> int:
    return int(round_half_away(width_mm * SLIT.steps_per_mm))

def steps_to_width(steps: Number) -> float:
    return round_half_away(steps / SLIT.steps_per_mm, 2)

def width_to_bandwidth(width_mm: Number, model: DeviceModel) -> float:
    return width_mm * model.spectral_dispersion

def bandwidth_to_width(bandwidth_nm: Number, model: DeviceModel) -> float:
    return bandwidth_nm / model.spectral_dispersion

def max_bandwidth(model: DeviceModel) -> float:
    return SLIT.aperture_max * model.spectral_dispersion

def _is_max(val) -> bool:
    return isinstance(val, str) and 'max' in val.lower()

def resolve_width(width) -> float:
    """ Resolves 'max' to the maximum aperture and checks the width in mm. """
    if _is_max(width):
        return SLIT.aperture_max
    if not is_number(width):
        raise RangeError('Slit width invalid: %r.'%(width,))
    if width < 0 or width > SLIT.aperture_max:
        raise RangeError('Slit width out of range: %s mm (0 to %s mm).'%(width, SLIT.aperture_max))
    return float(width)

def resolve_bandwidth(bandwidth, model: DeviceModel) -> float:
    """ Resolves 'max' to the widest bandwidth and checks the bandwidth in nm. """
    limit = max_bandwidth(model)
    if _is_max(bandwidth):
        return limit
    if not is_number(bandwidth):
        raise RangeError('Slit bandwidth invalid: %r.'%(bandwidth,))
    if bandwidth < 0 or bandwidth > limit:
        raise RangeError('Slit bandwidth out of range: %s nm (0 to %.4g nm).'%(bandwidth, limit))
    return float(bandwidth)
