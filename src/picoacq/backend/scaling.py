# -*- coding: utf-8 -*-
"""
Copyright (c) 2024 Margely Cornelissen, Stein Fekkes (Radboud University) and Erik Dumont (Image
Guided Therapy)

MIT License

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.

**Attribution Notice**:
If you use this kit in your research or project, please include the following attribution:
Margely Cornelissen, Stein Fekkes (Radboud University, Nijmegen, The Netherlands) & Erik Dumont
(Image Guided Therapy, Pessac, France) (2024), Radboud FUS measurement kit (version 0.8),
https://github.com/Donders-Institute/Radboud-FUS-measurement-kit
"""

# Basic packages

# Miscellaneous packages
import numpy as np

# Own packages
from picoacq.backend.pico import ProbeRange


class ProbeScaling:
    """
    Full-scale description of one probe range.

    Attributes:
        probe (int): ProbeRange value.
        text (str): Human readable range name.
        min_scale (float): Value at the negative full-scale ADC code.
        max_scale (float): Value at the positive full-scale ADC code.
        unit (str): Engineering unit of min_scale and max_scale.
    """

    def __init__(self, probe, text, min_scale, max_scale, unit):
        self.probe = probe
        self.text = text
        self.min_scale = min_scale
        self.max_scale = max_scale
        self.unit = unit

    def __repr__(self):
        return f"ProbeScaling({self.text}, {self.min_scale}..{self.max_scale} {self.unit})"


def _family(first, names, scales, unit, prefix=''):
    return [ProbeScaling(first + i, prefix + name, -scale, scale, unit)
            for i, (name, scale) in enumerate(zip(names, scales))]


_VOLT_NAMES = ['10mV', '20mV', '50mV', '100mV', '200mV', '500mV', '1V', '2V', '5V', '10V', '20V', '50V']
_VOLT_SCALES = [0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1, 2, 5, 10, 20, 50]

PROBE_SCALING = (
    _family(ProbeRange.PICO_X1_PROBE_10MV, _VOLT_NAMES, _VOLT_SCALES, 'V')
    + _family(ProbeRange.PICO_X10_PROBE_100MV,
              ['100mV', '200mV', '500mV', '1V', '2V', '5V', '10V', '20V', '50V', '100V', '200V', '500V'],
              [0.1, 0.2, 0.5, 1, 2, 5, 10, 20, 50, 100, 200, 500], 'V', 'x10_')
    + _family(ProbeRange.PICO_D9_BNC_10MV, _VOLT_NAMES, _VOLT_SCALES, 'V', 'D9_BNC_')
    + _family(ProbeRange.PICO_D9_2X_BNC_10MV, _VOLT_NAMES, _VOLT_SCALES, 'V', 'D9_2X_BNC_')
    + _family(ProbeRange.PICO_DIFFERENTIAL_10MV, _VOLT_NAMES[:11], _VOLT_SCALES[:11], 'V', 'DIFFERENTIAL_')
    + _family(ProbeRange.PICO_CURRENT_CLAMP_200A_2kA_1A,
              ['1A', '2A', '5A', '10A', '20A', '50A', '100A', '200A', '500A', '1000A', '2000A'],
              [1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 2000], 'A', 'CURRENT_CLAMP_200A_2kA_')
    + _family(ProbeRange.PICO_CURRENT_CLAMP_40A_100mA,
              ['100mA', '200mA', '500mA', '1A', '2A', '5A', '10A', '20A', '40A'],
              [0.1, 0.2, 0.5, 1, 2, 5, 10, 20, 40], 'A', 'CURRENT_CLAMP_40A_')
    + _family(ProbeRange.PICO_1KV_2_5V,
              ['2.5V', '5V', '12.5V', '25V', '50V', '125V', '500V', '1000V'],
              [2.5, 5, 12.5, 25, 50, 125, 500, 1000], 'V', '1KV_')
    + _family(ProbeRange.PICO_CURRENT_CLAMP_2000ARMS_10A,
              ['10A', '20A', '50A', '100A', '200A', '500A', '1000A', '2000A', '5000A'],
              [10, 20, 50, 100, 200, 500, 1000, 2000, 5000], 'A', 'CURRENT_CLAMP_2000ARMS_')
    + _family(ProbeRange.PICO_CURRENT_CLAMP_100A_2_5A,
              ['2.5A', '5A', '10A', '25A', '50A', '100A'],
              [2.5, 5, 10, 25, 50, 100], 'A', 'CURRENT_CLAMP_100A_')
    + _family(ProbeRange.PICO_CURRENT_CLAMP_60A_2A,
              ['2A', '5A', '10A', '20A', '50A', '60A'],
              [2, 5, 10, 20, 50, 60], 'A', 'CURRENT_CLAMP_60A_')
    + _family(ProbeRange.PICO_CURRENT_CLAMP_60A_V2_0_5A,
              ['0.5A', '1A', '2A', '5A', '10A', '20A', '50A', '60A'],
              [0.5, 1, 2, 5, 10, 20, 50, 60], 'A', 'CURRENT_CLAMP_60A_V2_')
    + _family(ProbeRange.PICO_X10_ACTIVE_PROBE_100MV,
              ['100mV', '200mV', '500mV', '1V', '2V', '5V'],
              [0.1, 0.2, 0.5, 1, 2, 5], 'V', 'X10_ACTIVE_PROBE_')
    + [ProbeScaling(ProbeRange.PICO_CONNECT_PROBE_OFF, 'PicoConnect: Probe Disabled', -1, 1, 'NA')]
)

_SCALING_BY_PROBE = {scaling.probe: scaling for scaling in PROBE_SCALING}

UNKNOWN_SCALING = ProbeScaling(ProbeRange.PICO_X1_PROBE_1V, 'Unknown_Range_Normailising_to_+/-1', -1, 1,
                               'UnitLess')


def get_range_scaling(probe_range):
    """
    Looks up the scaling of a probe range.

    Parameters:
        probe_range (int): ProbeRange value.

    Returns:
        tuple: (ProbeScaling, found). When the range is unknown the unit-less +/-1 scaling is
        returned with found set to False.
    """

    scaling = _SCALING_BY_PROBE.get(probe_range)
    if scaling is None:
        return UNKNOWN_SCALING, False
    return scaling, True


def adc_to_unit(raw, probe_range, max_adc):
    """
    Converts ADC codes to engineering units.

    Parameters:
        raw (int or array-like): ADC codes.
        probe_range (int): ProbeRange value of the channel.
        max_adc (int): Maximum ADC code at the current resolution.

    Returns:
        float or np.ndarray: Values in the unit of the range.
    """

    scaling, _ = get_range_scaling(probe_range)
    if np.isscalar(raw):
        return float(raw) * scaling.max_scale / max_adc
    return np.asarray(raw, dtype=np.float64) * scaling.max_scale / max_adc


def unit_to_adc(value, probe_range, max_adc):
    """
    Converts engineering units to ADC codes, clamped to [-max_adc, max_adc].

    Parameters:
        value (float or array-like): Values in the unit of the range.
        probe_range (int): ProbeRange value of the channel.
        max_adc (int): Maximum ADC code at the current resolution.

    Returns:
        int or np.ndarray: ADC codes.
    """

    scaling, _ = get_range_scaling(probe_range)
    if np.isscalar(value):
        code = int(round(float(value) * max_adc / scaling.max_scale))
        return max(-max_adc, min(max_adc, code))
    codes = np.rint(np.asarray(value, dtype=np.float64) * max_adc / scaling.max_scale)
    return np.clip(codes, -max_adc, max_adc).astype(np.int64)
