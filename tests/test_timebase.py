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
import pytest

# Own packages
from picoacq.backend.channels import ChannelModel
from picoacq.backend.pico import (Channel, Resolution, ConfigurationError, InvalidChannelsForResolution,
                                  InvalidTimebase, channelFlag)
from picoacq.backend.timebase import TimebaseSolver, ROUND_FASTER, ROUND_SLOWER


@pytest.fixture
def solver(device, channels):
    channels.set_channel(Channel.A)
    return TimebaseSolver(device)


def test_minimum(solver):
    assert solver.minimum(channelFlag(Channel.A), Resolution.DR_8BIT) == (0, pytest.approx(1e-9))
    assert solver.minimum(0b1111, Resolution.DR_8BIT) == (2, pytest.approx(4e-9))


def test_minimum_invalid_combination(solver):
    with pytest.raises(InvalidChannelsForResolution):
        solver.minimum(0b11111, Resolution.DR_12BIT)


def test_zero_gives_fastest(solver, channels):
    timebase, interval, max_samples = solver.solve(0, channels.channel_flags())
    assert timebase == 0
    assert interval == pytest.approx(1e-9)
    assert max_samples > 0


def test_exact_interval(solver, channels):
    timebase, interval, _ = solver.solve(8e-9, channels.channel_flags())
    assert timebase == 3
    assert interval == pytest.approx(8e-9)


def test_rounding(solver, channels):
    flags = channels.channel_flags()
    timebase, interval, _ = solver.solve(100e-9, flags, rounding=ROUND_FASTER)
    assert timebase == 14
    assert interval == pytest.approx(96e-9)
    timebase, interval, _ = solver.solve(100e-9, flags, rounding=ROUND_SLOWER)
    assert timebase == 15
    assert interval == pytest.approx(104e-9)


def test_faster_than_fastest(solver, channels):
    flags = channels.channel_flags()
    with pytest.raises(InvalidTimebase):
        solver.solve(0.5e-9, flags, rounding=ROUND_FASTER)
    timebase, _, _ = solver.solve(0.5e-9, flags, rounding=ROUND_SLOWER)
    assert timebase == 0


def test_slow_interval(solver, channels):
    timebase, interval, _ = solver.solve(1.0005e-3, channels.channel_flags())
    assert interval <= 1.0005e-3
    assert solver.interval_of(timebase + 1)[0] > 1.0005e-3


def test_unknown_rounding(solver, channels):
    with pytest.raises(ConfigurationError):
        solver.solve(1e-6, channels.channel_flags(), rounding='nearest')


def test_solver_does_not_change_setup(solver, driver, channels):
    before = len(driver.callLog)
    solver.solve(1e-6, channels.channel_flags())
    calls = set(driver.callLog[before:])
    assert calls <= {'getTimebase', 'getMinimumTimebase'}


def test_ps6000a_table(device_6000):
    channels = ChannelModel(device_6000)
    channels.set_channel(Channel.A)
    solver = TimebaseSolver(device_6000)
    timebase, interval, _ = solver.solve(0.8e-9, channels.channel_flags())
    assert timebase == 2
    assert interval == pytest.approx(0.8e-9)
    timebase, interval, _ = solver.solve(64e-9, channels.channel_flags())
    assert timebase == 14
    assert interval == pytest.approx(64e-9)
