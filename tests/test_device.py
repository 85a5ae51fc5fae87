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
from picoacq.backend.device import DeviceHandle
from picoacq.backend.dummy_scope import DummyDriver
from picoacq.backend.pico import (Channel, Coupling, BandwidthLimiter, ProbeRange, Resolution, RatioMode, Status,
                                  DeviceDisconnected, InvalidTimebase, PowerChange, ProtocolError, getDriver,
                                  PicoscopeFamily, PicoError)


def test_open_reads_unit_info(device):
    assert device.is_open
    assert device.serial == 'DUMMY001'
    assert device.info['PICO_VARIANT_INFO'] == '5444D'
    assert device.model.channelCount == 4
    assert device.model.maxSegments > 0
    assert device.resolution == Resolution.DR_8BIT
    assert 'ps5000a' in str(device)


def test_open_clears_trigger(driver, device):
    assert driver.trigger['conditions'] == []
    assert 'setTriggerChannelConditions' in driver.callLog
    assert driver.etsMode == 0


def test_enumerate(device):
    assert device.enumerate() == {'DUMMY001'}


def test_open_unknown_serial():
    handle = DeviceHandle(DummyDriver())
    with pytest.raises(DeviceDisconnected):
        handle.open('NOPE')
    assert not handle.is_open


def test_open_acknowledges_power_source():
    driver = DummyDriver(captureDelay=0.001)
    driver.setPowerState(Status.PICO_POWER_SUPPLY_NOT_CONNECTED)
    handle = DeviceHandle(driver)
    handle.open()
    assert handle.is_open
    assert driver.callLog.count('changePowerSource') == 1
    handle.close()


def test_close_twice(driver):
    handle = DeviceHandle(driver)
    handle.open()
    handle.close()
    handle.close()
    assert driver.callLog.count('closeUnit') == 1


def test_context_manager_closes(driver):
    with DeviceHandle(driver) as handle:
        handle.open()
    assert not handle.is_open
    assert driver.handle is None


def test_adc_limits_follow_resolution(device):
    assert device.get_adc_limits() == (-32512, 32512)
    assert device.max_adc == 32512
    device.set_resolution(Resolution.DR_12BIT)
    assert device.get_resolution() == Resolution.DR_12BIT
    assert device.max_adc == 32767


def test_driver_errors_are_typed(driver, device):
    driver.inject('setChannelOn', Status.PICO_NOT_RESPONDING)
    with pytest.raises(DeviceDisconnected) as excinfo:
        device.set_channel_on(Channel.A, Coupling.DC, ProbeRange.PICO_X1_PROBE_2V, 0.0, BandwidthLimiter.FULL)
    assert excinfo.value.status == Status.PICO_NOT_RESPONDING
    assert 'setChannelOn' in str(excinfo.value)

    device.set_channel_on(Channel.A, Coupling.DC, ProbeRange.PICO_X1_PROBE_2V, 0.0, BandwidthLimiter.FULL)
    with pytest.raises(InvalidTimebase):
        device.get_timebase(device.model.maxTimeBase + 1, 100)

    driver.inject('setTriggerDelay', Status.PICO_DELAY)
    with pytest.raises(ProtocolError):
        device.set_trigger_delay(10)


def test_data_buffers_registration(driver, device):
    device.set_channel_on(Channel.A, Coupling.DC, ProbeRange.PICO_X1_PROBE_2V, 0.0, BandwidthLimiter.FULL)
    buffer = [0] * 100
    device.set_data_buffers(Channel.A, buffer, None, 100, 0, RatioMode.RAW)
    assert (Channel.A, 0) in driver._buffers
    device.clear_data_buffers(Channel.A, 0, RatioMode.RAW)
    assert driver._buffers == {}


def test_retry_on_power_change(device, driver):
    driver.setPowerState(Status.PICO_POWER_SUPPLY_CONNECTED)
    calls = []

    def step(value):
        calls.append(value)
        if len(calls) == 1:
            raise PowerChange('step(): ', Status.PICO_POWER_SUPPLY_CONNECTED)
        return value * 2

    assert device.retry_on_power_change(step, 21) == 42
    assert calls == [21, 21]
    assert 'changePowerSource' in driver.callLog


def test_retry_on_power_change_raises_second_change(device, driver):
    driver.setPowerState(Status.PICO_POWER_SUPPLY_CONNECTED)

    def step():
        raise PowerChange('step(): ', Status.PICO_POWER_SUPPLY_CONNECTED)

    with pytest.raises(PowerChange):
        device.retry_on_power_change(step)


def test_unplugged_unit():
    driver = DummyDriver()
    handle = DeviceHandle(driver)
    handle.open()
    driver.unplug()
    with pytest.raises(DeviceDisconnected):
        handle.get_resolution()
    with pytest.raises(DeviceDisconnected):
        handle.close()


def test_get_driver():
    assert isinstance(getDriver(PicoscopeFamily.DUMMY), DummyDriver)
    assert getDriver(PicoscopeFamily.DUMMY, PicoscopeFamily.PS6000A).model.family == PicoscopeFamily.PS6000A
    with pytest.raises(PicoError):
        getDriver('ps9999')
