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
import pytest

# Own packages
from picoacq.backend import pico
from picoacq.backend.pico import (Action, Channel, Condition, ProbeRange, RatioMode, Status, StreamingDataInfo,
                                  TimeUnits, Trigger, UnknownProbeRange, Ps5000aDriver, Ps6000aDriver)


class FakeLibrary:
    """
    Stands in for a Pico driver library. Every exported function answers PICO_OK unless a handler
    named after it (without prefix) is defined; calls are recorded in order.
    """

    def __init__(self, prefix):
        self.prefix = prefix
        self.calls = []
        self.buffers = {}
        self.chunks = []
        self.next_value = 0

    def __getattr__(self, name):
        if not name.startswith(self.prefix):
            raise AttributeError(name)
        command = name[len(self.prefix):]
        handler = getattr(self, '_' + command, None)

        def call(*args):
            self.calls.append((command, args))
            if handler is not None:
                return handler(*args)
            return Status.PICO_OK
        return call

    def count(self, command):
        return sum(1 for name, _ in self.calls if name == command)

    def _SetDataBuffers(self, handle, channel, buffer_max, buffer_min, length, *rest):
        self.buffers[channel.value] = (buffer_max, buffer_min, length.value)
        return Status.PICO_OK

    def _GetStreamingLatestValues(self, handle, callback, parameter):
        # (noOfSamples, startIndex, triggerAt, triggered, autoStop), written as a running count
        if self.chunks:
            n_samples, start, trigger_at, triggered, auto_stop = self.chunks.pop(0)
            for buffer_max, _, _ in self.buffers.values():
                if buffer_max is not None:
                    for i in range(n_samples):
                        buffer_max[start + i] = self.next_value + i
            self.next_value += n_samples
            callback(1, n_samples, start, 0, trigger_at, triggered, auto_stop, None)
        return Status.PICO_OK


@pytest.fixture
def library(monkeypatch):
    libraries = {}

    def load(name):
        libraries[name] = FakeLibrary(name)
        return libraries[name]

    monkeypatch.setattr(pico, 'loadLibrary', load)
    return libraries


def _buffer_set(n_samples=1000):
    return np.zeros(n_samples, dtype=np.int16), np.zeros(0, dtype=np.int16)


def _start_streaming(driver, buffer_max, buffer_min):
    driver.setDataBuffers(Channel.A, buffer_max, buffer_min, len(buffer_max), 0, RatioMode.RAW,
                          Action.CLEAR_ALL | Action.ADD)
    status, _ = driver.runStreaming(1, TimeUnits.US, 0, 100000, True, 1, RatioMode.RAW)
    assert status == Status.PICO_OK


def _poll(driver):
    infos = [StreamingDataInfo(Channel.A)]
    status, trigger_info = driver.getStreamingLatestValues(infos)
    return status, infos[0], trigger_info


# ps5000a: streaming callback translated into polled buffer sets

def test_ps5000a_chunk_split_across_rotation(library):
    driver = Ps5000aDriver()
    fake = library['ps5000a']
    first, empty = _buffer_set()
    _start_streaming(driver, first, empty)
    fake.chunks = [(600, 0, 0, 0, 0), (600, 0, 0, 0, 0)]

    status, info, _ = _poll(driver)
    assert status == Status.PICO_OK
    assert (info.startIndex, info.noOfSamples) == (0, 600)

    status, info, _ = _poll(driver)
    assert status == Status.PICO_WAITING_FOR_DATA_BUFFERS
    assert (info.startIndex, info.noOfSamples) == (600, 400)
    np.testing.assert_array_equal(first, np.arange(1000))

    second, empty = _buffer_set()
    driver.setDataBuffers(Channel.A, second, empty, 1000, 0, RatioMode.RAW, Action.ADD)
    status, info, _ = _poll(driver)
    assert status == Status.PICO_OK
    assert (info.startIndex, info.noOfSamples) == (0, 200)
    np.testing.assert_array_equal(second[:200], np.arange(1000, 1200))
    # the carried over samples are delivered without asking the driver again
    assert fake.count('GetStreamingLatestValues') == 2


def test_ps5000a_trigger_position_in_buffer_set(library):
    driver = Ps5000aDriver()
    fake = library['ps5000a']
    _start_streaming(driver, *_buffer_set())
    fake.chunks = [(600, 0, 0, 0, 0), (300, 600, 100, 1, 0)]

    _, _, trigger_info = _poll(driver)
    assert not trigger_info.triggered
    _, info, trigger_info = _poll(driver)
    assert trigger_info.triggered
    assert trigger_info.triggerAt == 700
    assert trigger_info.triggerAt - info.startIndex == 100


def test_ps5000a_trigger_in_carried_over_samples(library):
    driver = Ps5000aDriver()
    fake = library['ps5000a']
    _start_streaming(driver, *_buffer_set())
    fake.chunks = [(600, 0, 0, 0, 0), (600, 0, 500, 1, 0)]

    _poll(driver)
    status, _, trigger_info = _poll(driver)
    assert status == Status.PICO_WAITING_FOR_DATA_BUFFERS
    assert not trigger_info.triggered

    driver.setDataBuffers(Channel.A, *_buffer_set(), 1000, 0, RatioMode.RAW, Action.ADD)
    _, info, trigger_info = _poll(driver)
    assert trigger_info.triggered
    assert (info.startIndex, trigger_info.triggerAt) == (0, 100)


def test_ps5000a_auto_stop_with_partial_chunk(library):
    driver = Ps5000aDriver()
    fake = library['ps5000a']
    _start_streaming(driver, *_buffer_set())
    fake.chunks = [(600, 0, 0, 0, 0), (600, 0, 0, 0, 1)]

    _poll(driver)
    status, _, trigger_info = _poll(driver)
    assert status == Status.PICO_WAITING_FOR_DATA_BUFFERS
    assert not trigger_info.autoStop

    driver.setDataBuffers(Channel.A, *_buffer_set(), 1000, 0, RatioMode.RAW, Action.ADD)
    status, info, trigger_info = _poll(driver)
    assert status == Status.PICO_OK
    assert info.noOfSamples == 200
    assert trigger_info.autoStop


def test_ps5000a_poll_without_samples(library):
    driver = Ps5000aDriver()
    _start_streaming(driver, *_buffer_set())
    status, info, trigger_info = _poll(driver)
    assert status == Status.PICO_OK
    assert info.noOfSamples == 0
    assert not trigger_info.triggered and not trigger_info.autoStop


def test_ps5000a_clear_all_unregisters_every_buffer(library):
    driver = Ps5000aDriver()
    fake = library['ps5000a']
    buffer_a, empty = _buffer_set(100)
    buffer_b, _ = _buffer_set(100)
    driver.setDataBuffers(Channel.A, buffer_a, empty, 100, 0, RatioMode.RAW, Action.ADD)
    driver.setDataBuffers(Channel.B, buffer_b, empty, 100, 0, RatioMode.RAW, Action.ADD)
    assert fake.buffers[Channel.A][0] is not None
    assert fake.buffers[Channel.B][2] == 100

    assert driver.setDataBuffers(Channel.A, None, None, 0, 0, RatioMode.RAW, Action.CLEAR_ALL) == Status.PICO_OK
    assert fake.buffers[Channel.A] == (None, None, 0)
    assert fake.buffers[Channel.B] == (None, None, 0)
    assert driver._registered == {}
    assert driver._appBuffers == {}


def test_ps5000a_probe_ranges(library):
    driver = Ps5000aDriver()
    assert driver._deviceRange(ProbeRange.PICO_X1_PROBE_20V) == ProbeRange.PICO_X1_PROBE_20V
    # a x10 probe is the x1 range ten times smaller at the input
    assert driver._deviceRange(ProbeRange.PICO_X10_PROBE_1V) == 3
    with pytest.raises(UnknownProbeRange):
        driver._deviceRange(999999)


# ps6000a: structures and buffer actions

def test_ps6000a_set_data_buffers_arguments(library):
    driver = Ps6000aDriver()
    fake = library['ps6000a']
    buffer_max, buffer_min = _buffer_set(100)
    driver.setDataBuffers(Channel.B, buffer_max, buffer_min, 100, 3, RatioMode.RAW, Action.CLEAR_ALL | Action.ADD)
    _, args = fake.calls[-1]
    assert args[1].value == Channel.B
    assert args[3] is None
    assert args[6].value == 3
    assert args[7].value == 0x80000000
    assert args[8].value == Action.CLEAR_ALL | Action.ADD


def test_ps6000a_streaming_structures(library):
    driver = Ps6000aDriver()
    fake = library['ps6000a']

    def latest_values(handle, infos, count, trigger):
        assert count.value == 2
        assert infos[0].mode == Ps6000aDriver.RATIO[RatioMode.AGGREGATE]
        for i in range(count.value):
            infos[i].noOfSamples = 250
            infos[i].startIndex = 750
            infos[i].overflow = i
        trigger._obj.triggerAt = 800
        trigger._obj.triggered = 1
        return Status.PICO_WAITING_FOR_DATA_BUFFERS

    fake._GetStreamingLatestValues = latest_values
    infos = [StreamingDataInfo(Channel.A, RatioMode.AGGREGATE), StreamingDataInfo(Channel.B, RatioMode.AGGREGATE)]
    status, trigger_info = driver.getStreamingLatestValues(infos)
    assert status == Status.PICO_WAITING_FOR_DATA_BUFFERS
    assert [(i.noOfSamples, i.startIndex, i.overflow) for i in infos] == [(250, 750, 0), (250, 750, 1)]
    assert trigger_info.triggered
    assert trigger_info.triggerAt == 800
    assert not trigger_info.autoStop


def test_ps6000a_trigger_conditions(library):
    driver = Ps6000aDriver()
    fake = library['ps6000a']
    driver.setTriggerChannelConditions([Condition(Channel.A), Condition(Channel.C, Trigger.State.FALSE)],
                                       Action.CLEAR_ALL | Action.ADD)
    _, args = fake.calls[-1]
    conditions, count = args[1], args[2]
    assert count.value == 2
    assert (conditions[0].source, conditions[0].condition) == (Channel.A, Trigger.State.TRUE)
    assert (conditions[1].source, conditions[1].condition) == (Channel.C, Trigger.State.FALSE)

    driver.setTriggerChannelConditions([], Action.CLEAR_ALL)
    _, args = fake.calls[-1]
    assert args[1] is None
    assert args[2].value == 0
