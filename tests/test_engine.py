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
from picoacq.backend.buffers import BufferPool
from picoacq.backend.channels import ChannelModel
from picoacq.backend.device import DeviceHandle
from picoacq.backend.dummy_scope import DummyDriver
from picoacq.backend.engine import AcquisitionEngine, IDLE, ARMED, DATA_READY
from picoacq.backend.pico import (Channel, ETSMode, ProbeRange, RatioMode, Resolution, Status, Trigger,
                                  ApplicationError, BufferTooLarge, ConfigurationError, EngineBusy, OutOfMemory,
                                  PowerChange, ProtocolError)
from picoacq.backend.records import BLOCK, ETS, RAPID, STREAMING, CaptureDescriptor
from picoacq.backend.timebase import TimebaseSolver
from picoacq.backend.trigger import TriggerBuilder, TriggerSpec
from picoacq.backend.writer import CaptureWriter


def _block(device, channels, interval=0.0, **kwargs):
    desc = CaptureDescriptor(**kwargs)
    desc.timebase, desc.interval, _ = TimebaseSolver(device).solve(interval, channels.channel_flags(),
                                                                   n_samples=desc.samples)
    return desc


def _codes(volts, max_adc, full_scale=2):
    return np.clip(np.rint(volts * max_adc / full_scale), -max_adc, max_adc).astype(np.int16)


# Block

def test_block_immediate(engine, device, channels):
    channels.set_channel(Channel.A, probe_range=ProbeRange.PICO_X1_PROBE_2V)
    desc = _block(device, channels, mode=BLOCK, samples=1000)
    assert desc.timebase == 0

    records = engine.acquire(desc)
    assert len(records) == 1
    record = records[0]
    data = record.channels[Channel.A]
    assert len(data.max) == 1000
    assert len(data.min) == 0
    assert record.overflow == 0
    assert record.trigger_sample == 0
    assert not record.aborted
    assert engine.state == IDLE
    assert engine.pool.allocated_bytes == 0


def test_block_triggered_on_ramp(engine, driver, device, channels):
    channels.set_resolution(Resolution.DR_12BIT)
    channels.set_channel(Channel.A, probe_range=ProbeRange.PICO_X1_PROBE_2V)
    # -2 V to +2 V over 2048 samples, centred at sample 1024
    driver.setSampleWaveform(Channel.A, lambda i: (i - 1024 + 0.5) / 512.0)
    builder = TriggerBuilder(device, channels)
    threshold = builder.threshold_adc(Channel.A, 1.0)
    builder.apply(TriggerSpec.simple(Channel.A, threshold, Trigger.Direction.RISING, hysteresis=2560))

    desc = _block(device, channels, mode=BLOCK, samples=2048, pre_trigger=512)
    record = engine.acquire(desc)[0]
    values = record.channels[Channel.A].max
    assert record.trigger_sample == 512
    assert values[512] > threshold
    assert values[511] <= threshold
    assert np.all(np.diff(values[:1000].astype(np.int32)) >= 0)
    assert record.channels[Channel.A].max_adc == 32767


def test_block_pre_trigger_zero_is_immediate(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = _block(device, channels, mode=BLOCK, samples=500, pre_trigger=0)
    record = engine.acquire(desc)[0]
    assert len(record) == 500
    assert record.trigger_sample == 0


def test_block_aggregate_lengths(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = _block(device, channels, mode=BLOCK, samples=1003, downsample_mode=RatioMode.AGGREGATE,
                  downsample_ratio=8)
    data = engine.acquire(desc)[0].channels[Channel.A]
    assert len(data.max) == len(data.min) == 126
    assert np.all(data.max >= data.min)


def test_block_decimate(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    driver.setSampleWaveform(Channel.A, lambda i: i / 1000.0)
    desc = _block(device, channels, mode=BLOCK, samples=1000, downsample_mode=RatioMode.DECIMATE,
                  downsample_ratio=10)
    record = engine.acquire(desc)[0]
    data = record.channels[Channel.A]
    assert len(data.max) == 100
    np.testing.assert_array_equal(data.max, _codes(np.arange(0, 1000, 10) / 1000.0, device.max_adc))
    assert record.downsample_ratio == 10


def test_block_overflow(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    channels.set_channel(Channel.B)
    driver.setSampleWaveform(Channel.A, lambda i: 3.0)
    desc = _block(device, channels, mode=BLOCK, samples=200)
    record = engine.acquire(desc)[0]
    assert record.overflow == 1
    assert engine.overflow == 1
    assert set(record.channels) == {Channel.A, Channel.B}


def test_block_units(engine, driver, device, channels):
    channels.set_channel(Channel.A, probe_range=ProbeRange.PICO_X1_PROBE_5V)
    driver.setSampleWaveform(Channel.A, lambda i: 2.5)
    desc = _block(device, channels, mode=BLOCK, samples=10)
    values, _ = engine.acquire(desc)[0].channels[Channel.A].to_units()
    np.testing.assert_allclose(values, 2.5, atol=5.0 / device.max_adc)


def test_no_trigger_times_out(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    driver.setSampleWaveform(Channel.A, lambda i: -1.0)
    TriggerBuilder(device, channels).apply(TriggerSpec.simple(Channel.A, 0))
    desc = _block(device, channels, mode=BLOCK, samples=100)
    assert engine.acquire(desc, timeout=0.05) == []
    assert engine.state == IDLE


def test_wait_then_cancel(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    driver.setSampleWaveform(Channel.A, lambda i: -1.0)
    TriggerBuilder(device, channels).apply(TriggerSpec.simple(Channel.A, 0))
    engine.start_block(_block(device, channels, mode=BLOCK, samples=100))
    assert not engine.wait(0.02)
    assert engine.state == ARMED
    engine.cancel()
    assert not engine.wait()
    assert engine.retrieve() == []
    engine.release()
    assert engine.state == IDLE


def test_engine_busy(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = _block(device, channels, mode=BLOCK, samples=100)
    engine.start_block(desc)
    with pytest.raises(EngineBusy):
        engine.start_block(desc)
    assert engine.wait(1.0)
    assert engine.state == DATA_READY
    assert len(engine.retrieve()) == 1
    engine.release()
    assert engine.state == IDLE


def test_retrieve_needs_data(engine):
    with pytest.raises(ApplicationError):
        engine.retrieve()


def test_descriptor_checks(engine, device, channels):
    with pytest.raises(ConfigurationError):
        engine.start_block(CaptureDescriptor(mode=BLOCK, samples=100))
    channels.set_channel(Channel.A)
    with pytest.raises(ConfigurationError):
        engine.start_block(CaptureDescriptor(mode=RAPID, samples=100))
    with pytest.raises(ConfigurationError):
        engine.start_block(CaptureDescriptor(mode=BLOCK, samples=100, pre_trigger=101))
    assert engine.state == IDLE


def test_stop_is_idempotent(engine, device):
    engine.stop()
    engine.stop()
    assert engine.state == IDLE
    device.close()
    device.close()


def test_power_change_is_retried_once(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    driver.setPowerState(Status.PICO_POWER_SUPPLY_NOT_CONNECTED)
    driver.inject('runBlock', Status.PICO_POWER_SUPPLY_NOT_CONNECTED)
    records = engine.acquire(_block(device, channels, mode=BLOCK, samples=100))
    assert len(records) == 1
    assert driver.callLog.count('runBlock') == 2
    assert driver.callLog.count('changePowerSource') == 1


def test_second_power_change_surfaces(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    driver.setPowerState(Status.PICO_POWER_SUPPLY_NOT_CONNECTED)
    driver.inject('runBlock', Status.PICO_POWER_SUPPLY_NOT_CONNECTED, count=2)
    with pytest.raises(PowerChange):
        engine.acquire(_block(device, channels, mode=BLOCK, samples=100))
    assert engine.state == IDLE
    assert engine.pool.allocated_bytes == 0


def test_pool_budget_is_enforced(device, channels):
    channels.set_channel(Channel.A)
    engine = AcquisitionEngine(device, channels, BufferPool(1000), wait_poll_interval=0.001)
    with pytest.raises(OutOfMemory):
        engine.acquire(_block(device, channels, mode=BLOCK, samples=1000))
    assert engine.state == IDLE


# Rapid block

def test_rapid_block(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = _block(device, channels, interval=100e-9, mode=RAPID, samples=1000, captures=10)
    records = engine.acquire(desc)
    assert len(records) == 10
    assert [r.segment_index for r in records] == list(range(10))
    assert records[0].timestamp_reset
    assert records[0].time_since_previous is None
    for previous, record in zip(records[1:], records[2:]):
        assert record.timestamp_counter - previous.timestamp_counter > 0
        assert record.time_since_previous > 0
    assert all(len(r) == 1000 for r in records)
    # memory is split back into one segment
    assert device.driver.segments == 1


def test_rapid_overflow_is_ored(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    channels.set_channel(Channel.B)
    # each capture of 1000 samples sees the signal 11000 samples after the previous one
    driver.setSampleWaveform(Channel.A, lambda i: np.where((i >= 11000) & (i < 22000), 3.0, 0.0))
    driver.setSampleWaveform(Channel.B, lambda i: np.where(i >= 22000, 3.0, 0.0))
    desc = _block(device, channels, mode=RAPID, samples=1000, captures=3)
    records = engine.acquire(desc)
    assert [r.overflow for r in records] == [0, 1, 2]
    assert engine.overflow == 3


def test_rapid_capped_to_device_segments():
    driver = DummyDriver(maxSegments=4, captureDelay=0.001)
    with DeviceHandle(driver) as device:
        device.open()
        channels = ChannelModel(device)
        channels.set_channel(Channel.A)
        engine = AcquisitionEngine(device, channels, BufferPool(64 * 1024 * 1024), wait_poll_interval=0.001)
        records = engine.acquire(_block(device, channels, mode=RAPID, samples=100, captures=10))
        assert len(records) == 4


def test_rapid_segments_too_small():
    driver = DummyDriver(memorySamples=10000, captureDelay=0.001)
    with DeviceHandle(driver) as small:
        small.open()
        small_channels = ChannelModel(small)
        small_channels.set_channel(Channel.A)
        engine = AcquisitionEngine(small, small_channels, BufferPool(64 * 1024 * 1024))
        desc = CaptureDescriptor(mode=RAPID, samples=2000, captures=10)
        with pytest.raises(BufferTooLarge):
            engine.start_rapid(desc)
        assert engine.state == IDLE
        assert driver.segments == 1


def test_rapid_abort_keeps_completed_captures(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    # a pulse in the window of the first two captures only
    driver.setSampleWaveform(Channel.A,
                             lambda i: np.where((i % 11000 >= 100) & (i % 11000 < 200) & (i < 22000), 1.0, -1.0))
    TriggerBuilder(device, channels).apply(TriggerSpec.simple(Channel.A, 0))
    desc = _block(device, channels, mode=RAPID, samples=1000, captures=5)
    records = engine.acquire(desc, timeout=0.2)
    assert len(records) == 2
    assert all(r.aborted for r in records)
    assert engine.state == IDLE


# ETS

def test_ets(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    builder = TriggerBuilder(device, channels)
    builder.apply(TriggerSpec.simple(Channel.A, builder.threshold_adc(Channel.A, 1.0)))
    desc = CaptureDescriptor(mode=ETS, samples=2048, pre_trigger=512, ets_mode=ETSMode.FAST, ets_cycles=20,
                             ets_interleave=4)
    record = engine.acquire(desc)[0]
    times = record.per_sample_time_fs
    assert len(times) == 2048
    assert times.dtype == np.int64
    steps = np.diff(times)
    assert np.all(steps > 0)
    assert len(set(steps.tolist())) > 1
    assert len(record.channels[Channel.A].max) == 2048
    assert record.interval is None
    assert driver.etsMode == ETSMode.OFF


def test_ets_needs_trigger(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = CaptureDescriptor(mode=ETS, samples=100)
    with pytest.raises(ProtocolError):
        engine.acquire(desc)
    assert engine.state == IDLE


def test_ets_not_on_ps6000a(device_6000):
    channels = ChannelModel(device_6000)
    channels.set_channel(Channel.A)
    engine = AcquisitionEngine(device_6000, channels, BufferPool(1024 * 1024))
    with pytest.raises(ConfigurationError):
        engine.start_ets(CaptureDescriptor(mode=ETS, samples=100))
    assert engine.state == IDLE


def test_ets_refused_with_digital_port():
    driver = DummyDriver(variant='5444DMSO', captureDelay=0.001)
    with DeviceHandle(driver) as device:
        device.open()
        channels = ChannelModel(device)
        channels.set_channel(Channel.A)
        channels.set_digital_port(Channel.PORT0)
        engine = AcquisitionEngine(device, channels, BufferPool(1024 * 1024))
        with pytest.raises(ConfigurationError):
            engine.start_ets(CaptureDescriptor(mode=ETS, samples=100))


# Streaming

def _ramp(i):
    return ((i % 2000) - 1000) / 1000.0


def test_streaming_auto_stop(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = CaptureDescriptor(mode=STREAMING, samples=40000, interval=1e-6, buffer_sets=3, buffer_samples=10000)
    records = engine.acquire(desc)
    assert sum(len(r) for r in records) == 40000
    assert sum(1 for r in records if r.auto_stop) == 1
    assert records[-1].auto_stop
    assert engine.auto_stopped
    assert engine.state == IDLE


def test_streaming_is_contiguous(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    driver.setSampleWaveform(Channel.A, _ramp)
    desc = CaptureDescriptor(mode=STREAMING, samples=12000, interval=1e-6, buffer_sets=2, buffer_samples=1000)
    engine.start_streaming(desc)
    records = list(engine.stream())
    expected_start = 0
    for record in records:
        assert record.sample_start == expected_start
        expected_start += len(record)
    assert expected_start == 12000
    values = np.concatenate([r.channels[Channel.A].max for r in records])
    np.testing.assert_array_equal(values, _codes(_ramp(np.arange(12000, dtype=np.float64)), device.max_adc))


def test_streaming_aggregate(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = CaptureDescriptor(mode=STREAMING, samples=10000, interval=1e-6, buffer_samples=1000,
                             downsample_mode=RatioMode.AGGREGATE, downsample_ratio=4)
    records = engine.acquire(desc)
    assert sum(len(r) for r in records) == 2500
    for record in records:
        data = record.channels[Channel.A]
        assert len(data.min) == len(data.max)


def test_streaming_trigger_position(engine, device, channels):
    channels.set_channel(Channel.A)
    TriggerBuilder(device, channels).apply(TriggerSpec.simple(Channel.A, 0))
    desc = CaptureDescriptor(mode=STREAMING, samples=10000, pre_trigger=2000, interval=1e-6, buffer_samples=3000)
    records = engine.acquire(desc)
    triggered = [r for r in records if r.triggered]
    assert len(triggered) == 1
    record = triggered[0]
    assert record.sample_start + record.trigger_sample == 2000


def test_streaming_rotation_and_cancel(engine, driver, device, channels):
    channels.set_channel(Channel.A)
    driver.setSampleWaveform(Channel.A, _ramp)
    desc = CaptureDescriptor(mode=STREAMING, samples=100000, interval=1e-6, buffer_sets=3, buffer_samples=10000,
                             auto_stop=False)
    engine.start_streaming(desc)
    total = 0
    chunks = []
    for record in engine.stream():
        assert record.sample_start == total
        total += len(record)
        chunks.append(record.channels[Channel.A].max)
        if total >= 35000:
            engine.cancel()
    assert total >= 35000
    assert engine.state == IDLE
    assert engine.pool.allocated_bytes == 0
    np.testing.assert_array_equal(np.concatenate(chunks),
                                  _codes(_ramp(np.arange(total, dtype=np.float64)), device.max_adc))


def test_streaming_consumer_leaves(engine, device, channels):
    channels.set_channel(Channel.A)
    desc = CaptureDescriptor(mode=STREAMING, samples=100000, interval=1e-6, auto_stop=False)
    engine.start_streaming(desc)
    records = engine.stream()
    next(records)
    records.close()
    assert engine.state == IDLE


def test_streaming_needs_start(engine):
    with pytest.raises(ApplicationError):
        next(engine.stream())


def test_streaming_with_writer(device, channels):
    from picoacq.backend.writer import MemoryCaptureWriter

    channels.set_channel(Channel.A)
    writer = MemoryCaptureWriter()
    engine = AcquisitionEngine(device, channels, BufferPool(64 * 1024 * 1024), writer)
    desc = CaptureDescriptor(mode=STREAMING, samples=5000, interval=1e-6, buffer_samples=1000)
    records = engine.acquire(desc)
    assert len(writer.records) == len(records)
    assert len(writer.samples(Channel.A)) == 5000


class _FullDiskWriter(CaptureWriter):
    def write(self, record):
        raise OSError(28, 'No space left on device')


def test_streaming_writer_error_stops_the_unit(driver, device, channels):
    channels.set_channel(Channel.A)
    pool = BufferPool(64 * 1024 * 1024)
    engine = AcquisitionEngine(device, channels, pool, _FullDiskWriter(), wait_poll_interval=0.001)
    desc = CaptureDescriptor(mode=STREAMING, samples=5000, interval=1e-6, buffer_samples=1000)
    stops = driver.callLog.count('stop')
    with pytest.raises(OSError):
        engine.acquire(desc)
    assert engine.state == IDLE
    assert pool.allocated_bytes == 0
    assert driver.callLog.count('stop') > stops
    assert driver._streaming is None or driver._streaming["stopped"]

    engine.writer = None
    records = engine.acquire(_block(device, channels, samples=100))
    assert len(records) == 1
