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
import threading
import time

# Miscellaneous packages
import numpy as np

# Own packages
from picoacq.backend.pico import (Status, Action, ETSMode, RatioMode, TimeUnits, StreamingDataInfo, PicoError,
                                  PowerChange, ConfigurationError, EngineBusy, BufferTooLarge, ApplicationError,
                                  channelName)
from picoacq.backend.records import BLOCK, RAPID, ETS, STREAMING, CaptureRecord, ChannelData
from picoacq.config.logging_config import logger

IDLE = 'idle'
ARMED = 'armed'
RUNNING = 'running'
DATA_READY = 'data ready'
DRAINING = 'draining'
ABORTED = 'aborted'


class AcquisitionEngine:
    """
    Runs block, rapid block, ETS and streaming captures on one unit.

    State machine: IDLE -> ARMED (block modes) or RUNNING (streaming) -> DATA_READY -> DRAINING ->
    IDLE, with ABORTED reachable from every non-idle state when the capture is cancelled. The
    driver's ready callback only sets a flag; every driver call is issued by the thread that
    started the capture, except stop() from cancel().

    Block modes:
        engine.start_block(desc); engine.wait(); records = engine.retrieve(); engine.release()

    Streaming:
        engine.start_streaming(desc)
        for record in engine.stream(): ...

    acquire(desc) does either of those and hands the records to the writer.

    Attributes:
        device (DeviceHandle): Open unit.
        channels (ChannelModel): Channel settings of the unit.
        pool (BufferPool): Source of the capture buffers.
        writer (CaptureWriter): Receives every record, None to only return them.
        state (str): Current state.
        overflow (int): OR of the overflow mask of every record of the current capture.
        auto_stopped (bool): Streaming ended because the requested samples were captured.
    """

    def __init__(self, device, channels, pool, writer=None, wait_poll_interval=0.01):
        self.device = device
        self.channels = channels
        self.pool = pool
        self.writer = writer
        self.wait_poll_interval = wait_poll_interval
        self.state = IDLE
        self.overflow = 0
        self.auto_stopped = False

        self._ready = threading.Event()
        self._abort = threading.Event()
        self._callback_status = Status.PICO_OK
        self._ready_callback = self._on_block_ready
        self._desc = None
        self._buffers = None
        self._ets_times = None
        self._capture_channels = []
        self._scalings = {}
        self._max_adc = None
        self._interval = None
        self._captures = 0
        self._segmented = False
        self._ets_on = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    def _on_block_ready(self, status):
        # driver thread: flags only
        if status == Status.PICO_CANCELLED:
            return
        self._callback_status = status
        self._ready.set()

    def _set_state(self, state):
        if state != self.state:
            logger.debug(f'Engine {self.state} -> {state}')
            self.state = state

    # Setup shared by every mode

    def _begin(self, desc, mode):
        if self.state != IDLE:
            raise EngineBusy(f"A {self._desc.mode if self._desc else ''} capture is {self.state}, "
                             f"can not start a {mode} capture")
        desc.validate()
        if desc.mode != mode:
            raise ConfigurationError(f"Descriptor is for a {desc.mode} capture, not {mode}")

        analog = self.channels.enabled_channels()
        ports = self.channels.enabled_ports()
        if not analog and not ports:
            raise ConfigurationError("No channel or digital port is enabled")

        self._desc = desc
        self._capture_channels = analog + ports
        self._scalings = {ch: self.channels.scaling(ch) for ch in analog}
        self._max_adc = self.device.max_adc
        self._ready.clear()
        self._abort.clear()
        self._callback_status = Status.PICO_OK
        self.overflow = 0
        self.auto_stopped = False
        logger.info(f'Starting {desc} on {", ".join(channelName(ch) for ch in self._capture_channels)}')

    def _register(self, segment, action_first=Action.CLEAR_ALL | Action.ADD, buffer_segment=None):
        """Registers the buffer pairs of one segment, the first call replacing any earlier registration."""
        desc = self._desc
        pairs = self._buffers.segment(segment if buffer_segment is None else buffer_segment)
        action = action_first
        for channel in self._capture_channels:
            pair = pairs[channel]
            self.device.set_data_buffers(channel, pair.max, pair.min if len(pair.min) else None, len(pair.max),
                                         segment, desc.downsample_mode, action)
            action = Action.ADD

    def _unregister(self):
        if not self._capture_channels:
            return
        self.device.clear_data_buffers(self._capture_channels[0], 0, self._desc.downsample_mode)

    def _cleanup(self):
        """Returns the unit and the buffers to their idle condition. Raises the first driver error."""
        errors = []
        for step in (self._unregister, self._restore_segments, self._restore_ets):
            try:
                step()
            except PicoError as exc:
                errors.append(exc)
        self.pool.release(self._buffers)
        self._buffers = None
        self._ets_times = None
        self._ready.clear()
        self._set_state(IDLE)
        if errors:
            raise errors[0]

    def _restore_segments(self):
        if self._segmented:
            self._segmented = False
            self.device.set_no_of_captures(1)
            self.device.memory_segments(1)

    def _restore_ets(self):
        if self._ets_on:
            self._ets_on = False
            self.device.set_ets(ETSMode.OFF, 0, 0)

    def _fail(self, exc):
        logger.error(f'{self._desc.mode if self._desc else "Capture"} aborted: {exc}')
        try:
            self.device.stop()
        except PicoError as stop_exc:
            logger.error(f'stop() after failure: {stop_exc}')
        try:
            self._cleanup()
        except PicoError as cleanup_exc:
            logger.error(f'Cleanup after failure: {cleanup_exc}')

    def _run_block(self):
        desc = self._desc
        self._ready.clear()
        self._set_state(ARMED)
        busy_ms = self.device.retry_on_power_change(self.device.run_block, desc.pre_trigger, desc.post_trigger,
                                                    desc.timebase, 0, self._ready_callback)
        logger.debug(f'run_block: unit busy for about {busy_ms} ms')

    # Block

    def start_block(self, desc):
        """
        Arms a single block capture.

        Parameters:
            desc (CaptureDescriptor): mode BLOCK, timebase from the TimebaseSolver.
        """

        self._begin(desc, BLOCK)
        try:
            self._interval, _ = self.device.get_timebase(desc.timebase, desc.samples, 0)
            self._buffers = self.pool.allocate(1, self._capture_channels, desc.downsample_mode, desc.ratio,
                                               desc.samples)
            self._register(0)
            self._run_block()
        except PicoError as exc:
            self._fail(exc)
            raise

    # ETS

    def start_ets(self, desc):
        """
        Arms an equivalent time sampling capture.

        A trigger must be set. The time of every sample is read back from an int64 time buffer.
        """

        self._begin(desc, ETS)
        try:
            if self.channels.enabled_ports():
                raise ConfigurationError("ETS is not available while a digital port is enabled")
            if not self.device.model.hasETS:
                raise ConfigurationError(f"The {self.device.model.family} has no ETS mode")
            sample_ps = self.device.set_ets(desc.ets_mode, desc.ets_cycles, desc.ets_interleave)
            self._ets_on = True
            self._interval = sample_ps * 1e-12
            logger.info(f'ETS {ETSMode.NAME[desc.ets_mode]}: {desc.ets_cycles} cycles, '
                        f'{desc.ets_interleave} interleaved, {sample_ps} ps per sample')

            self._buffers = self.pool.allocate(1, self._capture_channels, RatioMode.RAW, 1, desc.samples)
            self._ets_times = np.zeros(desc.samples, dtype=np.int64)
            self._register(0)
            self.device.set_ets_time_buffer(self._ets_times)
            self._run_block()
        except PicoError as exc:
            self._fail(exc)
            raise

    # Rapid block

    def start_rapid(self, desc):
        """
        Arms a rapid block capture of desc.captures triggers, one memory segment each.

        The unit memory is split in max(segments, captures) segments. Requests above the unit's
        segment count are capped to it.
        """

        self._begin(desc, RAPID)
        try:
            captures = desc.captures
            segments = max(desc.segments or captures, captures)
            max_segments = self.device.model.maxSegments
            if max_segments and segments > max_segments:
                logger.warning(f'{segments} segments requested, the unit has {max_segments}: capturing '
                               f'{min(captures, max_segments)} waveforms')
                segments = max_segments
                captures = min(captures, max_segments)
            self._captures = captures

            max_samples = self.device.memory_segments(segments)
            self._segmented = True
            if desc.samples > max_samples:
                raise BufferTooLarge(f"{desc.samples} samples do not fit in a segment of {max_samples} samples")
            self.device.set_no_of_captures(captures)
            self._interval, _ = self.device.get_timebase(desc.timebase, desc.samples, 0)

            self._buffers = self.pool.allocate(captures, self._capture_channels, desc.downsample_mode, desc.ratio,
                                               desc.samples)
            for segment in range(captures):
                self._register(segment, Action.CLEAR_ALL | Action.ADD if segment == 0 else Action.ADD)
            self._run_block()
        except PicoError as exc:
            self._fail(exc)
            raise

    # Completion

    def wait(self, timeout=None):
        """
        Waits for the capture armed by a start_* call.

        Parameters:
            timeout (float): Seconds to wait, None waits until the capture completes or is cancelled.

        Returns:
            bool: True when data is ready, False when cancelled or timed out (the capture is still
            armed after a time out).
        """

        if self.state == DATA_READY:
            return True
        if self.state != ARMED:
            return False
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._ready.wait(self.wait_poll_interval):
            if self._abort.is_set():
                self._set_state(ABORTED)
                return False
            if deadline is not None and time.monotonic() >= deadline:
                return False

        if self._callback_status != Status.PICO_OK:
            exc = Status.exceptionFor(self._callback_status)("Capture completion: ", self._callback_status)
            self._fail(exc)
            raise exc
        self._set_state(DATA_READY)
        return True

    def cancel(self):
        """Stops the capture in progress. The waiting loop sees it at its next poll."""
        if self.state == IDLE:
            return
        logger.info(f'Cancelling {self._desc.mode} capture')
        self._abort.set()
        self.device.stop()
        if self.state == ARMED:
            self._set_state(ABORTED)

    # Retrieval

    def _channel_data(self, pairs, count, start=0):
        data = {}
        for channel in self._capture_channels:
            pair = pairs[channel]
            data[channel] = ChannelData(channel, pair.max[start:start + count],
                                        pair.min[start:start + count] if len(pair.min) else pair.min[:0],
                                        self._scalings.get(channel), self._max_adc)
        return data

    def _block_record(self, mode, segment, count, overflow):
        desc = self._desc
        record = CaptureRecord(mode, segment, self._channel_data(self._buffers.segment(segment), count),
                               None if mode == ETS else self._interval, desc.downsample_mode, desc.ratio,
                               sample_start=0, trigger_sample=desc.pre_trigger // desc.ratio, overflow=overflow)
        self.overflow |= overflow
        if overflow:
            logger.warning(f'Over range in segment {segment}, mask {overflow:#x}')
        return record

    def retrieve(self):
        """
        Reads the captured data into the engine buffers.

        Returns:
            list: CaptureRecord per segment. After a cancel only the rapid block segments that
            completed are returned, flagged aborted. The arrays belong to the engine until
            release() is called.
        """

        if self.state not in (DATA_READY, ABORTED):
            raise ApplicationError(f"No capture to retrieve, engine is {self.state}")
        aborted = self.state == ABORTED
        self._set_state(DRAINING)
        try:
            if self._desc.mode == RAPID:
                records = self._retrieve_rapid(aborted)
            elif aborted:
                records = []
            else:
                records = [self._retrieve_block()]
        except PicoError as exc:
            self._fail(exc)
            raise
        for record in records:
            record.aborted = aborted
        return records

    def _retrieve_block(self):
        desc = self._desc
        count, overflow = self.device.retry_on_power_change(self.device.get_values, 0, desc.samples, desc.ratio,
                                                            desc.downsample_mode, 0)
        record = self._block_record(desc.mode, 0, count, overflow)
        if desc.mode == ETS:
            record.per_sample_time_fs = self._ets_times[:count].copy()
        return record

    def _retrieve_rapid(self, aborted):
        desc = self._desc
        completed = self._captures
        if aborted:
            completed = min(self.device.get_no_of_captures(), self._captures)
            logger.warning(f'Rapid block cancelled after {completed} of {self._captures} captures')
        if completed == 0:
            return []

        count, overflows = self.device.retry_on_power_change(self.device.get_values_bulk, 0, desc.samples, 0,
                                                             completed - 1, desc.ratio, desc.downsample_mode)
        infos = self.device.get_trigger_info_bulk(0, completed - 1)
        records = []
        previous = None
        for segment in range(completed):
            record = self._block_record(RAPID, segment, count, overflows[segment])
            info = infos[segment]
            record.timestamp_counter = int(info.timeStampCounter)
            record.timestamp_reset = bool(info.status & Status.PICO_DEVICE_TIME_STAMP_RESET)
            if previous is not None and not record.timestamp_reset:
                record.time_since_previous = (record.timestamp_counter - previous) * self._interval
            previous = record.timestamp_counter
            records.append(record)
        return records

    def release(self):
        """Ends the capture once its records are consumed: buffers go back to the pool."""
        if self.state == IDLE:
            return
        self._cleanup()

    # Streaming

    def start_streaming(self, desc):
        """
        Starts streaming into a ring of desc.buffer_sets buffer sets.

        Parameters:
            desc (CaptureDescriptor): mode STREAMING, interval is the requested sample interval.
        """

        self._begin(desc, STREAMING)
        try:
            self._buffers = self.pool.allocate(desc.buffer_sets, self._capture_channels, desc.downsample_mode,
                                               desc.ratio, desc.buffer_samples * desc.ratio)
            self._active_set = 0
            self._register(0, buffer_segment=0)

            value, units = TimeUnits.bestFor(desc.interval)
            granted = self.device.retry_on_power_change(self.device.run_streaming, value, units, desc.pre_trigger,
                                                        desc.post_trigger, desc.auto_stop, desc.ratio,
                                                        desc.downsample_mode)
            self._interval = granted * TimeUnits.SECONDS[units]
            self._poll_delay = desc.poll_fraction * self._interval * desc.ratio * desc.buffer_samples
            self._streamed = 0
            self._records = 0
            self._set_state(RUNNING)
            logger.info(f'Streaming at {self._interval * 1e9:.1f} ns, polling every {self._poll_delay * 1e3:.2f} ms')
        except PicoError as exc:
            self._fail(exc)
            raise

    def _poll(self):
        infos = [StreamingDataInfo(ch, self._desc.downsample_mode) for ch in self._capture_channels]
        try:
            status, trigger_info = self.device.get_streaming_latest_values(infos)
        except PowerChange as exc:
            logger.warning('Power source changed while streaming')
            self.device.acknowledge_power_source(exc.status)
            return None
        return status, infos, trigger_info

    def _rotate(self):
        self._active_set = (self._active_set + 1) % self._desc.buffer_sets
        self._register(0, Action.ADD, buffer_segment=self._active_set)
        logger.debug(f'Streaming into buffer set {self._active_set}')

    def _stream_record(self, infos, trigger_info):
        desc = self._desc
        count = infos[0].noOfSamples
        start = infos[0].startIndex
        data = self._channel_data(self._buffers.segment(self._active_set), count, start)
        overflow = 0
        for info in infos:
            if info.overflow and info.channel in self._scalings:
                overflow |= 1 << info.channel
        trigger_sample = trigger_info.triggerAt - start if trigger_info.triggered else None
        record = CaptureRecord(STREAMING, self._records, {ch: d.copy() for ch, d in data.items()}, self._interval,
                               desc.downsample_mode, desc.ratio, sample_start=self._streamed,
                               trigger_sample=trigger_sample, overflow=overflow)
        record.auto_stop = bool(trigger_info.autoStop)
        self.overflow |= overflow
        self._streamed += count
        self._records += 1
        return record

    def stream(self):
        """
        Polls the driver until auto stop or cancel.

        Yields:
            CaptureRecord: One record per batch of new values, in capture order, each starting
            where the previous one ended. The record arrays are copies.
        """

        if self.state != RUNNING:
            raise ApplicationError(f"Streaming is not running, engine is {self.state}")
        try:
            while not self._abort.is_set():
                self._abort.wait(self._poll_delay)
                if self._abort.is_set():
                    break
                polled = self._poll()
                if polled is None:
                    continue
                status, infos, trigger_info = polled
                if infos[0].noOfSamples > 0:
                    record = self._stream_record(infos, trigger_info)
                    if self.writer is not None:
                        self.writer.write(record)
                    yield record
                if trigger_info.autoStop:
                    self.auto_stopped = True
                    self._set_state(DATA_READY)
                    logger.info(f'Streaming auto stop after {self._streamed} values')
                    break
                if status == Status.PICO_WAITING_FOR_DATA_BUFFERS:
                    self._rotate()
        except GeneratorExit:
            logger.info(f'Streaming consumer left after {self._streamed} values')
            self._abort.set()
        except BaseException as exc:
            # writer errors and interrupts included: the unit stops and the buffers go back to the pool
            self._fail(exc)
            raise

        if self._abort.is_set():
            self._set_state(ABORTED)
            logger.info(f'Streaming cancelled after {self._streamed} values')
        self._set_state(DRAINING)
        self.device.stop()
        self._cleanup()

    # Whole acquisitions

    def acquire(self, desc, timeout=None):
        """
        Runs one capture of any mode from start to release.

        Parameters:
            desc (CaptureDescriptor): What to capture.
            timeout (float): Block modes only, seconds before the capture is cancelled.

        Returns:
            list: The CaptureRecords, also handed to the writer. Records are copies when there
            is no writer.
        """

        if desc.mode == STREAMING:
            self.start_streaming(desc)
            return list(self.stream())

        starters = {BLOCK: self.start_block, ETS: self.start_ets, RAPID: self.start_rapid}
        if desc.mode not in starters:
            raise ConfigurationError(f"Unknown acquisition mode '{desc.mode}'")
        starters[desc.mode](desc)
        if not self.wait(timeout) and self.state == ARMED:
            logger.warning(f'No data after {timeout} s, cancelling')
            self.cancel()
        records = self.retrieve()
        try:
            if self.writer is not None:
                for record in records:
                    self.writer.write(record)
            else:
                records = [record.copy() for record in records]
        finally:
            self.release()
        return records

    def stop(self):
        """Stops and releases whatever is in progress. No-op when idle."""
        if self.state == IDLE:
            return
        self._abort.set()
        try:
            self.device.stop()
        finally:
            self._cleanup()

    def close(self):
        """Stops the engine and closes the unit."""
        try:
            self.stop()
        finally:
            self.device.close()
