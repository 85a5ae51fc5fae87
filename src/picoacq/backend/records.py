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
from picoacq.backend.pico import RatioMode, ETSMode, ConfigurationError, channelName
from picoacq.backend.scaling import adc_to_unit

BLOCK = 'block'
RAPID = 'rapid'
ETS = 'ets'
STREAMING = 'streaming'
MODES = (BLOCK, RAPID, ETS, STREAMING)


class CaptureDescriptor:
    """
    What one acquisition has to capture.

    Attributes:
        mode (str): BLOCK, RAPID, ETS or STREAMING.
        samples (int): Raw samples per capture (pre-trigger included). For streaming the total
            number of samples when auto_stop is set.
        pre_trigger (int): Samples before the trigger event.
        timebase (int): Timebase index (block modes).
        interval (float): Sample interval in seconds, achieved (block modes) or requested (streaming).
        downsample_mode (int): RatioMode value.
        downsample_ratio (int): Raw samples per output value.
        captures (int): Rapid block captures.
        segments (int): Rapid block memory segments, None for one per capture.
        ets_mode (int): ETSMode.FAST or ETSMode.SLOW.
        ets_cycles (int): ETS cycles to collect.
        ets_interleave (int): ETS cycles interleaved per capture.
        buffer_sets (int): Streaming buffer sets rotated through.
        buffer_samples (int): Output values per streaming buffer set.
        auto_stop (bool): Streaming stops after samples.
        poll_fraction (float): Streaming poll delay as a fraction of one buffer set fill time.
    """

    def __init__(self, mode=BLOCK, samples=1000, pre_trigger=0, timebase=0, interval=0.0,
                 downsample_mode=RatioMode.RAW, downsample_ratio=1, captures=1, segments=None,
                 ets_mode=ETSMode.FAST, ets_cycles=20, ets_interleave=4, buffer_sets=3, buffer_samples=10000,
                 auto_stop=True, poll_fraction=0.3):
        self.mode = mode
        self.samples = samples
        self.pre_trigger = pre_trigger
        self.timebase = timebase
        self.interval = interval
        self.downsample_mode = downsample_mode
        self.downsample_ratio = downsample_ratio
        self.captures = captures
        self.segments = segments
        self.ets_mode = ets_mode
        self.ets_cycles = ets_cycles
        self.ets_interleave = ets_interleave
        self.buffer_sets = buffer_sets
        self.buffer_samples = buffer_samples
        self.auto_stop = auto_stop
        self.poll_fraction = poll_fraction

    @property
    def post_trigger(self):
        return self.samples - self.pre_trigger

    @property
    def ratio(self):
        """Ratio passed to the driver: 1 when no downsampling is requested."""
        if self.downsample_mode == RatioMode.RAW:
            return 1
        return self.downsample_ratio

    def validate(self):
        """
        Checks the descriptor on its own, before any driver call.

        Raises:
            ConfigurationError: The combination of values can not be captured.
        """

        if self.mode not in MODES:
            raise ConfigurationError(f"Unknown acquisition mode '{self.mode}'")
        if self.samples < 1:
            raise ConfigurationError(f"At least one sample is needed, got {self.samples}")
        if not 0 <= self.pre_trigger <= self.samples:
            raise ConfigurationError(f"Pre-trigger samples ({self.pre_trigger}) must be within [0, {self.samples}]")
        if self.downsample_mode not in RatioMode.NAME:
            raise ConfigurationError(f"Unknown downsampling mode {self.downsample_mode}")
        if self.downsample_ratio < 1:
            raise ConfigurationError(f"Downsampling ratio must be at least 1, got {self.downsample_ratio}")

        if self.mode == RAPID:
            if self.captures < 1:
                raise ConfigurationError("Rapid block needs at least one capture")
            if self.segments is not None and self.segments < self.captures:
                raise ConfigurationError(f"{self.segments} segments can not hold {self.captures} captures")
        elif self.mode == ETS:
            if self.downsample_mode != RatioMode.RAW:
                raise ConfigurationError("ETS captures can not be downsampled")
            if self.ets_mode == ETSMode.OFF:
                raise ConfigurationError("ETS mode must be FAST or SLOW for an ETS capture")
            if not 1 <= self.ets_interleave <= self.ets_cycles:
                raise ConfigurationError(f"ETS interleave ({self.ets_interleave}) must be within "
                                         f"[1, {self.ets_cycles}]")
        elif self.mode == STREAMING:
            if self.pre_trigger >= self.samples:
                raise ConfigurationError("Streaming needs at least one post-trigger sample")
            if self.buffer_sets < 2:
                raise ConfigurationError(f"Streaming needs at least 2 buffer sets, got {self.buffer_sets}")
            if self.buffer_samples < 1:
                raise ConfigurationError("Streaming buffer sets must hold at least one sample")
            if self.interval <= 0:
                raise ConfigurationError("Streaming needs a sample interval")
            if not 0 < self.poll_fraction <= 1:
                raise ConfigurationError(f"Poll fraction must be within (0, 1], got {self.poll_fraction}")

    def __str__(self):
        return (f"{self.mode} {self.samples} samples ({self.pre_trigger} pre), "
                f"{RatioMode.NAME[self.downsample_mode]} x{self.downsample_ratio}")


class ChannelData:
    """
    Data of one channel in a capture record.

    Attributes:
        channel (int): Channel or digital port.
        max (np.ndarray): int16 values (raw, maximum, decimated or averaged).
        min (np.ndarray): int16 per-bin minimum, empty except for AGGREGATE.
        scaling (ProbeScaling): Range of the channel, None for digital ports.
        max_adc (int): ADC code of the positive full scale.
    """

    def __init__(self, channel, max_values, min_values, scaling, max_adc):
        self.channel = channel
        self.max = max_values
        self.min = min_values
        self.scaling = scaling
        self.max_adc = max_adc

    @property
    def name(self):
        return channelName(self.channel)

    def to_units(self):
        """Returns (max, min) converted to the unit of the range."""
        if self.scaling is None:
            return self.max.astype(np.float64), self.min.astype(np.float64)
        return (adc_to_unit(self.max, self.scaling.probe, self.max_adc),
                adc_to_unit(self.min, self.scaling.probe, self.max_adc))

    def copy(self):
        return ChannelData(self.channel, self.max.copy(), self.min.copy(), self.scaling, self.max_adc)


class CaptureRecord:
    """
    Finished capture handed to the writer.

    Attributes:
        mode (str): BLOCK, RAPID, ETS or STREAMING.
        segment_index (int): Memory segment (block modes) or streaming record number.
        sample_start (int): Index of the first value since the start of the run.
        interval (float): Seconds between two raw samples, None for ETS.
        trigger_sample (int): Index of the trigger event within this record, None when not triggered.
        overflow (int): Bit n is set when channel n went over range.
        channels (dict): channel -> ChannelData.
        downsample_mode (int): RatioMode of the values.
        downsample_ratio (int): Raw samples per value.
        per_sample_time_fs (np.ndarray): ETS only, int64 time of every sample in femtoseconds.
        timestamp_counter (int): Rapid only, trigger time stamp counter of the capture.
        timestamp_reset (bool): Rapid only, the counter was reset at this capture.
        time_since_previous (float): Rapid only, seconds since the previous capture, None for the first.
        triggered (bool): A trigger event was seen.
        auto_stop (bool): Streaming only, the driver stopped after this record.
        aborted (bool): The run was cancelled, the record holds what completed before.
    """

    def __init__(self, mode, segment_index, channels, interval, downsample_mode=RatioMode.RAW, downsample_ratio=1,
                 sample_start=0, trigger_sample=None, overflow=0):
        self.mode = mode
        self.segment_index = segment_index
        self.channels = channels
        self.interval = interval
        self.downsample_mode = downsample_mode
        self.downsample_ratio = downsample_ratio
        self.sample_start = sample_start
        self.trigger_sample = trigger_sample
        self.overflow = overflow
        self.per_sample_time_fs = None
        self.timestamp_counter = None
        self.timestamp_reset = False
        self.time_since_previous = None
        self.triggered = trigger_sample is not None
        self.auto_stop = False
        self.aborted = False

    def __len__(self):
        for data in self.channels.values():
            return len(data.max)
        return 0

    def copy(self):
        """Deep copy of the record, safe to keep after the next capture."""
        record = CaptureRecord(self.mode, self.segment_index, {ch: d.copy() for ch, d in self.channels.items()},
                               self.interval, self.downsample_mode, self.downsample_ratio, self.sample_start,
                               self.trigger_sample, self.overflow)
        if self.per_sample_time_fs is not None:
            record.per_sample_time_fs = self.per_sample_time_fs.copy()
        record.timestamp_counter = self.timestamp_counter
        record.timestamp_reset = self.timestamp_reset
        record.time_since_previous = self.time_since_previous
        record.triggered = self.triggered
        record.auto_stop = self.auto_stop
        record.aborted = self.aborted
        return record

    def times(self):
        """Time of every value in seconds, relative to the trigger event when there is one."""
        if self.per_sample_time_fs is not None:
            return self.per_sample_time_fs.astype(np.float64) * 1e-15
        step = self.interval * self.downsample_ratio
        origin = self.trigger_sample if self.trigger_sample is not None else 0
        return (np.arange(len(self), dtype=np.float64) - origin) * step

    def __str__(self):
        return (f"{self.mode} record {self.segment_index}: {len(self)} values from {self.sample_start}, "
                f"trigger {self.trigger_sample}, overflow {self.overflow:#x}")
