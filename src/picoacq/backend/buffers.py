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

# Miscellaneous packages
import numpy as np

# Own packages
from picoacq.backend.pico import RatioMode, OutOfMemory, channelName
from picoacq.config.logging_config import logger

SAMPLE_BYTES = np.dtype(np.int16).itemsize


def buffer_sizes(mode, ratio, n_samples):
    """
    Computes the lengths of the max and min buffers for one channel and one segment.

    Parameters:
        mode (int): RatioMode value.
        ratio (int): Downsampling ratio.
        n_samples (int): Number of raw samples captured.

    Returns:
        tuple: (max_len, min_len).
    """

    if mode == RatioMode.RAW:
        return n_samples, 0

    ratio = max(int(ratio), 1)
    bin_count = n_samples % ratio + n_samples // ratio
    if mode == RatioMode.AGGREGATE:
        return bin_count, bin_count
    if mode in (RatioMode.DECIMATE, RatioMode.AVERAGE):
        return bin_count, 0
    raise ValueError(f"Unsupported downsampling mode {mode}")


class BufferPair:
    """
    Paired int16 buffers registered with the driver for one (segment, channel).

    An empty min buffer is passed to the driver as a null pointer.
    """

    def __init__(self, max_len, min_len):
        self.max = np.zeros(max_len, dtype=np.int16)
        self.min = np.zeros(min_len, dtype=np.int16)

    @property
    def nbytes(self):
        return self.max.nbytes + self.min.nbytes

    def trimmed(self, count):
        """Returns copies holding the first count values of each non-empty buffer."""
        return (self.max[:count].copy(),
                self.min[:count].copy() if len(self.min) else np.zeros(0, dtype=np.int16))

    def __len__(self):
        return len(self.max)


class SegmentedBuffers:
    """
    Buffer pairs of one capture, indexed by (segment, channel).

    Attributes:
        segments (int): Number of segments.
        channels (list): Channels holding a buffer pair in every segment.
        mode (int): RatioMode the buffers were sized for.
        ratio (int): Downsampling ratio the buffers were sized for.
        n_samples (int): Raw samples per segment.
    """

    def __init__(self, segments, channels, mode, ratio, n_samples):
        self.segments = segments
        self.channels = list(channels)
        self.mode = mode
        self.ratio = ratio
        self.n_samples = n_samples
        self.max_len, self.min_len = buffer_sizes(mode, ratio, n_samples)
        self._pairs = {}
        for segment in range(segments):
            for channel in self.channels:
                self._pairs[(segment, channel)] = BufferPair(self.max_len, self.min_len)

    def __getitem__(self, key):
        return self._pairs[key]

    def __iter__(self):
        return iter(sorted(self._pairs.items()))

    def segment(self, segment):
        """Returns {channel: BufferPair} for one segment."""
        return {channel: self._pairs[(segment, channel)] for channel in self.channels}

    @property
    def nbytes(self):
        return sum(pair.nbytes for pair in self._pairs.values())

    @staticmethod
    def required_bytes(segments, n_channels, mode, ratio, n_samples):
        max_len, min_len = buffer_sizes(mode, ratio, n_samples)
        return segments * n_channels * (max_len + min_len) * SAMPLE_BYTES


class BufferPool:
    """
    Allocates segmented buffers within a memory budget.

    Buffers stay accounted until release() is called by the engine once the writer consumed the
    capture records.
    """

    def __init__(self, budget_bytes):
        self.budget_bytes = int(budget_bytes)
        self.allocated_bytes = 0
        self._lock = threading.Lock()
        self._live = {}

    def allocate(self, segments, channels, mode, ratio, n_samples):
        """
        Allocates buffer pairs for every (segment, channel).

        Parameters:
            segments (int): Number of segments.
            channels (list): Enabled channels.
            mode (int): RatioMode value.
            ratio (int): Downsampling ratio.
            n_samples (int): Raw samples per segment.

        Returns:
            SegmentedBuffers: The new buffers.

        Raises:
            OutOfMemory: When the allocation would exceed the budget.
        """

        required = SegmentedBuffers.required_bytes(segments, len(channels), mode, ratio, n_samples)
        with self._lock:
            if self.allocated_bytes + required > self.budget_bytes:
                raise OutOfMemory(f"Allocating {required} bytes for {segments} segment(s) of "
                                  f"{', '.join(channelName(ch) for ch in channels)} exceeds the "
                                  f"budget ({self.allocated_bytes} of {self.budget_bytes} bytes used)")
            try:
                buffers = SegmentedBuffers(segments, channels, mode, ratio, n_samples)
            except MemoryError as exc:
                raise OutOfMemory(f"Host allocation of {required} bytes failed") from exc
            self.allocated_bytes += required
            self._live[id(buffers)] = required

        logger.debug(f'Allocated {required} bytes ({segments} segment(s), {len(channels)} '
                     f'channel(s)), {self.allocated_bytes} bytes in use')
        return buffers

    def release(self, buffers):
        """Returns the memory of buffers to the budget. Releasing twice is a no-op."""
        if buffers is None:
            return
        with self._lock:
            required = self._live.pop(id(buffers), 0)
            self.allocated_bytes -= required
