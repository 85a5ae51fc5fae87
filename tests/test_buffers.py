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
from picoacq.backend.buffers import BufferPool, SegmentedBuffers, buffer_sizes
from picoacq.backend.downsampling import downsample, output_length
from picoacq.backend.pico import Channel, OutOfMemory, RatioMode


def test_buffer_sizes():
    assert buffer_sizes(RatioMode.RAW, 1, 1000) == (1000, 0)
    assert buffer_sizes(RatioMode.RAW, 8, 1000) == (1000, 0)
    # bin = n % r + n // r
    assert buffer_sizes(RatioMode.AGGREGATE, 8, 1003) == (128, 128)
    assert buffer_sizes(RatioMode.DECIMATE, 10, 1000) == (100, 0)
    assert buffer_sizes(RatioMode.AVERAGE, 7, 100) == (16, 0)


@pytest.mark.parametrize('n, ratio', [(1000, 8), (1003, 8), (10, 3), (7, 7), (1, 4)])
def test_aggregate_buffers_hold_every_bin(n, ratio):
    max_len, min_len = buffer_sizes(RatioMode.AGGREGATE, ratio, n)
    assert max_len == min_len
    assert max_len >= output_length(n, ratio)


def test_segmented_buffers():
    buffers = SegmentedBuffers(3, [Channel.A, Channel.C], RatioMode.AGGREGATE, 4, 100)
    assert len(list(buffers)) == 6
    pairs = buffers.segment(2)
    assert set(pairs) == {Channel.A, Channel.C}
    assert len(pairs[Channel.A].max) == 25
    assert len(pairs[Channel.A].min) == 25
    assert buffers[(1, Channel.C)] is not buffers[(2, Channel.C)]
    assert buffers.nbytes == SegmentedBuffers.required_bytes(3, 2, RatioMode.AGGREGATE, 4, 100)


def test_raw_pair_has_empty_min():
    buffers = SegmentedBuffers(1, [Channel.A], RatioMode.RAW, 1, 50)
    pair = buffers[(0, Channel.A)]
    assert len(pair) == 50
    assert len(pair.min) == 0
    pair.max[:] = np.arange(50)
    values_max, values_min = pair.trimmed(10)
    assert list(values_max) == list(range(10))
    assert len(values_min) == 0


def test_pool_budget():
    pool = BufferPool(10000)
    buffers = pool.allocate(1, [Channel.A], RatioMode.RAW, 1, 4000)
    assert pool.allocated_bytes == 8000
    with pytest.raises(OutOfMemory):
        pool.allocate(1, [Channel.B], RatioMode.RAW, 1, 1001)
    pool.release(buffers)
    assert pool.allocated_bytes == 0
    pool.release(buffers)
    assert pool.allocated_bytes == 0
    pool.allocate(1, [Channel.B], RatioMode.RAW, 1, 5000)


def test_downsample_raw():
    raw = np.arange(-5, 5, dtype=np.int16)
    values_max, values_min = downsample(raw, RatioMode.RAW, 1)
    np.testing.assert_array_equal(values_max, raw)
    assert len(values_min) == 0


def test_downsample_aggregate_keeps_partial_bin():
    raw = np.array([1, 5, -2, 7, 3, -9, 4], dtype=np.int16)
    values_max, values_min = downsample(raw, RatioMode.AGGREGATE, 3)
    np.testing.assert_array_equal(values_max, [5, 7, 4])
    np.testing.assert_array_equal(values_min, [-2, -9, 4])


def test_downsample_decimate_and_average():
    raw = np.array([0, 10, 20, 30, 40, 50, 60], dtype=np.int16)
    values_max, values_min = downsample(raw, RatioMode.DECIMATE, 3)
    np.testing.assert_array_equal(values_max, [0, 30, 60])
    assert len(values_min) == 0
    values_max, values_min = downsample(raw, RatioMode.AVERAGE, 2)
    np.testing.assert_array_equal(values_max, [5, 25, 45, 60])
    assert len(values_min) == 0


@pytest.mark.parametrize('n, ratio', [(1000, 8), (1003, 8), (5, 10)])
def test_aggregate_length_is_ceiling(n, ratio):
    raw = np.zeros(n, dtype=np.int16)
    values_max, values_min = downsample(raw, RatioMode.AGGREGATE, ratio)
    assert len(values_max) == len(values_min) == -(-n // ratio)
