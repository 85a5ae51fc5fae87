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
from picoacq.backend.pico import RatioMode


def output_length(n_samples, ratio):
    """Number of output values produced from n_samples, the trailing partial bin included."""
    if ratio <= 1:
        return n_samples
    return -(-n_samples // ratio)


def downsample(raw, mode, ratio):
    """
    Reduces raw ADC codes the way the driver does.

    Parameters:
        raw (np.ndarray): int16 samples.
        mode (int): RatioMode value.
        ratio (int): Number of input samples per output value.

    Returns:
        tuple: (max, min) int16 arrays. min is empty except for AGGREGATE.
    """

    raw = np.asarray(raw, dtype=np.int16)
    empty = np.zeros(0, dtype=np.int16)
    if mode == RatioMode.RAW or (ratio <= 1 and mode != RatioMode.AGGREGATE):
        return raw.copy(), empty

    ratio = max(int(ratio), 1)
    starts = np.arange(0, len(raw), ratio)
    if len(raw) == 0:
        return empty.copy(), empty

    if mode == RatioMode.AGGREGATE:
        return np.maximum.reduceat(raw, starts), np.minimum.reduceat(raw, starts)
    if mode == RatioMode.DECIMATE:
        return raw[starts].copy(), empty
    if mode == RatioMode.AVERAGE:
        sums = np.add.reduceat(raw.astype(np.int64), starts)
        counts = np.diff(np.append(starts, len(raw)))
        return np.rint(sums / counts).astype(np.int16), empty
    raise ValueError(f"Unsupported downsampling mode {mode}")
