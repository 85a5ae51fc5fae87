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
from picoacq.backend.buffers import BufferPool
from picoacq.backend.channels import ChannelModel
from picoacq.backend.device import DeviceHandle
from picoacq.backend.dummy_scope import DummyDriver
from picoacq.backend.engine import AcquisitionEngine
from picoacq.backend.pico import PicoscopeFamily, getModel


@pytest.fixture
def driver():
    return DummyDriver(captureDelay=0.001, streamingChunk=2500)


@pytest.fixture
def driver_6000():
    return DummyDriver(getModel(PicoscopeFamily.PS6000A), captureDelay=0.001, streamingChunk=2500)


@pytest.fixture
def device(driver):
    handle = DeviceHandle(driver)
    handle.open()
    yield handle
    handle.close()


@pytest.fixture
def device_6000(driver_6000):
    handle = DeviceHandle(driver_6000)
    handle.open()
    yield handle
    handle.close()


@pytest.fixture
def channels(device):
    return ChannelModel(device)


@pytest.fixture
def pool():
    return BufferPool(256 * 1024 * 1024)


@pytest.fixture
def engine(device, channels, pool):
    acquisition_engine = AcquisitionEngine(device, channels, pool, wait_poll_interval=0.001)
    yield acquisition_engine
    acquisition_engine.stop()
