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

# Own packages
from picoacq.backend.channels import ChannelModel
from picoacq.backend.pico import Channel, ProbeRange
from picoacq.backend.probes import ProbeInteractionMonitor


def test_attach_only_when_supported(device, device_6000):
    assert not ProbeInteractionMonitor().attach(device)
    assert ProbeInteractionMonitor().attach(device_6000)


def test_probe_range_drives_scaling(device_6000, driver_6000):
    monitor = ProbeInteractionMonitor()
    monitor.attach(device_6000)
    channels = ChannelModel(device_6000, monitor)
    channels.set_channel(Channel.A, probe_range=ProbeRange.PICO_X1_PROBE_2V)
    assert not monitor.poll_changed()

    driver_6000.connectProbe(Channel.A, ProbeRange.PICO_X10_PROBE_20V)
    assert monitor.poll_changed()
    assert not monitor.poll_changed()
    assert monitor.state_for(Channel.A).connected
    assert monitor.scaling_for(Channel.A) == ProbeRange.PICO_X10_PROBE_20V
    assert channels.effective_range(Channel.A) == ProbeRange.PICO_X10_PROBE_20V
    assert channels.scaling(Channel.A).max_scale == 20
    assert channels.effective_range(Channel.B) == ProbeRange.PICO_X1_PROBE_2V

    driver_6000.connectProbe(Channel.A, ProbeRange.PICO_X10_PROBE_20V, connected=False)
    assert monitor.scaling_for(Channel.A) is None
    assert channels.effective_range(Channel.A) == ProbeRange.PICO_X1_PROBE_2V


def test_unknown_probe_range_is_ignored(device_6000, driver_6000):
    monitor = ProbeInteractionMonitor()
    monitor.attach(device_6000)
    driver_6000.connectProbe(Channel.B, 424242)
    assert monitor.state_for(Channel.B).range_current == 424242
    assert monitor.scaling_for(Channel.B) is None
