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

# Own packages
from picoacq.backend.pico import Status, channelName
from picoacq.backend.scaling import get_range_scaling
from picoacq.config.logging_config import logger


class ProbeState:
    """Latest known state of the intelligent probe on one channel."""

    def __init__(self, channel, connected=False, probe_name=None, requires_power=False, is_powered=False,
                 range_current=None, coupling_current=None, filter_current=0, status=Status.PICO_OK):
        self.channel = channel
        self.connected = connected
        self.probe_name = probe_name
        self.requires_power = requires_power
        self.is_powered = is_powered
        self.range_current = range_current
        self.coupling_current = coupling_current
        self.filter_current = filter_current
        self.status = status

    @classmethod
    def from_interaction(cls, interaction):
        return cls(interaction.channel, interaction.connected, interaction.probeName, interaction.requiresPower,
                   interaction.isPowered, interaction.rangeCurrent, interaction.couplingCurrent,
                   interaction.filterCurrent, interaction.status)


class ProbeInteractionMonitor:
    """
    Keeps track of intelligent probes plugged in and out.

    on_probe_interactions() is called from the driver thread: it only updates the per-channel
    state and raises the changed flag. Scaling of later captures follows scaling_for().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._states = {}
        self._changed = False

    def attach(self, device):
        """Registers the monitor with the driver of device, if the unit supports intelligent probes."""
        if not device.model.hasProbeInteractions:
            return False
        device.set_probe_interaction_callback(self.on_probe_interactions)
        return True

    def on_probe_interactions(self, status, interactions):
        with self._lock:
            for interaction in interactions:
                self._states[interaction.channel] = ProbeState.from_interaction(interaction)
            if interactions:
                self._changed = True

    def state_for(self, channel):
        with self._lock:
            return self._states.get(channel)

    def poll_changed(self):
        """Returns True once after every batch of probe events."""
        with self._lock:
            changed = self._changed
            self._changed = False
        return changed

    def scaling_for(self, channel):
        """
        Returns the range reported by the probe on channel.

        Returns:
            int: ProbeRange value, None when no probe is connected or its range is unknown.
        """

        state = self.state_for(channel)
        if state is None or not state.connected or state.range_current is None:
            return None
        if not get_range_scaling(state.range_current)[1]:
            logger.warning(f'Probe on {channelName(channel)} reports unknown range {state.range_current}')
            return None
        return state.range_current
