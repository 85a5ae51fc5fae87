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
import copy

# Miscellaneous packages

# Own packages
from picoacq.backend.pico import (Coupling, BandwidthLimiter, ProbeRange, Resolution, DigitalPortHysteresis,
                                  MAX_LOGIC_LEVEL, MIN_LOGIC_LEVEL, ConfigurationError,
                                  TooManyChannelsForResolution, UnknownProbeRange, channelName, channelFlag)
from picoacq.backend.scaling import get_range_scaling
from picoacq.config.logging_config import logger


class ChannelSetting:
    """
    Settings of one analog channel.

    Attributes:
        channel (int): Channel.A .. Channel.H.
        enabled (bool): Whether the channel is captured.
        coupling (int): Coupling value.
        probe_range (int): ProbeRange value.
        analogue_offset (float): Offset added to the input, in volts.
        bandwidth (int): BandwidthLimiter value.
    """

    def __init__(self, channel, enabled=False, coupling=Coupling.DC, probe_range=ProbeRange.PICO_X1_PROBE_2V,
                 analogue_offset=0.0, bandwidth=BandwidthLimiter.FULL):
        self.channel = channel
        self.enabled = enabled
        self.coupling = coupling
        self.probe_range = probe_range
        self.analogue_offset = analogue_offset
        self.bandwidth = bandwidth

    def __str__(self):
        state = 'on' if self.enabled else 'off'
        return (f"{channelName(self.channel)} {state} {Coupling.NAME.get(self.coupling, self.coupling)} "
                f"{ProbeRange.name(self.probe_range)} offset {self.analogue_offset} V")


class DigitalPort:
    """
    Settings of one 8-bit digital port (MSO units).

    Attributes:
        port (int): Channel.PORT0 .. Channel.PORT3.
        enabled (bool): Whether the port is captured.
        logic_levels (list): Per-bit threshold in logic-level ADC units.
        hysteresis (int): DigitalPortHysteresis value.
    """

    BITS = 8

    def __init__(self, port, enabled=False, logic_levels=None, hysteresis=DigitalPortHysteresis.NORMAL_100MV):
        self.port = port
        self.enabled = enabled
        self.logic_levels = list(logic_levels) if logic_levels is not None else [0] * self.BITS
        self.hysteresis = hysteresis


def threshold_adc(volts, max_volts):
    """Converts a logic threshold in volts to logic-level ADC units, clamped to the logic range."""
    level = int(round(volts / max_volts * MAX_LOGIC_LEVEL))
    return max(MIN_LOGIC_LEVEL, min(MAX_LOGIC_LEVEL, level))


class ChannelModel:
    """
    Channel and resolution configuration of one unit.

    Setters validate against the unit's capabilities before anything is sent to the driver, and
    only update their state once the driver accepted the change.
    """

    def __init__(self, device, probe_monitor=None):
        self.device = device
        self.model = device.model
        self.probe_monitor = probe_monitor
        self.settings = {ch: ChannelSetting(ch) for ch in self.model.analogChannels()}
        self.ports = {port: DigitalPort(port) for port in self.model.digitalPortList()}

    @property
    def resolution(self):
        return self.device.resolution

    def enabled_channels(self):
        return [ch for ch, setting in sorted(self.settings.items()) if setting.enabled]

    def enabled_ports(self):
        return [port for port, setting in sorted(self.ports.items()) if setting.enabled]

    def channel_flags(self):
        """PICO_CHANNEL_FLAGS of the enabled channels and ports."""
        flags = 0
        for channel in self.enabled_channels() + self.enabled_ports():
            flags |= channelFlag(channel)
        return flags

    def _setting(self, channel):
        if channel not in self.settings:
            raise ConfigurationError(f"{channelName(channel)} is not available on this "
                                     f"{self.model.channelCount}-channel unit")
        return self.settings[channel]

    def set_channel(self, channel, enabled=True, coupling=Coupling.DC, probe_range=ProbeRange.PICO_X1_PROBE_2V,
                    analogue_offset=0.0, bandwidth=BandwidthLimiter.FULL):
        """
        Configures one analog channel.

        Parameters:
            channel (int): Channel.A .. Channel.H.
            enabled (bool): False switches the channel off, the other settings are then kept.
            coupling (int): Coupling value.
            probe_range (int): ProbeRange value.
            analogue_offset (float): Offset in volts.
            bandwidth (int): BandwidthLimiter value.

        Raises:
            TooManyChannelsForResolution: Enabling exceeds the channel count of the resolution.
            UnknownProbeRange: The range is not in the scaling table.
            ConfigurationError: Coupling, bandwidth or offset not supported by the unit.
        """

        current = self._setting(channel)
        if not enabled:
            self.disable(channel)
            return

        if coupling not in self.model.couplings:
            raise ConfigurationError(f"Coupling {Coupling.NAME.get(coupling, coupling)} is not supported "
                                     f"by the {self.model.family}")
        if bandwidth not in self.model.bandwidths:
            raise ConfigurationError(f"Bandwidth limit {BandwidthLimiter.NAME.get(bandwidth, bandwidth)} is not "
                                     f"supported by the {self.model.family}")
        if not get_range_scaling(probe_range)[1]:
            raise UnknownProbeRange(f"Unknown probe range {probe_range} for {channelName(channel)}")

        enabled_after = set(self.enabled_channels()) | {channel}
        allowed = self.model.maxChannels(self.resolution)
        if len(enabled_after) > allowed:
            raise TooManyChannelsForResolution(f"Enabling {channelName(channel)} gives {len(enabled_after)} "
                                               f"channels, {Resolution.inBits(self.resolution)} bits allows "
                                               f"{allowed}")

        if self.model.hasAnalogueOffsetLimits and analogue_offset != 0.0:
            minimum, maximum = self.device.get_analogue_offset_limits(probe_range, coupling)
            if not minimum <= analogue_offset <= maximum:
                raise ConfigurationError(f"Analogue offset {analogue_offset} V of {channelName(channel)} is "
                                         f"outside [{minimum}, {maximum}] V")

        self.device.set_channel_on(channel, coupling, probe_range, analogue_offset, bandwidth)
        current.enabled = True
        current.coupling = coupling
        current.probe_range = probe_range
        current.analogue_offset = analogue_offset
        current.bandwidth = bandwidth
        logger.debug(f'Channel set: {current}')

    def disable(self, channel):
        setting = self._setting(channel)
        self.device.set_channel_off(channel)
        setting.enabled = False

    def set_resolution(self, resolution):
        """
        Changes the resolution of the unit.

        Raises:
            TooManyChannelsForResolution: More channels are enabled than the resolution allows. The
                resolution and the channels are left unchanged.
        """

        allowed = self.model.maxChannels(resolution)
        enabled = self.enabled_channels()
        if len(enabled) > allowed:
            raise TooManyChannelsForResolution(f"{len(enabled)} channels enabled, "
                                               f"{Resolution.inBits(resolution)} bits allows {allowed}")
        self.device.set_resolution(resolution)
        logger.info(f'Resolution set to {Resolution.inBits(resolution)} bits')

    def set_digital_port(self, port, enabled=True, threshold_volts=1.5, max_volts=5.0,
                         hysteresis=DigitalPortHysteresis.NORMAL_100MV):
        """
        Configures one digital port of an MSO unit.

        Parameters:
            port (int): Channel.PORT0 .. Channel.PORT3.
            enabled (bool): Whether the port is captured.
            threshold_volts (float or list): Logic threshold, one value or one per bit.
            max_volts (float): Voltage of the full logic range.
            hysteresis (int): DigitalPortHysteresis value.
        """

        if port not in self.ports:
            raise ConfigurationError(f"{channelName(port)} is not available on this unit")
        setting = self.ports[port]
        if not enabled:
            self.device.set_digital_port_off(port)
            setting.enabled = False
            return

        if isinstance(threshold_volts, (list, tuple)):
            volts = list(threshold_volts)
        else:
            volts = [threshold_volts] * DigitalPort.BITS
        levels = [threshold_adc(v, max_volts) for v in volts]
        self.device.set_digital_port_on(port, levels, hysteresis)
        setting.enabled = True
        setting.logic_levels = levels
        setting.hysteresis = hysteresis

    def effective_range(self, channel):
        """Range used for scaling: the range reported by a connected intelligent probe, if any."""
        setting = self._setting(channel)
        if self.probe_monitor is not None:
            probe_range = self.probe_monitor.scaling_for(channel)
            if probe_range is not None:
                return probe_range
        return setting.probe_range

    def scaling(self, channel):
        """Returns the ProbeScaling of a channel."""
        scaling, found = get_range_scaling(self.effective_range(channel))
        if not found:
            logger.warning(f'Unknown range on {channelName(channel)}, data normalised to +/-1')
        return scaling

    def snapshot(self):
        """Copy of the channel settings, to store alongside captured data."""
        return copy.deepcopy(self.settings)
