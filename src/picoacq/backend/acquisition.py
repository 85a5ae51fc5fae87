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
import os

# Miscellaneous packages

# Own packages
from picoacq.backend import pico
from picoacq.backend.buffers import BufferPool
from picoacq.backend.channels import ChannelModel
from picoacq.backend.device import DeviceHandle
from picoacq.backend.engine import AcquisitionEngine
from picoacq.backend.probes import ProbeInteractionMonitor
from picoacq.backend.records import CaptureDescriptor, ETS, STREAMING
from picoacq.backend.timebase import TimebaseSolver, ROUND_FASTER
from picoacq.backend.trigger import TriggerBuilder, TriggerSpec
from picoacq.backend.writer import CsvCaptureWriter
from picoacq.config.config import config_info, channel_section, get_named, save_config
from picoacq.config.logging_config import logger


class Acquisition:
    """
    One configured acquisition session: open the unit, configure channels and trigger, capture
    in the configured mode, hand the records to the writer and close.
    """

    def __init__(self, config=None, writer=None, driver=None):
        """
        Parameters:
            config (ConfigParser): Settings, the packaged acquisition_config.ini by default.
            writer (CaptureWriter): Receives the records, a CsvCaptureWriter from [Acquisition.Output]
                by default.
            driver (Driver): Driver to use instead of the one named in [Acquisition.Device].
        """

        self.config = config if config is not None else config_info
        self.equipment = {
            "driver": driver,
            "device": None,
            "engine": None
            }
        self.channels = None
        self.trigger = None
        self.solver = None
        self.probes = ProbeInteractionMonitor()
        self.writer = writer
        self.descriptor = None

        self._init_scope()
        try:
            self._init_channels()
            self._init_trigger()
            self.descriptor = self._init_descriptor()
            self._init_engine()
        except Exception:
            self.equipment["device"].close()
            raise

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close_all()
        return False

####################################################################
    def _init_scope(self):
        """Opens the unit described in [Acquisition.Device]."""

        device_config = self.config['Acquisition.Device']
        if self.equipment["driver"] is None:
            self.equipment["driver"] = pico.getDriver(device_config['Family'],
                                                      emulates=device_config.get('Dummy emulates') or None)

        device = DeviceHandle(self.equipment["driver"])
        resolution = pico.Resolution.fromBits(device_config.getint('Resolution'))
        device.open(device_config.get('Serial') or None, resolution)
        self.equipment["device"] = device
        logger.info(f'Unit info: {device.info}')

        if self.probes.attach(device):
            logger.debug('Probe interaction callback registered')
        self.channels = ChannelModel(device, self.probes)
        self.solver = TimebaseSolver(device)

    def _init_channels(self):
        """Configures every analog channel that has an [Acquisition.Channel.<X>] section."""

        for channel in self.channels.model.analogChannels():
            section = channel_section(pico.channelName(channel))
            if not self.config.has_section(section):
                continue
            channel_config = self.config[section]
            if not channel_config.getboolean('Enabled'):
                continue
            self.channels.set_channel(
                channel,
                coupling=get_named(channel_config, 'Coupling', pico.Coupling.NUMBER),
                probe_range=pico.ProbeRange.fromName(channel_config['Range']),
                analogue_offset=channel_config.getfloat('Analogue offset'),
                bandwidth=get_named(channel_config, 'Bandwidth', pico.BandwidthLimiter.NUMBER, 'FULL'))

    def _init_trigger(self):
        """Applies [Acquisition.Trigger], or clears the trigger when it is disabled."""

        self.trigger = TriggerBuilder(self.equipment["device"], self.channels)
        trigger_config = self.config['Acquisition.Trigger']
        if not trigger_config.getboolean('Enabled'):
            self.trigger.disable()
            return

        source = get_named(trigger_config, 'Source', pico.Channel.NUMBER)
        threshold = self.trigger.threshold_adc(source, trigger_config.getfloat('Threshold'))
        direction = get_named(trigger_config, 'Direction', pico.Trigger.Direction.NAME)
        spec = TriggerSpec.simple(source, threshold, direction,
                                  hysteresis=trigger_config.getint('Hysteresis'),
                                  delay=trigger_config.getint('Delay'),
                                  auto_trigger_us=trigger_config.getint('Auto trigger (us)'))
        self.trigger.apply(spec)
        logger.info(f'Trigger on {pico.channelName(source)} at {trigger_config.getfloat("Threshold")} '
                    f'({threshold} ADC), {trigger_config["Direction"]}')

    def _init_descriptor(self):
        """Builds the CaptureDescriptor of [Acquisition] and solves its timebase."""

        acq = self.config['Acquisition']
        desc = CaptureDescriptor(
            mode=acq['Mode'].strip().lower(),
            samples=acq.getint('Samples'),
            pre_trigger=acq.getint('Pre-trigger samples'),
            interval=acq.getfloat('Sample interval (s)'),
            downsample_mode=get_named(acq, 'Downsample mode', pico.RatioMode.NUMBER, 'RAW'),
            downsample_ratio=acq.getint('Downsample ratio'),
            captures=acq.getint('Captures'),
            segments=acq.getint('Segments'),
            ets_mode=get_named(acq, 'ETS mode', pico.ETSMode.NUMBER, 'OFF'),
            ets_cycles=acq.getint('ETS cycles'),
            ets_interleave=acq.getint('ETS interleave'),
            buffer_sets=acq.getint('Streaming buffer sets'),
            buffer_samples=acq.getint('Streaming buffer samples'),
            auto_stop=acq.getboolean('Auto stop'),
            poll_fraction=acq.getfloat('Streaming poll fraction'))
        rounding = acq.get('Rounding', ROUND_FASTER).strip().lower()

        flags = self.channels.channel_flags()
        if desc.mode == STREAMING:
            if desc.interval <= 0:
                desc.interval = self.solver.minimum(flags, self.channels.resolution)[1]
        elif desc.mode != ETS:
            desc.timebase, desc.interval, max_samples = self.solver.solve(desc.interval, flags,
                                                                          n_samples=desc.samples,
                                                                          rounding=rounding)
            logger.info(f'Timebase {desc.timebase}: {desc.interval * 1e9:.3f} ns, '
                        f'{max_samples} samples available')
        desc.validate()
        return desc

    def _init_engine(self):
        budget = self.config['Acquisition.Buffers'].getfloat('Memory budget (MB)') * 1024 * 1024
        if self.writer is None:
            output = self.config['Acquisition.Output']
            self.writer = CsvCaptureWriter(output['Directory'], output['Prefix'],
                                           output.getboolean('Scale to units'))
            save_config(os.path.join(output['Directory'], output['Prefix'] + 'settings.ini'), self.config)
        self.equipment["engine"] = AcquisitionEngine(
            self.equipment["device"], self.channels, BufferPool(budget), self.writer,
            wait_poll_interval=self.config['Acquisition'].getfloat('Wait poll interval (s)'))

####################################################################
    def run(self, timeout=None):
        """
        Captures once with the configured descriptor.

        Returns:
            list: The CaptureRecords handed to the writer.
        """

        if self.probes.poll_changed():
            logger.warning('Probe configuration changed, scaling follows the connected probes')
        records = self.equipment["engine"].acquire(self.descriptor, timeout)
        logger.info(f'{len(records)} record(s) captured, overflow mask '
                    f'{self.equipment["engine"].overflow:#x}')
        return records

    def close_all(self):
        """Stops the engine, closes the unit and the writer."""
        try:
            if self.equipment["engine"] is not None:
                self.equipment["engine"].close()
            elif self.equipment["device"] is not None:
                self.equipment["device"].close()
        finally:
            if self.writer is not None:
                self.writer.close()
