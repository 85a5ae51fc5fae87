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
from picoacq.backend.pico import Status, UNIT_INFOS, ETSMode, Action, checkStatus, Resolution, PowerChange
from picoacq.config.logging_config import logger

# Calls issued in polling loops, not logged
_QUIET_CALLS = ('isReady', 'getStreamingLatestValues', 'getNoOfCaptures')


class DeviceHandle:
    """
    Connection to one PicoScope.

    Every driver call goes through this object and is serialized by its lock, so at most one
    driver operation is in flight per device. Non-OK statuses are raised as the PicoError subclass
    returned by Status.exceptionFor(); power source statuses become PowerChange and are cleared with
    acknowledge_power_source().

    Attributes:
        driver (Driver): Driver generation (ctypes or dummy).
        model (ModelSpecification): Capabilities of the unit.
        serial (str): Serial of the open unit.
        resolution (int): Current Resolution.DR_* value.
        info (dict): Unit information, see get_info().
    """

    def __init__(self, driver):
        self.driver = driver
        self.model = driver.model
        self.serial = None
        self.resolution = None
        self.info = {}
        self.is_open = False
        self._max_adc = None
        self._lock = threading.RLock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    def __str__(self):
        return (f"{self.model.family} {self.info.get('PICO_VARIANT_INFO', '')} "
                f"serial {self.serial}, {Resolution.BITS.get(self.resolution, '?')} bits")

    def _call(self, name, *args):
        """Issues one driver call and returns (status, outputs)."""
        with self._lock:
            result = getattr(self.driver, name)(*args)
        if isinstance(result, tuple):
            status, outputs = result[0], result[1:]
        else:
            status, outputs = result, ()
        if name not in _QUIET_CALLS:
            logger.debug(f'{name} -> {Status.name(status)}')
        return status, outputs

    def _check(self, name, *args):
        """Issues one driver call, raises on a non-OK status and returns the outputs."""
        status, outputs = self._call(name, *args)
        checkStatus(status, f"{name}(): ")
        if len(outputs) == 1:
            return outputs[0]
        return outputs

    # Unit

    def enumerate(self):
        """
        Lists the units available to the driver.

        Returns:
            set: Serial strings.
        """

        return set(self._check('enumerateUnits'))

    def open(self, serial=None, resolution=None):
        """
        Opens the named unit, or the first one found.

        Power source statuses returned by the driver are acknowledged once. ETS and every trigger
        setting are cleared so nothing from an earlier session leaks into the next capture.

        Parameters:
            serial (str): Serial of the unit, None for the first one.
            resolution (int): Resolution.DR_* value, None for the model default.
        """

        if self.is_open:
            return
        if resolution is None:
            resolution = self.model.defaultResolution
        status, _ = self._call('openUnit', serial, resolution)
        if status in Status.POWER_STATES:
            logger.warning(f'Power source reported on open: {Status.message(status)}')
            self.acknowledge_power_source(status)
        else:
            checkStatus(status, "openUnit(): ")

        self.is_open = True
        self.resolution = resolution
        self._max_adc = None
        self.info = self.get_info()
        self.serial = self.info.get('PICO_BATCH_AND_SERIAL', serial)
        if 'PICO_VARIANT_INFO' in self.info:
            self.model.updateFromVariant(self.info['PICO_VARIANT_INFO'])
        self.model.maxSegments = self.get_max_segments()

        if self.model.hasETS:
            self.set_ets(ETSMode.OFF, 0, 0)
        self.reset_trigger()
        logger.info(f'Opened {self}')

    def acknowledge_power_source(self, status):
        """Accepts the power source change reported by status."""
        logger.warning(f'Acknowledging power source change ({Status.name(status)})')
        self._check('changePowerSource', status)

    def close(self):
        """Stops any capture and closes the unit. Closing twice is a no-op."""
        if not self.is_open:
            return
        try:
            self._call('stop')
        finally:
            self._check('closeUnit')
            self.is_open = False
            logger.info(f'Closed {self.model.family} serial {self.serial}')

    def get_info(self):
        """
        Reads the unit information strings.

        Returns:
            dict: PICO_INFO name -> value, for every piece of information the driver provides.
        """

        info = {}
        for name, code in UNIT_INFOS.items():
            status, outputs = self._call('getUnitInfo', code)
            if status == Status.PICO_OK:
                info[name] = outputs[0]
        return info

    def get_adc_limits(self, resolution=None):
        """Returns (min_adc, max_adc) at resolution (the current one by default)."""
        if resolution is None:
            resolution = self.resolution
        return self._check('getAdcLimits', resolution)

    @property
    def max_adc(self):
        """Maximum ADC code at the current resolution."""
        if self._max_adc is None:
            self._max_adc = self.get_adc_limits()[1]
        return self._max_adc

    def get_resolution(self):
        return self._check('getDeviceResolution')

    def set_resolution(self, resolution):
        self._check('setDeviceResolution', resolution)
        self.resolution = resolution
        self._max_adc = None

    # Channels

    def set_channel_on(self, channel, coupling, probe_range, analogue_offset, bandwidth):
        self._check('setChannelOn', channel, coupling, probe_range, analogue_offset, bandwidth)

    def set_channel_off(self, channel):
        self._check('setChannelOff', channel)

    def get_analogue_offset_limits(self, probe_range, coupling):
        """Returns (minimum, maximum) analogue offset in volts for this range and coupling."""
        return self._check('getAnalogueOffsetLimits', probe_range, coupling)

    def set_digital_port_on(self, port, logic_levels, hysteresis):
        self._check('setDigitalPortOn', port, list(logic_levels), hysteresis)

    def set_digital_port_off(self, port):
        self._check('setDigitalPortOff', port)

    # Memory and timebase

    def get_max_segments(self):
        return self._check('getMaxSegments')

    def memory_segments(self, n_segments):
        """Splits the capture memory in n_segments and returns the samples available per segment."""
        return self._check('memorySegments', n_segments)

    def set_no_of_captures(self, n_captures):
        self._check('setNoOfCaptures', n_captures)

    def get_no_of_captures(self):
        return self._check('getNoOfCaptures')

    def get_timebase(self, timebase, n_samples, segment_index=0):
        """Returns (interval in seconds, max samples) of a timebase index."""
        return self._check('getTimebase', timebase, n_samples, segment_index)

    def get_minimum_timebase(self, channel_flags, resolution):
        """Returns (timebase index, interval in seconds) of the fastest timebase."""
        return self._check('getMinimumTimebase', channel_flags, resolution)

    def set_ets(self, mode, cycles, interleave):
        """Configures ETS and returns the effective sample time in picoseconds."""
        return self._check('setEts', mode, cycles, interleave)

    def set_ets_time_buffer(self, buffer):
        self._check('setEtsTimeBuffer', buffer)

    # Capture

    def set_data_buffers(self, channel, buffer_max, buffer_min, n_samples, segment_index, ratio_mode,
                         action=Action.ADD):
        self._check('setDataBuffers', channel, buffer_max, buffer_min, n_samples, segment_index, ratio_mode,
                    action)

    def clear_data_buffers(self, channel, segment_index, ratio_mode):
        self._check('setDataBuffers', channel, None, None, 0, segment_index, ratio_mode, Action.CLEAR_ALL)

    def run_block(self, pre_samples, post_samples, timebase, segment_index, ready_callback):
        """Starts a block capture and returns the time the unit will be busy, in ms."""
        return self._check('runBlock', pre_samples, post_samples, timebase, segment_index, ready_callback)

    def is_ready(self):
        return self._check('isReady')

    def run_streaming(self, sample_interval, time_units, pre_samples, post_samples, auto_stop, ratio, ratio_mode):
        """Starts streaming and returns the interval granted by the driver, in time_units."""
        return self._check('runStreaming', sample_interval, time_units, pre_samples, post_samples, auto_stop,
                           ratio, ratio_mode)

    def get_streaming_latest_values(self, data_infos):
        """
        Polls the driver for streamed data.

        Returns:
            tuple: (status, StreamingTriggerInfo). status is PICO_OK or PICO_WAITING_FOR_DATA_BUFFERS;
            every other status is raised.
        """

        status, outputs = self._call('getStreamingLatestValues', data_infos)
        if status not in (Status.PICO_OK, Status.PICO_WAITING_FOR_DATA_BUFFERS):
            checkStatus(status, "getStreamingLatestValues(): ")
        return status, outputs[0]

    def get_values(self, start_index, n_samples, ratio, ratio_mode, segment_index):
        """Returns (number of values retrieved, overflow bitmask)."""
        return self._check('getValues', start_index, n_samples, ratio, ratio_mode, segment_index)

    def get_values_bulk(self, start_index, n_samples, from_segment, to_segment, ratio, ratio_mode):
        """Returns (number of values retrieved per segment, list of overflow bitmasks)."""
        return self._check('getValuesBulk', start_index, n_samples, from_segment, to_segment, ratio, ratio_mode)

    def get_trigger_info_bulk(self, from_segment, to_segment):
        return self._check('getTriggerInfoBulk', from_segment, to_segment)

    def stop(self):
        self._check('stop')

    # Trigger

    def set_trigger_channel_properties(self, properties, aux_output_enable=0, auto_trigger_us=0):
        self._check('setTriggerChannelProperties', properties, aux_output_enable, auto_trigger_us)

    def set_trigger_channel_conditions(self, conditions, action):
        self._check('setTriggerChannelConditions', conditions, action)

    def set_trigger_channel_directions(self, directions):
        self._check('setTriggerChannelDirections', directions)

    def set_trigger_delay(self, delay):
        self._check('setTriggerDelay', delay)

    def set_pulse_width_qualifier_properties(self, lower, upper, pw_type):
        self._check('setPulseWidthQualifierProperties', lower, upper, pw_type)

    def set_pulse_width_qualifier_conditions(self, conditions, action):
        self._check('setPulseWidthQualifierConditions', conditions, action)

    def set_pulse_width_qualifier_directions(self, directions):
        self._check('setPulseWidthQualifierDirections', directions)

    def set_trigger_digital_port_properties(self, port, directions):
        self._check('setTriggerDigitalPortProperties', port, directions)

    def reset_trigger(self):
        """Clears every trigger setting: no conditions and no directions means no trigger."""
        self.set_trigger_channel_conditions([], Action.CLEAR_ALL)
        self.set_trigger_channel_directions([])
        self.set_trigger_channel_properties([], 0, 0)
        self.set_trigger_delay(0)
        self.set_pulse_width_qualifier_conditions([], Action.CLEAR_ALL)
        self.set_pulse_width_qualifier_directions([])
        for port in self.model.digitalPortList():
            self.set_trigger_digital_port_properties(port, [])

    # Probes

    def set_probe_interaction_callback(self, callback):
        self._check('setProbeInteractionCallback', callback)

    def retry_on_power_change(self, step, *args):
        """
        Runs step(*args); on PowerChange acknowledges once and runs it again.

        A second PowerChange is raised to the caller.
        """

        try:
            return step(*args)
        except PowerChange as exc:
            logger.warning(f'{getattr(step, "__name__", step)} interrupted by a power source change, retrying')
            self.acknowledge_power_source(exc.status)
            return step(*args)
