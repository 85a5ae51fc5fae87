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
from picoacq.backend.pico import (Action, Channel, ChannelProperties, Condition, Direction, PulseWidth, Trigger,
                                  PicoError, ConfigurationError, TriggerSourceDisabled, PulseWidthBoundsReversed,
                                  channelName)
from picoacq.backend.scaling import unit_to_adc
from picoacq.config.logging_config import logger


class PulseWidthQualifier:
    """
    Timing condition gating the trigger.

    Attributes:
        conditions (list): Lists of Condition, ORed together, resetting the pulse width counter.
        directions (list): Direction of each PWQ source.
        lower (int): Lower bound in samples.
        upper (int): Upper bound in samples.
        pw_type (int): PulseWidth.PW_TYPE_* value.
    """

    def __init__(self, conditions=None, directions=None, lower=0, upper=0, pw_type=PulseWidth.PW_TYPE_NONE):
        self.conditions = conditions if conditions is not None else []
        self.directions = directions if directions is not None else []
        self.lower = lower
        self.upper = upper
        self.pw_type = pw_type


class TriggerSpec:
    """
    Complete trigger configuration.

    Conditions are ANDed within one list and ORed across lists. A spec without conditions and
    without directions is the disabled trigger.

    Attributes:
        properties (list): ChannelProperties of every source, thresholds in ADC counts.
        conditions (list): Lists of Condition.
        directions (list): Direction of every source.
        pwq (PulseWidthQualifier): None when no pulse width qualifier is used.
        delay (int): Samples between the trigger event and the first post-trigger sample.
        auto_trigger_us (int): Force a trigger after this many microseconds, 0 waits forever.
        aux_output_enable (int): Passed to the driver with the properties.
        digital_directions (dict): Digital port -> list of DigitalChannelDirection.
    """

    def __init__(self, properties=None, conditions=None, directions=None, pwq=None, delay=0, auto_trigger_us=0,
                 aux_output_enable=0, digital_directions=None):
        self.properties = properties if properties is not None else []
        self.conditions = conditions if conditions is not None else []
        self.directions = directions if directions is not None else []
        self.pwq = pwq
        self.delay = delay
        self.auto_trigger_us = auto_trigger_us
        self.aux_output_enable = aux_output_enable
        self.digital_directions = digital_directions if digital_directions is not None else {}

    @property
    def enabled(self):
        return bool(self.conditions or self.directions)

    @classmethod
    def disabled(cls):
        return cls()

    @classmethod
    def simple(cls, channel, threshold_adc, direction=Trigger.Direction.RISING, hysteresis=0, delay=0,
               auto_trigger_us=0):
        """Level trigger on one source."""
        return cls(properties=[ChannelProperties(channel, threshold_adc, hysteresis, threshold_adc, hysteresis)],
                   conditions=[[Condition(channel, Trigger.State.TRUE)]],
                   directions=[Direction(channel, direction)],
                   delay=delay, auto_trigger_us=auto_trigger_us)

    @classmethod
    def pulse_width(cls, channel, threshold_adc, direction, lower, upper=0, pw_type=PulseWidth.PW_TYPE_GREATER_THAN,
                    hysteresis=0, auto_trigger_us=0):
        """Level trigger on channel qualified by the width of the pulse that precedes it."""
        pwq = PulseWidthQualifier(conditions=[[Condition(channel, Trigger.State.TRUE)]],
                                  directions=[Direction(channel, _opposite(direction))],
                                  lower=lower, upper=upper, pw_type=pw_type)
        return cls(properties=[ChannelProperties(channel, threshold_adc, hysteresis, threshold_adc, hysteresis)],
                   conditions=[[Condition(channel, Trigger.State.TRUE),
                                Condition(Channel.PULSE_WIDTH_SOURCE, Trigger.State.TRUE)]],
                   directions=[Direction(channel, direction)],
                   pwq=pwq, auto_trigger_us=auto_trigger_us)

    @classmethod
    def drop_out(cls, channel, threshold_adc, timeout_samples, direction=Trigger.Direction.RISING, hysteresis=0,
                 auto_trigger_us=0):
        """Triggers when channel stays without an edge for more than timeout_samples."""
        pwq = PulseWidthQualifier(conditions=[[Condition(channel, Trigger.State.TRUE)]],
                                  directions=[Direction(channel, direction)],
                                  lower=timeout_samples, pw_type=PulseWidth.PW_TYPE_GREATER_THAN)
        return cls(properties=[ChannelProperties(channel, threshold_adc, hysteresis, threshold_adc, hysteresis)],
                   conditions=[[Condition(Channel.PULSE_WIDTH_SOURCE, Trigger.State.TRUE)]],
                   directions=[Direction(channel, direction)],
                   pwq=pwq, auto_trigger_us=auto_trigger_us)


def _opposite(direction):
    return {Trigger.Direction.RISING: Trigger.Direction.FALLING,
            Trigger.Direction.FALLING: Trigger.Direction.RISING,
            Trigger.Direction.ABOVE: Trigger.Direction.BELOW,
            Trigger.Direction.BELOW: Trigger.Direction.ABOVE}.get(direction, direction)


def _referenced(condition_lists):
    """Sources that a list of condition lists actually depends on."""
    return {c.source for conditions in condition_lists for c in conditions if c.state != Trigger.State.DONT_CARE}


class TriggerBuilder:
    """
    Validates a TriggerSpec and applies it to the unit as one operation.

    Attributes:
        active (TriggerSpec): Last spec applied successfully.
    """

    # Sources that never need an enabled channel
    _EXTERNAL_SOURCES = (Channel.EXT, Channel.AUX)

    def __init__(self, device, channels):
        self.device = device
        self.channels = channels
        self.active = TriggerSpec.disabled()

    def threshold_adc(self, channel, value):
        """Converts a threshold in the unit of the channel range to ADC counts."""
        return unit_to_adc(value, self.channels.effective_range(channel), self.device.max_adc)

    def validate(self, spec):
        """
        Checks that every referenced source is usable.

        Raises:
            TriggerSourceDisabled: A condition or direction refers to a channel or port that is off.
            PulseWidthBoundsReversed: The PWQ lower bound exceeds its upper bound.
            ConfigurationError: The pulse width source is used without a qualifier.
        """

        enabled = set(self.channels.enabled_channels())
        ports = set(self.channels.enabled_ports())
        sources = _referenced(spec.conditions)
        sources |= {d.channel for d in spec.directions if d.channel != Channel.PULSE_WIDTH_SOURCE}
        if spec.pwq is not None:
            sources |= _referenced(spec.pwq.conditions)

        for source in sources:
            if source in Channel.ANALOG and source not in enabled:
                raise TriggerSourceDisabled(f"Trigger source {channelName(source)} is not enabled")
            if source == Channel.DIGITAL_SOURCE and not ports:
                raise TriggerSourceDisabled("Digital trigger used without an enabled digital port")
            if source == Channel.PULSE_WIDTH_SOURCE and spec.pwq is None:
                raise ConfigurationError("Pulse width source used without a pulse width qualifier")
        for port, directions in spec.digital_directions.items():
            if directions and port not in ports:
                raise TriggerSourceDisabled(f"Digital trigger on {channelName(port)} which is not enabled")

        if spec.pwq is not None and spec.pwq.pw_type in (PulseWidth.PW_TYPE_IN_RANGE, PulseWidth.PW_TYPE_OUT_OF_RANGE):
            if spec.pwq.lower > spec.pwq.upper:
                raise PulseWidthBoundsReversed(f"Pulse width lower bound {spec.pwq.lower} exceeds upper bound "
                                               f"{spec.pwq.upper}")
        if spec.delay < 0:
            raise ConfigurationError(f"Trigger delay must be positive, got {spec.delay}")

    def _clamped(self, spec):
        max_adc = self.device.max_adc
        spec = copy.deepcopy(spec)
        for prop in spec.properties:
            prop.thresholdUpper = max(-max_adc, min(max_adc, int(prop.thresholdUpper)))
            prop.thresholdLower = max(-max_adc, min(max_adc, int(prop.thresholdLower)))
            prop.upperHysteresis = max(0, int(prop.upperHysteresis))
            prop.lowerHysteresis = max(0, int(prop.lowerHysteresis))
        return spec

    def _set_conditions(self, setter, condition_lists):
        if not condition_lists:
            setter([], Action.CLEAR_ALL)
            return
        for i, conditions in enumerate(condition_lists):
            setter(conditions, Action.CLEAR_ALL | Action.ADD if i == 0 else Action.ADD)

    def apply(self, spec):
        """
        Sends a trigger configuration to the unit.

        The driver calls are issued in a fixed order. If one of them fails the trigger is cleared
        on the unit and the error is raised; the previously active spec is then no longer in effect.

        Parameters:
            spec (TriggerSpec): Configuration to apply.
        """

        self.validate(spec)
        spec = self._clamped(spec)
        pwq = spec.pwq if spec.pwq is not None else PulseWidthQualifier()
        device = self.device

        steps = [
            ('properties', lambda: device.set_trigger_channel_properties(spec.properties, spec.aux_output_enable,
                                                                        spec.auto_trigger_us)),
            ('conditions', lambda: self._set_conditions(device.set_trigger_channel_conditions, spec.conditions)),
            ('directions', lambda: device.set_trigger_channel_directions(spec.directions)),
            ('delay', lambda: device.set_trigger_delay(spec.delay)),
            ('pwq properties', lambda: device.set_pulse_width_qualifier_properties(pwq.lower, pwq.upper,
                                                                                  pwq.pw_type)),
            ('pwq directions', lambda: device.set_pulse_width_qualifier_directions(pwq.directions)),
            ('pwq conditions', lambda: self._set_conditions(device.set_pulse_width_qualifier_conditions,
                                                            pwq.conditions)),
        ]
        for port in device.model.digitalPortList():
            directions = spec.digital_directions.get(port, [])
            steps.append((f'{channelName(port)} directions',
                          lambda port=port, directions=directions: device.set_trigger_digital_port_properties(
                              port, directions)))

        for name, step in steps:
            try:
                step()
            except PicoError:
                logger.error(f'Trigger {name} rejected, clearing the trigger')
                self._revert()
                raise

        self.active = spec
        logger.debug(f'Trigger applied: {len(spec.conditions)} condition list(s), '
                     f'{len(spec.directions)} direction(s), pwq {pwq.pw_type}')

    def _revert(self):
        self.active = TriggerSpec.disabled()
        try:
            self.device.reset_trigger()
        except PicoError as exc:
            logger.error(f'Clearing the trigger failed as well: {exc}')

    def disable(self):
        """Removes every trigger condition, captures then start immediately."""
        self.device.reset_trigger()
        self.active = TriggerSpec.disabled()
