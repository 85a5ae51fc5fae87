# -*- coding: utf-8 -*-
"""
Copyright (c) 2024 Margely Cornelissen (Radboud University) and Erik Dumont (Image Guided Therapy)

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
If you use this software in your project, please include the following attribution:
Margely Cornelissen (Radboud University, Nijmegen, The Netherlands) & Erik Dumont (Image Guided
Therapy, Pessac, France) (2024), Radboud FUS measurement kit, SonoRover One Software (Version 0.8),
https://github.com/MaCuinea/Radboud-FUS-measurement-kit
"""

#-------------------------------------------------------------------------------
# Name:        dummy_scope
# Purpose:     simulated PicoScope answering the driver operation set
#
#-------------------------------------------------------------------------------

"""A PicoScope that only exists in memory.

DummyDriver answers every Driver call with the statuses a real unit returns, so the acquisition
engine can run block, rapid block, ETS and streaming captures without hardware. Signals are
generated from per-channel waveform functions, triggers are evaluated on the generated samples and
faults can be injected call by call.
"""

import copy
import functools
import threading

import numpy as np

from picoacq.backend.pico import (Driver, PicoscopeFamily, Status, Channel, Coupling,
								  ETSMode, RatioMode, Action, Trigger, TimeUnits, ProbeRange, Resolution,
								  ProbeInteraction, TriggerInfo, StreamingTriggerInfo, UNIT_INFOS, getModel)
from picoacq.backend.scaling import get_range_scaling
from picoacq.backend.downsampling import downsample, output_length
from picoacq.config.config import config_info as config


def _faultable (*outputs):
	"""Lets inject() replace the status returned by the decorated call."""
	def decorate (method):
		@functools.wraps(method)
		def wrapper (self, *args, **kwargs):
			status = self._takeFault(method.__name__)
			if status is not None:
				return (status,) + outputs if outputs else status
			return method(self, *args, **kwargs)
		return wrapper
	return decorate


class _Run(object):
	"""Parameters of one block or rapid block run."""
	def __init__ (self, pre, post, interval, segment, captures, callback, ets):
		self.pre = pre
		self.post = post
		self.interval = interval
		self.segment = segment
		self.captures = captures
		self.callback = callback
		self.ets = ets


class DummyDriver(Driver):
	"""
	Simulated unit of the family described by model.

	The sample clock follows the ps5000a timebase table for that family (and for the default
	model); the ps6000a table is used when the model is a ps6000a.
	"""

	MIN_TIMEBASE = {
		# family -> resolution -> minimum timebase per number of enabled channels (index = count - 1)
		PicoscopeFamily.PS5000A : {
			Resolution.DR_8BIT  : (0, 1, 2, 2, 3, 3, 3, 3),
			Resolution.DR_12BIT : (1, 2, 3, 3),
			Resolution.DR_14BIT : (3, 3),
			Resolution.DR_15BIT : (3, 3),
			Resolution.DR_16BIT : (4,),
		},
		PicoscopeFamily.PS6000A : {
			Resolution.DR_8BIT  : (0, 0, 1, 1, 2, 2, 2, 2),
			Resolution.DR_10BIT : (1, 1, 2, 2),
			Resolution.DR_12BIT : (2, 2),
		},
	}

	def __init__ (self, model=None, serials=None, variant=None, maxSegments=None, memorySamples=None,
				  captureDelay=None, streamingChunk=None):
		Driver.__init__(self, copy.copy(model) if model is not None else getModel(PicoscopeFamily.PS5000A))
		dummy = config['Acquisition.Dummy']
		if serials is None:
			serials = [s.strip() for s in dummy['Serials'].split(',') if s.strip()]
		self.serials = list(serials)
		if variant is None:
			variant = dummy.get('Variant', '') or ("6424E" if self.model.family == PicoscopeFamily.PS6000A else "5444D")
		self.variant = variant
		self.deviceMaxSegments = int(maxSegments if maxSegments is not None else dummy.getint('Max segments'))
		self.memorySamples = int(memorySamples if memorySamples is not None else dummy.getint('Memory samples'))
		self.captureDelay = float(captureDelay if captureDelay is not None else dummy.getfloat('Capture delay (s)'))
		self.streamingChunk = int(streamingChunk if streamingChunk is not None else dummy.getint('Streaming chunk'))

		self._lock = threading.RLock()
		self._faults = {}
		self._pendingPower = None
		self._unplugged = False
		self._waveforms = {}
		self._probeCallback = None
		self.callLog = []
		self._reset()

	# ------------------------------------------------------------------ test hooks

	def inject (self, opName, status, count=1):
		"""The next count calls of opName (a Driver method name) return status without effect."""
		with self._lock:
			self._faults.setdefault(opName, []).extend([status] * count)

	def setPowerState (self, status):
		"""The next openUnit() returns status (one of the PICO_POWER_SUPPLY_* or USB3 port statuses)."""
		self._pendingPower = status

	def unplug (self):
		"""Every following call answers PICO_NOT_RESPONDING."""
		self._unplugged = True
		self._cancel.set()

	def setWaveform (self, channel, func):
		"""func(t) returns the signal of channel, in the unit of its range, at times t in seconds."""
		self._waveforms[channel] = (func, False)

	def setSampleWaveform (self, channel, func):
		"""func(i) returns the signal of channel at sample indices i counted from the capture start."""
		self._waveforms[channel] = (func, True)

	def connectProbe (self, channel, probeRange, connected=True, coupling=Coupling.DC):
		"""Plugs (or unplugs) an intelligent probe and reports it through the probe interaction callback."""
		scaling, _ = get_range_scaling(probeRange)
		event = ProbeInteraction(channel, connected=connected, enabled=connected, probeName=probeRange,
								 requiresPower=False, isPowered=connected, status=Status.PICO_OK,
								 rangeFirst=probeRange, rangeLast=probeRange, rangeCurrent=probeRange,
								 couplingFirst=coupling, couplingLast=coupling, couplingCurrent=coupling)
		if self._probeCallback is not None:
			self._probeCallback(Status.PICO_OK, [event])
		return event

	def _takeFault (self, opName):
		if self._unplugged:
			return Status.PICO_NOT_RESPONDING
		with self._lock:
			self.callLog.append(opName)
			queue = self._faults.get(opName)
			if queue:
				return queue.pop(0)
		return None

	# ------------------------------------------------------------------ state

	def _reset (self):
		self.resolution = self.model.defaultResolution
		self.channels = {}
		self.ports = {}
		self.segments = 1
		self.captures = 1
		self.etsMode = ETSMode.OFF
		self.etsSampleTimePs = 0
		self._etsBuffer = None
		self._buffers = {}
		self._captured = {}
		self._completed = 0
		self._ready = False
		self._cancel = threading.Event()
		self._worker = None
		self._streaming = None
		self._timestampBase = 1000
		self.trigger = {
			"properties" : [], "auxOutput" : 0, "autoTriggerUs" : 0, "conditions" : [], "directions" : [],
			"delay" : 0, "pwqProperties" : (0, 0, 0), "pwqConditions" : [], "pwqDirections" : [],
			"digitalDirections" : {},
		}

	def _enabledChannels (self):
		return [ch for ch, setting in sorted(self.channels.items()) if setting["enabled"]]

	def _enabledPorts (self):
		return [port for port, setting in sorted(self.ports.items()) if setting["enabled"]]

	def _maxADC (self):
		return self.model.maxADC[self.resolution]

	def _rangeAllowed (self, probeRange):
		if self.model.hasProbeInteractions:
			return get_range_scaling(probeRange)[1]
		return (ProbeRange.PICO_X1_PROBE_10MV <= probeRange <= ProbeRange.PICO_X1_PROBE_20V or
				ProbeRange.PICO_X10_PROBE_100MV <= probeRange <= ProbeRange.PICO_X10_PROBE_200V)

	@staticmethod
	def _offsetLimit (probeRange):
		full = get_range_scaling(probeRange)[0].max_scale
		if full <= 0.2:
			return 0.25
		if full <= 2:
			return 2.5
		return 20.0

	def _intervalOf (self, timebase):
		"""Sample interval in seconds of a timebase index."""
		if self.model.family == PicoscopeFamily.PS6000A:
			if timebase < 5:
				return (2 ** timebase) * 0.2e-9
			return (timebase - 4) * 6.4e-9
		bits = Resolution.inBits(self.resolution)
		if bits == 8:
			return (2 ** timebase) * 1e-9 if timebase < 3 else (timebase - 2) * 8e-9
		if bits == 12:
			return (2 ** timebase) * 1e-9 if timebase < 4 else (timebase - 3) * 16e-9
		if bits in (14, 15):
			return (timebase - 2) * 8e-9
		return (timebase - 3) * 16e-9

	def _minimumTimebase (self, count, resolution):
		table = self.MIN_TIMEBASE.get(self.model.family, self.MIN_TIMEBASE[PicoscopeFamily.PS5000A])
		limits = table.get(resolution)
		if limits is None:
			return (Status.PICO_INVALID_DEVICE_RESOLUTION, 0)
		if count > len(limits):
			if self.model.family == PicoscopeFamily.PS6000A:
				return (Status.PICO_CHANNEL_COMBINATION_NOT_VALID_IN_THIS_RESOLUTION, 0)
			return (Status.PICO_INVALID_NUMBER_CHANNELS_FOR_RESOLUTION, 0)
		return (Status.PICO_OK, limits[max(count, 1) - 1])

	# ------------------------------------------------------------------ unit

	@_faultable([])
	def enumerateUnits (self):
		return (Status.PICO_OK, list(self.serials))

	@_faultable()
	def openUnit (self, serial, resolution):
		if not self.serials or (serial and serial not in self.serials):
			return Status.PICO_NOT_FOUND
		if resolution is None:
			resolution = self.model.defaultResolution
		if resolution not in self.model.resolutions:
			return Status.PICO_INVALID_DEVICE_RESOLUTION
		self._reset()
		self.resolution = resolution
		self.serial = serial or self.serials[0]
		self.handle = 1
		self.model.updateFromVariant(self.variant)
		if self._pendingPower is not None:
			status = self._pendingPower
			return status
		return Status.PICO_OK

	@_faultable()
	def changePowerSource (self, powerState):
		if self.handle is None:
			return Status.PICO_INVALID_HANDLE
		if self._pendingPower is None or powerState != self._pendingPower:
			return Status.PICO_POWER_SUPPLY_REQUEST_INVALID
		self._pendingPower = None
		return Status.PICO_OK

	@_faultable()
	def closeUnit (self):
		if self.handle is None:
			return Status.PICO_INVALID_HANDLE
		self.stop()
		self.handle = None
		return Status.PICO_OK

	@_faultable("")
	def getUnitInfo (self, info):
		if self.handle is None:
			return (Status.PICO_INFO_UNAVAILABLE, "")
		values = {
			UNIT_INFOS["PICO_DRIVER_VERSION"] : "picoacq dummy driver 1.0",
			UNIT_INFOS["PICO_USB_VERSION"] : "3.0",
			UNIT_INFOS["PICO_HARDWARE_VERSION"] : "1",
			UNIT_INFOS["PICO_VARIANT_INFO"] : self.variant,
			UNIT_INFOS["PICO_BATCH_AND_SERIAL"] : self.serial,
			UNIT_INFOS["PICO_CAL_DATE"] : "01Jan24",
			UNIT_INFOS["PICO_KERNEL_VERSION"] : "1.0",
			UNIT_INFOS["PICO_DIGITAL_HARDWARE_VERSION"] : "1",
			UNIT_INFOS["PICO_ANALOGUE_HARDWARE_VERSION"] : "1",
			UNIT_INFOS["PICO_FIRMWARE_VERSION_1"] : "1.7.5.0",
			UNIT_INFOS["PICO_FIRMWARE_VERSION_2"] : "1.0.67.0",
		}
		if info not in values:
			return (Status.PICO_INVALID_INFO, "")
		return (Status.PICO_OK, values[info])

	@_faultable(0, 0)
	def getAdcLimits (self, resolution):
		if resolution not in self.model.maxADC:
			return (Status.PICO_INVALID_DEVICE_RESOLUTION, 0, 0)
		return (Status.PICO_OK, -self.model.maxADC[resolution], self.model.maxADC[resolution])

	@_faultable()
	def setDeviceResolution (self, resolution):
		if resolution not in self.model.resolutions:
			return Status.PICO_INVALID_DEVICE_RESOLUTION
		if len(self._enabledChannels()) > self.model.resolutions[resolution]:
			return Status.PICO_INVALID_NUMBER_CHANNELS_FOR_RESOLUTION
		self.resolution = resolution
		return Status.PICO_OK

	@_faultable(0)
	def getDeviceResolution (self):
		return (Status.PICO_OK, self.resolution)

	# ------------------------------------------------------------------ channels

	@_faultable()
	def setChannelOn (self, channel, coupling, probeRange, analogueOffset, bandwidth):
		if channel not in self.model.analogChannels():
			return Status.PICO_INVALID_CHANNEL
		if coupling not in self.model.couplings:
			return Status.PICO_INVALID_COUPLING
		if bandwidth not in self.model.bandwidths:
			return Status.PICO_INVALID_BANDWIDTH
		if not self._rangeAllowed(probeRange):
			return Status.PICO_INVALID_VOLTAGE_RANGE
		if abs(analogueOffset) > self._offsetLimit(probeRange):
			return Status.PICO_INVALID_ANALOGUE_OFFSET
		enabled = set(self._enabledChannels()) | {channel}
		if len(enabled) > self.model.resolutions[self.resolution]:
			return Status.PICO_INVALID_NUMBER_CHANNELS_FOR_RESOLUTION
		self.channels[channel] = { "enabled" : True, "coupling" : coupling, "range" : probeRange,
								   "offset" : analogueOffset, "bandwidth" : bandwidth }
		return Status.PICO_OK

	@_faultable()
	def setChannelOff (self, channel):
		if channel not in self.model.analogChannels():
			return Status.PICO_INVALID_CHANNEL
		if channel in self.channels:
			self.channels[channel]["enabled"] = False
		return Status.PICO_OK

	@_faultable(0.0, 0.0)
	def getAnalogueOffsetLimits (self, probeRange, coupling):
		if not self._rangeAllowed(probeRange):
			return (Status.PICO_INVALID_VOLTAGE_RANGE, 0.0, 0.0)
		limit = self._offsetLimit(probeRange)
		return (Status.PICO_OK, -limit, limit)

	@_faultable()
	def setDigitalPortOn (self, port, logicLevels, hysteresis):
		if port not in self.model.digitalPortList():
			return Status.PICO_INVALID_DIGITAL_PORT
		self.ports[port] = { "enabled" : True, "levels" : list(logicLevels), "hysteresis" : hysteresis }
		return Status.PICO_OK

	@_faultable()
	def setDigitalPortOff (self, port):
		if port not in self.model.digitalPortList():
			return Status.PICO_INVALID_DIGITAL_PORT
		self.ports.pop(port, None)
		return Status.PICO_OK

	# ------------------------------------------------------------------ memory and timebase

	@_faultable(0)
	def getMaxSegments (self):
		return (Status.PICO_OK, self.deviceMaxSegments)

	@_faultable(0)
	def memorySegments (self, nSegments):
		if nSegments < 1 or nSegments > self.deviceMaxSegments:
			return (Status.PICO_TOO_MANY_SEGMENTS, 0)
		with self._lock:
			self.segments = nSegments
			self._captured = {}
		return (Status.PICO_OK, self.memorySamples // nSegments)

	@_faultable()
	def setNoOfCaptures (self, nCaptures):
		if nCaptures < 1:
			return Status.PICO_INVALID_PARAMETER
		if nCaptures > self.segments:
			return Status.PICO_NOT_ENOUGH_SEGMENTS
		self.captures = nCaptures
		return Status.PICO_OK

	@_faultable(0)
	def getNoOfCaptures (self):
		with self._lock:
			return (Status.PICO_OK, self._completed)

	@_faultable(0.0, 0)
	def getTimebase (self, timebase, noSamples, segmentIndex):
		return self._timebase(timebase, noSamples, segmentIndex)

	def _timebase (self, timebase, noSamples, segmentIndex):
		count = len(self._enabledChannels())
		status, minimum = self._minimumTimebase(count, self.resolution)
		if status != Status.PICO_OK:
			return (status, 0.0, 0)
		if timebase < minimum or timebase > self.model.maxTimeBase:
			return (Status.PICO_INVALID_TIMEBASE, 0.0, 0)
		if segmentIndex >= self.segments:
			return (Status.PICO_SEGMENT_OUT_OF_RANGE, 0.0, 0)
		maxSamples = (self.memorySamples // self.segments) // max(count, 1)
		if noSamples > maxSamples:
			return (Status.PICO_TOO_MANY_SAMPLES, 0.0, maxSamples)
		return (Status.PICO_OK, self._intervalOf(timebase), maxSamples)

	@_faultable(0, 0.0)
	def getMinimumTimebase (self, channelFlags, resolution):
		count = bin(channelFlags & 0xFF).count("1")
		status, timebase = self._minimumTimebase(count, resolution)
		if status != Status.PICO_OK:
			return (status, 0, 0.0)
		saved = self.resolution
		self.resolution = resolution
		try:
			return (Status.PICO_OK, timebase, self._intervalOf(timebase))
		finally:
			self.resolution = saved

	# ------------------------------------------------------------------ ETS

	@_faultable(0)
	def setEts (self, mode, cycles, interleave):
		if mode == ETSMode.OFF:
			self.etsMode = ETSMode.OFF
			self.etsSampleTimePs = 0
			return (Status.PICO_OK, 0)
		if not self.model.hasETS:
			return (Status.PICO_ETS_NOT_SUPPORTED, 0)
		if self._enabledPorts():
			return (Status.PICO_ETS_NOT_AVAILABLE_WITH_LOGIC_CHANNELS, 0)
		if cycles < 1 or interleave < 1 or interleave > cycles:
			return (Status.PICO_INVALID_PARAMETER, 0)
		count = len(self._enabledChannels())
		status, minimum = self._minimumTimebase(count, self.resolution)
		if status != Status.PICO_OK:
			return (status, 0)
		self.etsMode = mode
		self.etsSampleTimePs = max(1, int(round(self._intervalOf(minimum) * 1e12 / interleave)))
		return (Status.PICO_OK, self.etsSampleTimePs)

	@_faultable()
	def setEtsTimeBuffer (self, buffer):
		self._etsBuffer = buffer
		return Status.PICO_OK

	# ------------------------------------------------------------------ buffers

	@_faultable()
	def setDataBuffers (self, channel, bufferMax, bufferMin, nSamples, segmentIndex, ratioMode, action):
		with self._lock:
			if action & Action.CLEAR_ALL:
				self._buffers = {}
			if action & Action.CLEAR_THIS_DATA_BUFFER:
				self._buffers.pop((channel, segmentIndex), None)
			if not action & Action.ADD:
				return Status.PICO_OK
			if channel not in self.model.analogChannels() and channel not in self.model.digitalPortList():
				return Status.PICO_INVALID_CHANNEL
			if segmentIndex >= self.segments:
				return Status.PICO_SEGMENT_OUT_OF_RANGE
			if ratioMode not in RatioMode.NAME:
				return Status.PICO_RATIO_MODE_NOT_SUPPORTED
			if bufferMax is None or nSamples > len(bufferMax):
				return Status.PICO_NULL_PARAMETER
			if ratioMode == RatioMode.AGGREGATE and (bufferMin is None or len(bufferMin) < nSamples):
				return Status.PICO_NULL_PARAMETER
			self._buffers[(channel, segmentIndex)] = (bufferMax, bufferMin, nSamples, ratioMode)
			if self._streaming is not None:
				self._streaming["writeIndex"] = 0
		return Status.PICO_OK

	# ------------------------------------------------------------------ block and rapid block

	@_faultable(0)
	def runBlock (self, preSamples, postSamples, timebase, segmentIndex, readyCallback):
		if self.handle is None:
			return (Status.PICO_INVALID_HANDLE, 0)
		if self._worker is not None and self._worker.is_alive():
			return (Status.PICO_DRIVER_FUNCTION, 0)
		if not self._enabledChannels() and not self._enabledPorts():
			return (Status.PICO_INVALID_CHANNEL, 0)
		ets = self.etsMode != ETSMode.OFF
		if ets:
			if not self.trigger["conditions"]:
				return (Status.PICO_TRIGGER_ERROR, 0)
			interval = self.etsSampleTimePs * 1e-12
		else:
			status, interval, _ = self._timebase(timebase, preSamples + postSamples, segmentIndex)
			if status != Status.PICO_OK:
				return (status, 0)
		if segmentIndex + self.captures > self.segments:
			return (Status.PICO_NOT_ENOUGH_SEGMENTS, 0)
		run = _Run(preSamples, postSamples, interval, segmentIndex, self.captures, readyCallback, ets)
		with self._lock:
			self._streaming = None
			self._ready = False
			self._completed = 0
			for i in range(run.captures):
				self._captured.pop(segmentIndex + i, None)
			self._cancel = threading.Event()
			self._worker = threading.Thread(target=self._captureWorker, args=(run, self._cancel),
											name="dummy-scope-capture", daemon=True)
		self._worker.start()
		return (Status.PICO_OK, int(self.captureDelay * 1000 * run.captures))

	def _captureWorker (self, run, cancel):
		for i in range(run.captures):
			if cancel.wait(self.captureDelay):
				break
			capture = self._generateCapture(run, i)
			if capture is None:
				# no trigger event and no auto trigger: the unit waits until stopped
				cancel.wait()
				break
			with self._lock:
				self._captured[run.segment + i] = capture
				self._completed += 1
		if cancel.is_set():
			if run.callback is not None:
				run.callback(Status.PICO_CANCELLED)
			return
		with self._lock:
			self._ready = True
		if run.callback is not None:
			run.callback(Status.PICO_OK)

	def _signal (self, channel, n, interval, start, times=None):
		"""Returns (adc codes, overflow) of n samples of channel."""
		setting = self.channels[channel]
		scaling, _ = get_range_scaling(setting["range"])
		indices = np.arange(start, start + n, dtype=np.float64)
		t = times if times is not None else indices * interval
		func, bySample = self._waveforms.get(channel, (None, False))
		if func is None:
			# sine at one hundredth of the sample rate, 80 % of full scale
			values = 0.8 * scaling.max_scale * np.sin(2 * np.pi * indices / 100.0 + channel * np.pi / 4)
		else:
			values = np.asarray(func(indices if bySample else t), dtype=np.float64) * np.ones(n)
		values = values + setting["offset"]
		overflow = bool(np.any(np.abs(values) > scaling.max_scale))
		codes = np.clip(np.rint(values * self._maxADC() / scaling.max_scale), -self._maxADC(), self._maxADC())
		return codes.astype(np.int16), overflow

	def _portPattern (self, port, n, start):
		return (((np.arange(start, start + n) >> (port - Channel.PORT0)) & 0xFF)).astype(np.int16)

	def _triggerSource (self):
		"""Returns (channel, direction, threshold) of the first analog trigger condition, or None."""
		for conditions in self.trigger["conditions"]:
			for condition in conditions:
				if condition.state != Trigger.State.TRUE or condition.source not in self.channels:
					continue
				direction = next((d.direction for d in self.trigger["directions"] if d.channel == condition.source),
								 None)
				prop = next((p for p in self.trigger["properties"] if p.channel == condition.source), None)
				if direction is None or prop is None:
					continue
				return (condition.source, direction, prop.thresholdUpper)
		return None

	@staticmethod
	def _findEvent (codes, direction, threshold, first):
		"""Index of the first sample at or after first meeting the trigger direction, or None."""
		above = codes > threshold
		if direction == Trigger.Direction.ABOVE:
			candidates = above
		elif direction == Trigger.Direction.BELOW:
			candidates = ~above
		else:
			rising = np.zeros(len(codes), dtype=bool)
			falling = np.zeros(len(codes), dtype=bool)
			rising[1:] = above[1:] & ~above[:-1]
			falling[1:] = ~above[1:] & above[:-1]
			if direction == Trigger.Direction.RISING:
				candidates = rising
			elif direction == Trigger.Direction.FALLING:
				candidates = falling
			else:
				candidates = rising | falling
		hits = np.nonzero(candidates[first:])[0]
		if len(hits) == 0:
			return None
		return int(hits[0]) + first

	def _generateCapture (self, run, captureIndex):
		n = run.pre + run.post
		spacing = 10 * n + 1000
		# each capture of a rapid run sees a later stretch of the signal
		origin = captureIndex * spacing
		source = self._triggerSource() if not run.ets else None
		delay = self.trigger["delay"]
		span = max(n, 4096)
		length = n + span + delay
		start = origin
		triggered = source is not None
		if source is not None:
			channel, direction, threshold = source
			codes, _ = self._signal(channel, length, run.interval, origin)
			event = self._findEvent(codes, direction, threshold, run.pre)
			if event is None or event > run.pre + span:
				if self.trigger["autoTriggerUs"] == 0:
					return None
				triggered = False
			else:
				start = origin + event - run.pre + delay
		times = None
		if run.ets:
			sampleFs = self.etsSampleTimePs * 1000
			offsets = np.arange(n, dtype=np.int64)
			times = (offsets * sampleFs + ((offsets * 7919) % 97) * 10 - run.pre * sampleFs).astype(np.int64)
		data = {}
		overflow = 0
		for channel in self._enabledChannels():
			codes, over = self._signal(channel, n, run.interval, start,
									   None if times is None else times.astype(np.float64) * 1e-15)
			data[channel] = codes
			if over:
				overflow |= 1 << channel
		for port in self._enabledPorts():
			data[port] = self._portPattern(port, n, start)
		return {
			"data" : data,
			"overflow" : overflow,
			"times" : times,
			"triggered" : triggered,
			"timestamp" : self._timestampBase + captureIndex * spacing,
			"reset" : captureIndex == 0,
			"interval" : run.interval,
			"pre" : run.pre,
		}

	@_faultable(False)
	def isReady (self):
		with self._lock:
			return (Status.PICO_OK, self._ready)

	def _fill (self, segment, startIndex, noOfSamples, ratio, ratioMode):
		"""Copies one captured segment into its registered buffers. Returns (status, count, overflow)."""
		capture = self._captured.get(segment)
		if capture is None:
			return (Status.PICO_NO_SAMPLES_AVAILABLE, 0, 0)
		count = 0
		filled = False
		for channel, codes in capture["data"].items():
			registered = self._buffers.get((channel, segment))
			if registered is None:
				continue
			bufferMax, bufferMin, length, mode = registered
			if mode != ratioMode:
				continue
			raw = codes[startIndex:startIndex + noOfSamples]
			outMax, outMin = downsample(raw, ratioMode, ratio)
			count = min(len(outMax), length)
			bufferMax[:count] = outMax[:count]
			if ratioMode == RatioMode.AGGREGATE:
				bufferMin[:count] = outMin[:count]
			filled = True
		if not filled:
			return (Status.PICO_BUFFERS_NOT_SET, 0, 0)
		if capture["times"] is not None and self._etsBuffer is not None:
			times = capture["times"][startIndex:startIndex + count]
			self._etsBuffer[:len(times)] = times
		return (Status.PICO_OK, count, capture["overflow"])

	@_faultable(0, 0)
	def getValues (self, startIndex, noOfSamples, ratio, ratioMode, segmentIndex):
		with self._lock:
			if self._streaming is not None:
				return (Status.PICO_DEVICE_SAMPLING, 0, 0)
			return self._fill(segmentIndex, startIndex, noOfSamples, ratio, ratioMode)

	@_faultable(0, [])
	def getValuesBulk (self, startIndex, noOfSamples, fromSegment, toSegment, ratio, ratioMode):
		overflows = []
		count = 0
		with self._lock:
			for segment in range(fromSegment, toSegment + 1):
				status, count, overflow = self._fill(segment, startIndex, noOfSamples, ratio, ratioMode)
				if status != Status.PICO_OK:
					return (status, 0, overflows)
				overflows.append(overflow)
		return (Status.PICO_OK, count, overflows)

	@_faultable([])
	def getTriggerInfoBulk (self, fromSegment, toSegment):
		infos = []
		with self._lock:
			for segment in range(fromSegment, toSegment + 1):
				capture = self._captured.get(segment)
				if capture is None:
					return (Status.PICO_NO_SAMPLES_AVAILABLE, infos)
				status = Status.PICO_DEVICE_TIME_STAMP_RESET if capture["reset"] else Status.PICO_OK
				infos.append(TriggerInfo(status, segment, capture["pre"], capture["pre"] * capture["interval"] * 1e9,
										 TimeUnits.NS, 0, capture["timestamp"]))
		return (Status.PICO_OK, infos)

	@_faultable()
	def stop (self):
		self._cancel.set()
		worker = self._worker
		if worker is not None and worker is not threading.current_thread():
			worker.join(timeout=1.0)
		with self._lock:
			if self._streaming is not None:
				self._streaming["stopped"] = True
		return Status.PICO_OK

	# ------------------------------------------------------------------ streaming

	@_faultable(0)
	def runStreaming (self, sampleInterval, timeUnits, preSamples, postSamples, autoStop, ratio, ratioMode):
		if self.handle is None:
			return (Status.PICO_INVALID_HANDLE, 0)
		channels = self._enabledChannels() + self._enabledPorts()
		if not channels:
			return (Status.PICO_INVALID_CHANNEL, 0)
		if self.etsMode != ETSMode.OFF:
			return (Status.PICO_ETS_MODE_SET, 0)
		for channel in channels:
			if (channel, 0) not in self._buffers:
				return (Status.PICO_BUFFERS_NOT_SET, 0)
		interval = sampleInterval * TimeUnits.SECONDS[timeUnits]
		count = len(self._enabledChannels())
		status, minimum = self._minimumTimebase(count, self.resolution)
		if status != Status.PICO_OK:
			return (status, 0)
		if interval < self._intervalOf(minimum):
			return (Status.PICO_INVALID_SAMPLE_INTERVAL, 0)
		with self._lock:
			self._streaming = {
				"interval" : interval, "pre" : preSamples, "total" : preSamples + postSamples,
				"autoStop" : bool(autoStop), "ratio" : max(int(ratio), 1), "mode" : ratioMode,
				"produced" : 0, "writeIndex" : 0, "stopped" : False, "autoStopped" : False,
				"triggered" : False, "channels" : channels,
			}
		return (Status.PICO_OK, sampleInterval)

	@_faultable(StreamingTriggerInfo())
	def getStreamingLatestValues (self, dataInfos):
		triggerInfo = StreamingTriggerInfo()
		with self._lock:
			stream = self._streaming
			if stream is None:
				return (Status.PICO_INVALID_STATE, triggerInfo)
			for info in dataInfos:
				info.noOfSamples = 0
				info.overflow = 0
			if stream["autoStopped"] or stream["stopped"]:
				triggerInfo.autoStop = stream["autoStopped"]
				return (Status.PICO_OK, triggerInfo)
			first = self._buffers.get((stream["channels"][0], 0))
			if first is None:
				return (Status.PICO_BUFFERS_NOT_SET, triggerInfo)
			space = first[2] - stream["writeIndex"]
			if space <= 0:
				return (Status.PICO_WAITING_FOR_DATA_BUFFERS, triggerInfo)
			ratio = stream["ratio"]
			count = min(self.streamingChunk, space)
			rawCount = count * ratio
			if stream["autoStop"]:
				rawCount = min(rawCount, stream["total"] - stream["produced"])
				count = output_length(rawCount, ratio) if stream["mode"] != RatioMode.RAW else rawCount
			startIndex = stream["writeIndex"]
			overflow = 0
			for channel in stream["channels"]:
				bufferMax, bufferMin, _, mode = self._buffers[(channel, 0)]
				if channel in self.channels:
					codes, over = self._signal(channel, rawCount, stream["interval"], stream["produced"])
					if over:
						overflow |= 1 << channel
				else:
					codes = self._portPattern(channel, rawCount, stream["produced"])
				outMax, outMin = downsample(codes, mode, ratio)
				bufferMax[startIndex:startIndex + count] = outMax[:count]
				if mode == RatioMode.AGGREGATE:
					bufferMin[startIndex:startIndex + count] = outMin[:count]
			for info in dataInfos:
				info.noOfSamples = count
				info.startIndex = startIndex
				info.overflow = 1 if overflow & (1 << info.channel) else 0
			if self.trigger["conditions"] and not stream["triggered"]:
				position = stream["pre"] // ratio
				before = stream["produced"] // ratio
				if before <= position < before + count:
					stream["triggered"] = True
					triggerInfo.triggered = True
					triggerInfo.triggerAt = startIndex + position - before
			stream["produced"] += rawCount
			stream["writeIndex"] += count
			if stream["autoStop"] and stream["produced"] >= stream["total"]:
				stream["autoStopped"] = True
				triggerInfo.autoStop = True
			if stream["writeIndex"] >= first[2] and not triggerInfo.autoStop:
				return (Status.PICO_WAITING_FOR_DATA_BUFFERS, triggerInfo)
		return (Status.PICO_OK, triggerInfo)

	# ------------------------------------------------------------------ triggers

	@_faultable()
	def setTriggerChannelProperties (self, properties, auxOutputEnable, autoTriggerMicroSeconds):
		for p in properties:
			if p.channel not in self.model.analogChannels() and p.channel not in (Channel.EXT, Channel.AUX):
				return Status.PICO_INVALID_TRIGGER_CHANNEL
		self.trigger["properties"] = list(properties)
		self.trigger["auxOutput"] = auxOutputEnable
		self.trigger["autoTriggerUs"] = autoTriggerMicroSeconds
		return Status.PICO_OK

	@_faultable()
	def setTriggerChannelConditions (self, conditions, action):
		sources = [c.source for c in conditions]
		if len(sources) != len(set(sources)):
			return Status.PICO_DUPLICATE_CONDITION_SOURCE
		if action & Action.CLEAR_ALL:
			self.trigger["conditions"] = []
		if action & Action.ADD and conditions:
			self.trigger["conditions"].append(list(conditions))
		elif not action & (Action.ADD | Action.CLEAR_ALL):
			return Status.PICO_INVALID_CONDITION_INFO
		return Status.PICO_OK

	@_faultable()
	def setTriggerChannelDirections (self, directions):
		self.trigger["directions"] = list(directions)
		return Status.PICO_OK

	@_faultable()
	def setTriggerDelay (self, delay):
		if delay < 0:
			return Status.PICO_DELAY
		self.trigger["delay"] = int(delay)
		return Status.PICO_OK

	@_faultable()
	def setPulseWidthQualifierProperties (self, lower, upper, pwType):
		self.trigger["pwqProperties"] = (lower, upper, pwType)
		return Status.PICO_OK

	@_faultable()
	def setPulseWidthQualifierConditions (self, conditions, action):
		if action & Action.CLEAR_ALL:
			self.trigger["pwqConditions"] = []
		if action & Action.ADD and conditions:
			self.trigger["pwqConditions"].append(list(conditions))
		return Status.PICO_OK

	@_faultable()
	def setPulseWidthQualifierDirections (self, directions):
		self.trigger["pwqDirections"] = list(directions)
		return Status.PICO_OK

	@_faultable()
	def setTriggerDigitalPortProperties (self, port, directions):
		if directions and port not in self.model.digitalPortList():
			return Status.PICO_INVALID_DIGITAL_PORT
		self.trigger["digitalDirections"][port] = list(directions)
		return Status.PICO_OK

	# ------------------------------------------------------------------ probes

	@_faultable()
	def setProbeInteractionCallback (self, callback):
		if not self.model.hasProbeInteractions:
			return Status.PICO_NOT_SUPPORTED_BY_THIS_DEVICE
		self._probeCallback = callback
		return Status.PICO_OK
