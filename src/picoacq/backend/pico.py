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
# Name:        pico
# Purpose:     driver layer of the PicoScope acquisition engine
#
# Author:      Frederic Salabartan
#
# Created:     05/11/2018
# Copyright:   (c) Image Guided Therapy

#-------------------------------------------------------------------------------

"""Python interface to the native drivers of Pico Technology's oscilloscopes.

This module only speaks the driver's language: status codes, enums, structures and the operation
set of one driver generation. Acquisition logic lives in the other backend modules.
"""

import os
import sys
import ctypes
import ctypes.util
from ctypes import (Structure, c_int8, c_int16, c_uint16, c_int32, c_uint32, c_int64, c_uint64,
					c_uint8, c_float, c_double, c_void_p, byref, POINTER, create_string_buffer,
					CFUNCTYPE)
import numpy

# Note on Picoscope function calls:
# Every call to a Pico C-API function must be preceded by a comment containing the function signature.
# For functions called in a common base class, function names start with "ps????", and enums that
# are model-specific (PS5000A_xxx, PICO_xxx, ...) are written "enum". Same thing for struct pointers with "struct*".

# The Pico API uses a lot of enums as arguments, the value passed for them should be a c_int32 in calls.

version = (1, 4, 0)
"""Module version as a tuple of integers (major, minor, bugfix)."""

versionstr = ".".join(map(str,version))
"""Module version as a string "major.minor.bugfix"."""


UNIT_INFOS = {
	"PICO_DRIVER_VERSION"               : 0,
	"PICO_USB_VERSION"                  : 1,
	"PICO_HARDWARE_VERSION"             : 2,
	"PICO_VARIANT_INFO"                 : 3,
	"PICO_BATCH_AND_SERIAL"             : 4,
	"PICO_CAL_DATE"                     : 5,
	"PICO_KERNEL_VERSION"               : 6,
	"PICO_DIGITAL_HARDWARE_VERSION"     : 7,
	"PICO_ANALOGUE_HARDWARE_VERSION"    : 8,
	"PICO_FIRMWARE_VERSION_1"           : 9,
	"PICO_FIRMWARE_VERSION_2"           : 10
}


class PicoscopeFamily(object):
	PS5000A = 'ps5000a'
	PS6000A = 'ps6000a'
	DUMMY   = 'dummy'


class Resolution(object):
	DR_8BIT  = 0
	DR_12BIT = 1
	DR_14BIT = 2
	DR_15BIT = 3
	DR_16BIT = 4
	DR_10BIT = 10

	BITS = { DR_8BIT : 8, DR_10BIT : 10, DR_12BIT : 12, DR_14BIT : 14, DR_15BIT : 15, DR_16BIT : 16 }

	@staticmethod
	def inBits(res):
		"""Returns the resolution in number of bits.
		:param res: a resolution, one of Resolution.DR_*.
		:return: an integer, the number of bits.
		:raise: PicoError if the resolution is not supported."""
		try:
			return Resolution.BITS[res]
		except KeyError:
			raise PicoError("Unsupported resolution (%s)." % str(res), Status.PICO_INVALID_DEVICE_RESOLUTION)

	@staticmethod
	def fromBits(bits):
		"""Returns the Resolution.DR_* value for a number of bits (8, 10, 12, 14, 15 or 16)."""
		for res, b in Resolution.BITS.items():
			if b == int(bits):
				return res
		raise PicoError("Unsupported resolution (%s bits)." % str(bits), Status.PICO_INVALID_DEVICE_RESOLUTION)


class Channel(object):
	A    = 0
	B    = 1
	C    = 2
	D    = 3
	E    = 4
	F    = 5
	G    = 6
	H    = 7
	EXT  = 1000
	AUX  = 1001

	PORT0 = 128
	PORT1 = 129
	PORT2 = 130
	PORT3 = 131

	PULSE_WIDTH_SOURCE = 0x10000000
	DIGITAL_SOURCE     = 0x10000001

	ANALOG = (A, B, C, D, E, F, G, H)
	PORTS  = (PORT0, PORT1, PORT2, PORT3)

	NAME = { A : "A", B : "B", C : "C", D : "D", E : "E", F : "F", G : "G", H : "H",
			 EXT : "EXT", AUX : "AUX", PORT0 : "PORT0", PORT1 : "PORT1", PORT2 : "PORT2", PORT3 : "PORT3",
			 PULSE_WIDTH_SOURCE : "PWQ", DIGITAL_SOURCE : "DIGITAL" }
	NUMBER = { v : k for k, v in NAME.items() }

def channelName (ch):
	"""
	Returns the name of the given channel.

	:param ch: one of Channel.*.
	:return: (string) the name of the channel.
	"""
	if ch in Channel.NAME:
		return Channel.NAME[ch]
	return "channel %s" % str(ch)

def channelFlag (ch):
	"""Returns the PICO_CHANNEL_FLAGS bit of an analog channel or digital port."""
	if ch in Channel.ANALOG:
		return 1 << ch
	if ch in Channel.PORTS:
		return 1 << (16 + ch - Channel.PORT0)
	raise PicoError("channelFlag(): no flag for %s." % channelName(ch), Status.PICO_INVALID_CHANNEL)


class Coupling(object):
	AC       = 0
	DC       = 1
	DC_50OHM = 50

	NAME = { AC : "AC", DC : "DC", DC_50OHM : "DC_50OHM" }
	NUMBER = { v : k for k, v in NAME.items() }


class BandwidthLimiter(object):
	FULL      = 0
	BW_20MHZ  = 20000000
	BW_200MHZ = 200000000

	NAME = { FULL : "FULL", BW_20MHZ : "BW_20MHZ", BW_200MHZ : "BW_200MHZ" }
	NUMBER = { v : k for k, v in NAME.items() }


class ProbeRange(object):
	"""PicoConnect probe ranges. The x1 values are also the plain input ranges of older drivers."""
	PICO_X1_PROBE_10MV  = 0
	PICO_X1_PROBE_20MV  = 1
	PICO_X1_PROBE_50MV  = 2
	PICO_X1_PROBE_100MV = 3
	PICO_X1_PROBE_200MV = 4
	PICO_X1_PROBE_500MV = 5
	PICO_X1_PROBE_1V    = 6
	PICO_X1_PROBE_2V    = 7
	PICO_X1_PROBE_5V    = 8
	PICO_X1_PROBE_10V   = 9
	PICO_X1_PROBE_20V   = 10
	PICO_X1_PROBE_50V   = 11

	PICO_X10_PROBE_100MV = 0x20
	PICO_X10_PROBE_200MV = 0x21
	PICO_X10_PROBE_500MV = 0x22
	PICO_X10_PROBE_1V    = 0x23
	PICO_X10_PROBE_2V    = 0x24
	PICO_X10_PROBE_5V    = 0x25
	PICO_X10_PROBE_10V   = 0x26
	PICO_X10_PROBE_20V   = 0x27
	PICO_X10_PROBE_50V   = 0x28
	PICO_X10_PROBE_100V  = 0x29
	PICO_X10_PROBE_200V  = 0x2A
	PICO_X10_PROBE_500V  = 0x2B

	PICO_D9_BNC_10MV  = 0x30
	PICO_D9_BNC_20MV  = 0x31
	PICO_D9_BNC_50MV  = 0x32
	PICO_D9_BNC_100MV = 0x33
	PICO_D9_BNC_200MV = 0x34
	PICO_D9_BNC_500MV = 0x35
	PICO_D9_BNC_1V    = 0x36
	PICO_D9_BNC_2V    = 0x37
	PICO_D9_BNC_5V    = 0x38
	PICO_D9_BNC_10V   = 0x39
	PICO_D9_BNC_20V   = 0x3A
	PICO_D9_BNC_50V   = 0x3B

	PICO_D9_2X_BNC_10MV  = 0x40
	PICO_D9_2X_BNC_20MV  = 0x41
	PICO_D9_2X_BNC_50MV  = 0x42
	PICO_D9_2X_BNC_100MV = 0x43
	PICO_D9_2X_BNC_200MV = 0x44
	PICO_D9_2X_BNC_500MV = 0x45
	PICO_D9_2X_BNC_1V    = 0x46
	PICO_D9_2X_BNC_2V    = 0x47
	PICO_D9_2X_BNC_5V    = 0x48
	PICO_D9_2X_BNC_10V   = 0x49
	PICO_D9_2X_BNC_20V   = 0x4A
	PICO_D9_2X_BNC_50V   = 0x4B

	PICO_DIFFERENTIAL_10MV  = 0x50
	PICO_DIFFERENTIAL_20MV  = 0x51
	PICO_DIFFERENTIAL_50MV  = 0x52
	PICO_DIFFERENTIAL_100MV = 0x53
	PICO_DIFFERENTIAL_200MV = 0x54
	PICO_DIFFERENTIAL_500MV = 0x55
	PICO_DIFFERENTIAL_1V    = 0x56
	PICO_DIFFERENTIAL_2V    = 0x57
	PICO_DIFFERENTIAL_5V    = 0x58
	PICO_DIFFERENTIAL_10V   = 0x59
	PICO_DIFFERENTIAL_20V   = 0x5A

	PICO_CONNECT_PROBE_OFF = 1024

	PICO_CURRENT_CLAMP_200A_2kA_1A    = 4000
	PICO_CURRENT_CLAMP_200A_2kA_2A    = 4001
	PICO_CURRENT_CLAMP_200A_2kA_5A    = 4002
	PICO_CURRENT_CLAMP_200A_2kA_10A   = 4003
	PICO_CURRENT_CLAMP_200A_2kA_20A   = 4004
	PICO_CURRENT_CLAMP_200A_2kA_50A   = 4005
	PICO_CURRENT_CLAMP_200A_2kA_100A  = 4006
	PICO_CURRENT_CLAMP_200A_2kA_200A  = 4007
	PICO_CURRENT_CLAMP_200A_2kA_500A  = 4008
	PICO_CURRENT_CLAMP_200A_2kA_1000A = 4009
	PICO_CURRENT_CLAMP_200A_2kA_2000A = 4010

	PICO_CURRENT_CLAMP_40A_100mA = 5000
	PICO_CURRENT_CLAMP_40A_200mA = 5001
	PICO_CURRENT_CLAMP_40A_500mA = 5002
	PICO_CURRENT_CLAMP_40A_1A    = 5003
	PICO_CURRENT_CLAMP_40A_2A    = 5004
	PICO_CURRENT_CLAMP_40A_5A    = 5005
	PICO_CURRENT_CLAMP_40A_10A   = 5006
	PICO_CURRENT_CLAMP_40A_20A   = 5007
	PICO_CURRENT_CLAMP_40A_40A   = 5008

	PICO_1KV_2_5V  = 6003
	PICO_1KV_5V    = 6004
	PICO_1KV_12_5V = 6005
	PICO_1KV_25V   = 6006
	PICO_1KV_50V   = 6007
	PICO_1KV_125V  = 6008
	PICO_1KV_500V  = 6009
	PICO_1KV_1000V = 6010

	PICO_CURRENT_CLAMP_2000ARMS_10A   = 6011
	PICO_CURRENT_CLAMP_2000ARMS_20A   = 6012
	PICO_CURRENT_CLAMP_2000ARMS_50A   = 6013
	PICO_CURRENT_CLAMP_2000ARMS_100A  = 6014
	PICO_CURRENT_CLAMP_2000ARMS_200A  = 6015
	PICO_CURRENT_CLAMP_2000ARMS_500A  = 6016
	PICO_CURRENT_CLAMP_2000ARMS_1000A = 6017
	PICO_CURRENT_CLAMP_2000ARMS_2000A = 6018
	PICO_CURRENT_CLAMP_2000ARMS_5000A = 6019

	PICO_CURRENT_CLAMP_100A_2_5A = 6020
	PICO_CURRENT_CLAMP_100A_5A   = 6021
	PICO_CURRENT_CLAMP_100A_10A  = 6022
	PICO_CURRENT_CLAMP_100A_25A  = 6023
	PICO_CURRENT_CLAMP_100A_50A  = 6024
	PICO_CURRENT_CLAMP_100A_100A = 6025

	PICO_CURRENT_CLAMP_60A_2A  = 6030
	PICO_CURRENT_CLAMP_60A_5A  = 6031
	PICO_CURRENT_CLAMP_60A_10A = 6032
	PICO_CURRENT_CLAMP_60A_20A = 6033
	PICO_CURRENT_CLAMP_60A_50A = 6034
	PICO_CURRENT_CLAMP_60A_60A = 6035

	PICO_CURRENT_CLAMP_60A_V2_0_5A = 6040
	PICO_CURRENT_CLAMP_60A_V2_1A   = 6041
	PICO_CURRENT_CLAMP_60A_V2_2A   = 6042
	PICO_CURRENT_CLAMP_60A_V2_5A   = 6043
	PICO_CURRENT_CLAMP_60A_V2_10A  = 6044
	PICO_CURRENT_CLAMP_60A_V2_20A  = 6045
	PICO_CURRENT_CLAMP_60A_V2_50A  = 6046
	PICO_CURRENT_CLAMP_60A_V2_60A  = 6047

	PICO_X10_ACTIVE_PROBE_100MV = 6050
	PICO_X10_ACTIVE_PROBE_200MV = 6051
	PICO_X10_ACTIVE_PROBE_500MV = 6052
	PICO_X10_ACTIVE_PROBE_1V    = 6053
	PICO_X10_ACTIVE_PROBE_2V    = 6054
	PICO_X10_ACTIVE_PROBE_5V    = 6055

	@staticmethod
	def name(value):
		"""Returns the enum name of a probe range, or None when the value is not a known range."""
		if not hasattr(ProbeRange, "NAMES"):
			ProbeRange.NAMES = {}
			for c in dir(ProbeRange):
				if c[:5] == "PICO_":
					ProbeRange.NAMES[getattr(ProbeRange, c)] = c
		return ProbeRange.NAMES.get(value)

	@staticmethod
	def fromName(name):
		"""Returns the value of a range given its enum name, for example "PICO_X1_PROBE_2V"."""
		ProbeRange.name(0)
		wanted = str(name).strip().upper()
		for value, rangeName in ProbeRange.NAMES.items():
			if rangeName.upper() == wanted:
				return value
		raise UnknownProbeRange("Unknown probe range '%s'." % str(name))


class ETSMode(object):
	OFF  = 0
	FAST = 1
	SLOW = 2

	NAME = { OFF : "OFF", FAST : "FAST", SLOW : "SLOW" }
	NUMBER = { v : k for k, v in NAME.items() }


class TimeUnits(object):
	FS = 0
	PS = 1
	NS = 2
	US = 3
	MS = 4
	S  = 5

	# Duration of one unit in seconds
	SECONDS = { FS : 1e-15, PS : 1e-12, NS : 1e-9, US : 1e-6, MS : 1e-3, S : 1.0 }

	@staticmethod
	def bestFor(seconds):
		"""Returns (value, unit): the largest unit in which the interval is still an integer >= 1."""
		for unit in (TimeUnits.S, TimeUnits.MS, TimeUnits.US, TimeUnits.NS, TimeUnits.PS):
			value = seconds / TimeUnits.SECONDS[unit]
			if value >= 1 and abs(value - round(value)) < 1e-6:
				return (int(round(value)), unit)
		return (int(round(seconds / TimeUnits.SECONDS[TimeUnits.FS])), TimeUnits.FS)


class RatioMode(object):
	"""Downsampling modes used in SetDataBuffers() and GetValues()."""
	RAW       = 0
	NONE      = RAW

	# Reduces every block of n values to just two values: a minimum and a maximum.
	# The minimum and maximum values are returned in two separate buffers.
	AGGREGATE = 1

	# Reduces every block of n values to a single value representing the average
	# (arithmetic mean) of all the values.
	AVERAGE   = 2

	# Reduces every block of n values to just the first value in the block,
	# discarding all the other values.
	DECIMATE  = 4

	NAME = { RAW : "RAW", AGGREGATE : "AGGREGATE", AVERAGE : "AVERAGE", DECIMATE : "DECIMATE" }
	NUMBER = { v : k for k, v in NAME.items() }


class Action(object):
	"""Used in SetDataBuffers() and in the trigger condition calls."""
	CLEAR_ALL                   = 0x00000001
	ADD                         = 0x00000002
	CLEAR_THIS_DATA_BUFFER      = 0x00001000
	CLEAR_WAVEFORM_DATA_BUFFERS = 0x00002000


class DataType(object):
	INT8_T  = 0
	INT16_T = 1
	INT32_T = 2
	UINT32_T = 3
	INT64_T = 4


class Trigger(object):  # this is called threshold in Pico docs
	MODE_LEVEL  = 0
	MODE_WINDOW = 1

	class Direction(object):
		ABOVE             = 0
		BELOW             = 1
		RISING            = 2
		FALLING           = 3
		RISING_OR_FALLING = 4
		ABOVE_LOWER       = 5
		BELOW_LOWER       = 6
		RISING_LOWER      = 7
		FALLING_LOWER     = 8
		# Windowing using both thresholds
		INSIDE            = ABOVE
		OUTSIDE           = BELOW
		ENTER             = RISING
		EXIT              = FALLING
		ENTER_OR_EXIT     = RISING_OR_FALLING
		POSITIVE_RUNT     = 9
		NEGATIVE_RUNT     = 10
		# no trigger set
		NONE              = RISING

		NAME = { "ABOVE" : ABOVE, "BELOW" : BELOW, "RISING" : RISING, "FALLING" : FALLING,
				 "RISING_OR_FALLING" : RISING_OR_FALLING, "INSIDE" : INSIDE, "OUTSIDE" : OUTSIDE,
				 "NONE" : NONE }

	class State(object):
		DONT_CARE = 0
		TRUE      = 1
		FALSE     = 2


class PulseWidth(object):
	"""Used in SetPulseWidthQualifierProperties()."""
	PW_TYPE_NONE         = 0
	PW_TYPE_LESS_THAN    = 1
	PW_TYPE_GREATER_THAN = 2
	PW_TYPE_IN_RANGE     = 3
	PW_TYPE_OUT_OF_RANGE = 4


class DigitalDirection(object):
	DONT_CARE         = 0
	LOW               = 1
	HIGH              = 2
	RISING            = 3
	FALLING           = 4
	RISING_OR_FALLING = 5


class DigitalPortHysteresis(object):
	VERY_HIGH_400MV = 0
	HIGH_200MV      = 1
	NORMAL_100MV    = 2
	LOW_50MV        = 3


MAX_LOGIC_LEVEL = 32767
MIN_LOGIC_LEVEL = -32767


class Status(object):
	"""The possible codes returned by the Pico API functions."""
	@staticmethod
	def message(code):
		"""Returns the message corresponding to the code."""
		if code in Status.MESSAGES:
			return Status.MESSAGES[code]
		return "Unknown code (%d)" % code

	@staticmethod
	def name(code):
		"""Returns the code name as a string.

		:param int code: a status code returned by a Pico function."""
		if not hasattr(Status, "NAMES"):
			# the first time this function is called, create a dict NAMES = { code : "code" }
			Status.NAMES = {}
			for c in dir(Status):
				if c[:5] == "PICO_":
					Status.NAMES[getattr(Status, c)] = c
		return Status.NAMES.get(code, "0x%08X" % code)

	@staticmethod
	def exceptionFor(code):
		"""Returns the PicoError subclass matching a status code."""
		if code in Status.POWER_STATES:
			return PowerChange
		if code in (Status.PICO_INVALID_NUMBER_CHANNELS_FOR_RESOLUTION,
					Status.PICO_CHANNEL_COMBINATION_NOT_VALID_IN_THIS_RESOLUTION):
			return InvalidChannelsForResolution
		if code in (Status.PICO_INVALID_TIMEBASE, Status.PICO_INVALID_SAMPLE_INTERVAL):
			return InvalidTimebase
		if code in (Status.PICO_MEMORY_FAIL, Status.PICO_MEMORY):
			return OutOfMemory
		if code in (Status.PICO_TOO_MANY_SAMPLES, Status.PICO_TOO_MANY_SEGMENTS):
			return BufferTooLarge
		if code in (Status.PICO_NOT_FOUND, Status.PICO_NOT_RESPONDING, Status.PICO_INVALID_HANDLE):
			return DeviceDisconnected
		return ProtocolError

	PICO_OK                                         = 0x000
	PICO_MAX_UNITS_OPENED                           = 0x001
	PICO_MEMORY_FAIL                                = 0x002
	PICO_NOT_FOUND                                  = 0x003
	PICO_FW_FAIL                                    = 0x004
	PICO_OPEN_OPERATION_IN_PROGRESS                 = 0x005
	PICO_OPERATION_FAILED                           = 0x006
	PICO_NOT_RESPONDING                             = 0x007
	PICO_CONFIG_FAIL                                = 0x008
	PICO_INVALID_HANDLE                             = 0x00C
	PICO_INVALID_PARAMETER                          = 0x00D
	PICO_INVALID_TIMEBASE                           = 0x00E
	PICO_INVALID_VOLTAGE_RANGE                      = 0x00F
	PICO_INVALID_CHANNEL                            = 0x010
	PICO_INVALID_TRIGGER_CHANNEL                    = 0x011
	PICO_INVALID_CONDITION_CHANNEL                  = 0x012
	PICO_STREAMING_FAILED                           = 0x014
	PICO_BLOCK_MODE_FAILED                          = 0x015
	PICO_NULL_PARAMETER                             = 0x016
	PICO_ETS_MODE_SET                               = 0x017
	PICO_DATA_NOT_AVAILABLE                         = 0x018
	PICO_STRING_BUFFER_TOO_SMALL                    = 0x019
	PICO_ETS_NOT_SUPPORTED                          = 0x01A
	PICO_AUTO_TRIGGER_TIME_TOO_SHORT                = 0x01B
	PICO_BUFFER_STALL                               = 0x01C
	PICO_TOO_MANY_SAMPLES                           = 0x01D
	PICO_TOO_MANY_SEGMENTS                          = 0x01E
	PICO_PULSE_WIDTH_QUALIFIER                      = 0x01F
	PICO_DELAY                                      = 0x020
	PICO_SOURCE_DETAILS                             = 0x021
	PICO_CONDITIONS                                 = 0x022
	PICO_USER_CALLBACK                              = 0x023
	PICO_DEVICE_SAMPLING                            = 0x024
	PICO_NO_SAMPLES_AVAILABLE                       = 0x025
	PICO_SEGMENT_OUT_OF_RANGE                       = 0x026
	PICO_BUSY                                       = 0x027
	PICO_STARTINDEX_INVALID                         = 0x028
	PICO_INVALID_INFO                               = 0x029
	PICO_INFO_UNAVAILABLE                           = 0x02A
	PICO_INVALID_SAMPLE_INTERVAL                    = 0x02B
	PICO_TRIGGER_ERROR                              = 0x02C
	PICO_MEMORY                                     = 0x02D
	PICO_CANCELLED                                  = 0x03A
	PICO_SEGMENT_NOT_USED                           = 0x03B
	PICO_INVALID_CALL                               = 0x03C
	PICO_NOT_USED                                   = 0x03F
	PICO_INVALID_SAMPLERATIO                        = 0x040
	PICO_INVALID_STATE                              = 0x041
	PICO_NOT_ENOUGH_SEGMENTS                        = 0x042
	PICO_DRIVER_FUNCTION                            = 0x043
	PICO_INVALID_COUPLING                           = 0x045
	PICO_BUFFERS_NOT_SET                            = 0x046
	PICO_RATIO_MODE_NOT_SUPPORTED                   = 0x047
	PICO_RAPID_NOT_SUPPORT_AGGREGATION              = 0x048
	PICO_INVALID_TRIGGER_PROPERTY                   = 0x049
	PICO_INVALID_ANALOGUE_OFFSET                    = 0x050
	PICO_NO_CAPTURES_AVAILABLE                      = 0x05D
	PICO_NOT_USED_IN_THIS_CAPTURE_MODE              = 0x05E
	PICO_COUPLING_NOT_SUPPORTED                     = 0x10C
	PICO_BANDWIDTH_NOT_SUPPORTED                    = 0x10D
	PICO_INVALID_BANDWIDTH                          = 0x10E
	PICO_ETS_NOT_RUNNING                            = 0x110
	PICO_INVALID_DIGITAL_PORT                       = 0x113
	PICO_INVALID_DIGITAL_CHANNEL                    = 0x114
	PICO_INVALID_DIGITAL_TRIGGER_DIRECTION          = 0x115
	PICO_ETS_NOT_AVAILABLE_WITH_LOGIC_CHANNELS      = 0x117
	PICO_POWER_SUPPLY_CONNECTED                     = 0x119
	PICO_POWER_SUPPLY_NOT_CONNECTED                 = 0x11A
	PICO_POWER_SUPPLY_REQUEST_INVALID               = 0x11B
	PICO_POWER_SUPPLY_UNDERVOLTAGE                  = 0x11C
	PICO_CAPTURING_DATA                             = 0x11D
	PICO_USB3_0_DEVICE_NON_USB3_0_PORT              = 0x11E
	PICO_NOT_SUPPORTED_BY_THIS_DEVICE               = 0x11F
	PICO_INVALID_DEVICE_RESOLUTION                  = 0x120
	PICO_INVALID_NUMBER_CHANNELS_FOR_RESOLUTION     = 0x121
	PICO_CHANNEL_DISABLED_DUE_TO_USB_POWERED        = 0x122
	PICO_TOO_MANY_CHANNELS_IN_USE                   = 0x129
	PICO_NULL_CONDITIONS                            = 0x12A
	PICO_DUPLICATE_CONDITION_SOURCE                 = 0x12B
	PICO_INVALID_CONDITION_INFO                     = 0x12C
	PICO_ARGUMENT_OUT_OF_RANGE                      = 0x12F
	PICO_CHANNEL_COMBINATION_NOT_VALID_IN_THIS_RESOLUTION = 0x15A
	PICO_WAITING_FOR_DATA_BUFFERS                   = 0x188
	PICO_DEVICE_TIME_STAMP_RESET                    = 0x01000000
	PICO_CUSTOM_ERROR                               = 0xFF00FF

	# statuses answered with ChangePowerSource()
	POWER_STATES = (PICO_POWER_SUPPLY_CONNECTED, PICO_POWER_SUPPLY_NOT_CONNECTED,
					PICO_POWER_SUPPLY_UNDERVOLTAGE, PICO_USB3_0_DEVICE_NON_USB3_0_PORT)

	MESSAGES = {
		PICO_OK                                         : "The PicoScope is functioning correctly",
		PICO_MAX_UNITS_OPENED                           : "An attempt has been made to open more than the maximum number of units.",
		PICO_MEMORY_FAIL                                : "Not enough memory could be allocated on the host machine",
		PICO_NOT_FOUND                                  : "No PicoScope could be found",
		PICO_FW_FAIL                                    : "Unable to download firmware",
		PICO_OPEN_OPERATION_IN_PROGRESS                 : "The driver is busy opening a device.",
		PICO_OPERATION_FAILED                           : "An unspecified error occurred.",
		PICO_NOT_RESPONDING                             : "The PicoScope is not responding to commands from the PC",
		PICO_CONFIG_FAIL                                : "The configuration information in the PicoScope has become corrupt or is missing",
		PICO_INVALID_HANDLE                             : "There is no device with the handle value passed",
		PICO_INVALID_PARAMETER                          : "A parameter value is not valid",
		PICO_INVALID_TIMEBASE                           : "The timebase is not supported or is invalid",
		PICO_INVALID_VOLTAGE_RANGE                      : "The voltage range is not supported or is invalid",
		PICO_INVALID_CHANNEL                            : "The channel number is not valid on this device or no channels have been set",
		PICO_INVALID_TRIGGER_CHANNEL                    : "The channel set for a trigger is not available on this device",
		PICO_INVALID_CONDITION_CHANNEL                  : "The channel set for a condition is not available on this device",
		PICO_STREAMING_FAILED                           : "Streaming has failed to start or has stopped without user request",
		PICO_BLOCK_MODE_FAILED                          : "Block failed to start - a parameter may have been set wrongly",
		PICO_NULL_PARAMETER                             : "A parameter that was required is NULL",
		PICO_ETS_MODE_SET                               : "The function call failed because ETS mode is being used.",
		PICO_DATA_NOT_AVAILABLE                         : "No data is available from a run block call",
		PICO_STRING_BUFFER_TOO_SMALL                    : "The buffer passed for the information was too small",
		PICO_ETS_NOT_SUPPORTED                          : "ETS is not supported on this device variant",
		PICO_AUTO_TRIGGER_TIME_TOO_SHORT                : "The auto trigger time is less than the time it will take to collect the pre-trigger data",
		PICO_BUFFER_STALL                               : "The collection of data has stalled as unread data would be overwritten",
		PICO_TOO_MANY_SAMPLES                           : "Number of samples requested is more than available in the current memory segment",
		PICO_TOO_MANY_SEGMENTS                          : "Not possible to create number of segments requested",
		PICO_PULSE_WIDTH_QUALIFIER                      : "A null pointer has been passed in the trigger function or one of the parameters is out of range",
		PICO_DELAY                                      : "One or more of the hold-off parameters are out of range",
		PICO_SOURCE_DETAILS                             : "One or more of the source details are incorrect",
		PICO_CONDITIONS                                 : "One or more of the conditions are incorrect",
		PICO_USER_CALLBACK                              : "The driver's thread is currently in a ready callback and therefore the action cannot be carried out",
		PICO_DEVICE_SAMPLING                            : "An attempt is being made to get stored data while streaming",
		PICO_NO_SAMPLES_AVAILABLE                       : "No samples available because a run has not been completed",
		PICO_SEGMENT_OUT_OF_RANGE                       : "The memory index is out of range",
		PICO_BUSY                                       : "Data cannot be returned yet",
		PICO_STARTINDEX_INVALID                         : "The start time to get stored data is out of range",
		PICO_INVALID_INFO                               : "The information number requested is not a valid number",
		PICO_INFO_UNAVAILABLE                           : "The handle is invalid so no information is available about the device.",
		PICO_INVALID_SAMPLE_INTERVAL                    : "The sample interval selected for streaming is out of range",
		PICO_TRIGGER_ERROR                              : "ETS is set but no trigger has been set. A trigger setting is required for ETS.",
		PICO_MEMORY                                     : "Driver cannot allocate memory",
		PICO_CANCELLED                                  : "A block collection has been cancelled",
		PICO_SEGMENT_NOT_USED                           : "The segment index is not currently being used",
		PICO_INVALID_CALL                               : "The wrong GetValues function has been called for the collection mode in use",
		PICO_NOT_USED                                   : "The function is not available",
		PICO_INVALID_SAMPLERATIO                        : "The aggregation ratio requested is out of range",
		PICO_INVALID_STATE                              : "Device is in an invalid state",
		PICO_NOT_ENOUGH_SEGMENTS                        : "The number of segments allocated is fewer than the number of captures requested",
		PICO_DRIVER_FUNCTION                            : "A driver function was called while another driver function was still being processed",
		PICO_INVALID_COUPLING                           : "An invalid coupling type was specified",
		PICO_BUFFERS_NOT_SET                            : "An attempt was made to get data before a data buffer was defined",
		PICO_RATIO_MODE_NOT_SUPPORTED                   : "The selected downsampling mode is not allowed",
		PICO_RAPID_NOT_SUPPORT_AGGREGATION              : "Aggregation was requested in rapid block mode",
		PICO_INVALID_TRIGGER_PROPERTY                   : "An invalid parameter was passed to the trigger channel properties",
		PICO_INVALID_ANALOGUE_OFFSET                    : "The analogue offset is out of range for the selected range and coupling",
		PICO_NO_CAPTURES_AVAILABLE                      : "No captures were completed in rapid block mode",
		PICO_NOT_USED_IN_THIS_CAPTURE_MODE              : "The function is not used in the current capture mode",
		PICO_COUPLING_NOT_SUPPORTED                     : "The requested coupling is not supported by this device",
		PICO_BANDWIDTH_NOT_SUPPORTED                    : "The requested bandwidth limit is not supported by this device",
		PICO_INVALID_BANDWIDTH                          : "The bandwidth limit value is invalid",
		PICO_ETS_NOT_RUNNING                            : "ETS is not running",
		PICO_INVALID_DIGITAL_PORT                       : "The digital port is not valid on this device",
		PICO_INVALID_DIGITAL_CHANNEL                    : "The digital channel is not valid on this device",
		PICO_INVALID_DIGITAL_TRIGGER_DIRECTION          : "The digital trigger direction is not valid",
		PICO_ETS_NOT_AVAILABLE_WITH_LOGIC_CHANNELS      : "When a digital port is enabled, ETS sample mode is not available for use.",
		PICO_POWER_SUPPLY_CONNECTED                     : "The DC power supply is connected.",
		PICO_POWER_SUPPLY_NOT_CONNECTED                 : "The DC power supply is not connected.",
		PICO_POWER_SUPPLY_REQUEST_INVALID               : "Incorrect power mode passed for current power source.",
		PICO_POWER_SUPPLY_UNDERVOLTAGE                  : "The supply voltage from the USB source is too low.",
		PICO_CAPTURING_DATA                             : "The oscilloscope is in the process of capturing data.",
		PICO_USB3_0_DEVICE_NON_USB3_0_PORT              : "A USB 3.0 device is connected to a non-USB 3.0 port.",
		PICO_NOT_SUPPORTED_BY_THIS_DEVICE               : "A function has been called that is not supported by the current device variant.",
		PICO_INVALID_DEVICE_RESOLUTION                  : "The device resolution is invalid (out of range).",
		PICO_INVALID_NUMBER_CHANNELS_FOR_RESOLUTION     : "The number of channels which can be enabled is limited at this resolution",
		PICO_CHANNEL_DISABLED_DUE_TO_USB_POWERED        : "USB power not sufficient to power all channels.",
		PICO_TOO_MANY_CHANNELS_IN_USE                   : "Too many channels are in use for the requested operation.",
		PICO_NULL_CONDITIONS                            : "A null pointer was passed for the trigger conditions",
		PICO_DUPLICATE_CONDITION_SOURCE                 : "The same source appears twice in one list of conditions",
		PICO_INVALID_CONDITION_INFO                     : "The condition action is not valid",
		PICO_ARGUMENT_OUT_OF_RANGE                      : "An argument is out of range",
		PICO_CHANNEL_COMBINATION_NOT_VALID_IN_THIS_RESOLUTION : "The enabled channels cannot be used together at this resolution",
		PICO_WAITING_FOR_DATA_BUFFERS                   : "The driver is waiting for new data buffers to be registered",
		PICO_DEVICE_TIME_STAMP_RESET                    : "The device time stamp counter has been reset",
		PICO_CUSTOM_ERROR                               : "Error raised by the acquisition engine",
	}


class PicoError(Exception):
	"""A simple name to catch it easily. Use .status to get the driver code."""
	def __init__ (self, title, status=Status.PICO_CUSTOM_ERROR):
		"""
		:param str title: a text to insert at the beginning of the message
		:param int status: one of Status.PICO_*
		"""
		if status == Status.PICO_CUSTOM_ERROR:
			msg = title
		else:
			msg = title + "(" + Status.name(status) + ") " + Status.message(status)
		Exception.__init__(self, msg)
		self.status = status

# Configuration: the request contradicts the device or the current settings.
class ConfigurationError(PicoError): pass
class TooManyChannelsForResolution(ConfigurationError): pass
class InvalidChannelsForResolution(ConfigurationError): pass
class InvalidTimebase(ConfigurationError): pass
class TriggerSourceDisabled(ConfigurationError): pass
class PulseWidthBoundsReversed(ConfigurationError): pass
class UnknownProbeRange(ConfigurationError): pass

# Resource: host or device memory.
class ResourceError(PicoError): pass
class OutOfMemory(ResourceError): pass
class BufferTooLarge(ResourceError): pass

# Transport: power source and USB link.
class TransportError(PicoError): pass
class PowerChange(TransportError): pass
class DeviceDisconnected(TransportError): pass

# Protocol: the driver answered something the engine does not handle.
class ProtocolError(PicoError): pass

# Application: misuse of the engine by its caller.
class ApplicationError(PicoError): pass
class WriterTimeout(ApplicationError): pass
class EngineBusy(ApplicationError): pass


def checkStatus(status, title):
	"""Raises the PicoError subclass matching status unless it is PICO_OK."""
	if status != Status.PICO_OK:
		raise Status.exceptionFor(status)(title, status)


class ChannelProperties(object):
	"""Threshold settings of one trigger source, in ADC counts."""
	def __init__ (self, channel, thresholdUpper=0, upperHysteresis=0, thresholdLower=0, lowerHysteresis=0,
				  thresholdMode=Trigger.MODE_LEVEL):
		self.channel = channel
		self.thresholdUpper = thresholdUpper
		self.upperHysteresis = upperHysteresis
		self.thresholdLower = thresholdLower
		self.lowerHysteresis = lowerHysteresis
		self.thresholdMode = thresholdMode


class Condition(object):
	def __init__ (self, source, state=Trigger.State.TRUE):
		self.source = source
		self.state = state


class Direction(object):
	def __init__ (self, channel, direction, thresholdMode=Trigger.MODE_LEVEL):
		self.channel = channel
		self.direction = direction
		self.thresholdMode = thresholdMode


class DigitalChannelDirection(object):
	def __init__ (self, channel, direction):
		self.channel = channel      # bit number 0 to 15 within the port
		self.direction = direction  # one of DigitalDirection.*


class StreamingDataInfo(object):
	"""Per-channel result of one GetStreamingLatestValues() call."""
	def __init__ (self, channel, mode=RatioMode.RAW):
		self.channel = channel
		self.mode = mode
		self.type = DataType.INT16_T
		self.noOfSamples = 0
		self.bufferIndex = 0
		self.startIndex = 0
		self.overflow = 0


class StreamingTriggerInfo(object):
	def __init__ (self):
		self.triggerAt = 0
		self.triggered = False
		self.autoStop = False


class TriggerInfo(object):
	"""Per-segment trigger information, as returned by GetTriggerInfoBulk()."""
	def __init__ (self, status=Status.PICO_OK, segmentIndex=0, triggerIndex=0, triggerTime=0.0,
				  timeUnits=TimeUnits.NS, missedTriggers=0, timeStampCounter=0):
		self.status = status
		self.segmentIndex = segmentIndex
		self.triggerIndex = triggerIndex
		self.triggerTime = triggerTime
		self.timeUnits = timeUnits
		self.missedTriggers = missedTriggers
		self.timeStampCounter = timeStampCounter


class ProbeInteraction(object):
	"""State of an intelligent probe as reported by the probe interaction callback."""
	def __init__ (self, channel, connected=False, enabled=False, probeName=0, requiresPower=False,
				  isPowered=False, status=Status.PICO_OK, probeOff=ProbeRange.PICO_CONNECT_PROBE_OFF,
				  rangeFirst=0, rangeLast=0, rangeCurrent=0, couplingFirst=Coupling.DC,
				  couplingLast=Coupling.DC, couplingCurrent=Coupling.DC, filterFlags=0, filterCurrent=0,
				  defaultFilter=0):
		self.channel = channel
		self.connected = connected
		self.enabled = enabled
		self.probeName = probeName
		self.requiresPower = requiresPower
		self.isPowered = isPowered
		self.status = status
		self.probeOff = probeOff
		self.rangeFirst = rangeFirst
		self.rangeLast = rangeLast
		self.rangeCurrent = rangeCurrent
		self.couplingFirst = couplingFirst
		self.couplingLast = couplingLast
		self.couplingCurrent = couplingCurrent
		self.filterFlags = filterFlags
		self.filterCurrent = filterCurrent
		self.defaultFilter = defaultFilter


# ctypes structures shared by the driver generations

class TRIGGER_CHANNEL_PROPERTIES(Structure):
	_fields_ = [("thresholdUpper", c_int16),
				("thresholdUpperHysteresis", c_uint16),
				("thresholdLower", c_int16),
				("thresholdLowerHysteresis", c_uint16),
				("channel", c_int32)]

class CONDITION(Structure):
	_fields_ = [("source", c_int32),
				("condition", c_int32)]

class DIRECTION(Structure):
	_fields_ = [("channel", c_int32),
				("direction", c_int32),
				("thresholdMode", c_int32)]

class DIGITAL_CHANNEL_DIRECTIONS(Structure):
	_fields_ = [("channel", c_int32),
				("direction", c_int32)]

class STREAMING_DATA_INFO(Structure):
	_fields_ = [("channel", c_int32),
				("mode", c_int32),
				("type", c_int32),
				("noOfSamples", c_int32),
				("bufferIndex", c_uint64),
				("startIndex", c_int32),
				("overflow", c_int16)]

class STREAMING_DATA_TRIGGER_INFO(Structure):
	_fields_ = [("triggerAt", c_uint64),
				("triggered", c_int16),
				("autoStop", c_int16)]

class TRIGGER_INFO(Structure):
	_fields_ = [("status", c_uint32),
				("segmentIndex", c_uint64),
				("triggerIndex", c_uint64),
				("triggerTime", c_double),
				("timeUnits", c_int32),
				("missedTriggers", c_uint64),
				("timeStampCounter", c_uint64)]

class PS5000A_TRIGGER_INFO(Structure):
	_fields_ = [("status", c_uint32),
				("segmentIndex", c_uint32),
				("triggerIndex", c_uint32),
				("triggerTime", c_int64),
				("timeUnits", c_int16),
				("reserved0", c_int16),
				("timeStampCounter", c_uint64)]

class USER_PROBE_INTERACTIONS(Structure):
	_fields_ = [("connected", c_uint16),
				("channel", c_int32),
				("enabled", c_uint16),
				("probeName", c_int32),
				("requiresPower", c_uint8),
				("isPowered", c_uint8),
				("status", c_uint32),
				("probeOff", c_int32),
				("rangeFirst", c_int32),
				("rangeLast", c_int32),
				("rangeCurrent", c_int32),
				("couplingFirst", c_int32),
				("couplingLast", c_int32),
				("couplingCurrent", c_int32),
				("filterFlags", c_int32),
				("filterCurrent", c_int32),
				("defaultFilter", c_int32)]


BlockReadyFunc = CFUNCTYPE(None, c_int16, c_uint32, c_void_p)
StreamingReadyFunc = CFUNCTYPE(None, c_int16, c_int32, c_uint32, c_int16, c_uint32, c_int16, c_int16, c_void_p)
ProbeInteractionsFunc = CFUNCTYPE(None, c_int16, c_uint32, POINTER(USER_PROBE_INTERACTIONS), c_uint32)


class ModelSpecification(object):
	"""
	Capabilities and limits of one driver generation.

	The acquisition engine never branches on the family name: every difference between series is a
	value held here.
	"""
	def __init__ (self, family, dll, prefix):
		self.family = family               # (string) driver family, for ex. "ps5000a"
		self.dllName = dll                 # (string) base name of the driver library
		self.funcPrefix = prefix           # (string) prefix of the exported functions
		self.variant = None                # (None or string) PICO_VARIANT_INFO of the open unit
		self.channelCount = 4              # (int) number of analog channels
		self.digitalPorts = 0              # (int) number of 8-bit digital ports (MSO only)
		self.resolutions = {}              # (dict) resolution -> maximum number of enabled channels
		self.maxADC = {}                   # (dict) resolution -> maximum ADC code
		self.defaultResolution = Resolution.DR_8BIT
		self.maxSegments = 0               # (int) filled by the device handle when the unit is opened
		self.maxTimeBase = 2**32 - 1       # (int)
		self.couplings = (Coupling.AC, Coupling.DC)
		self.bandwidths = (BandwidthLimiter.FULL,)
		self.hasETS = False
		self.hasAWG = False
		self.hasPowerSource = False        # (bool) may report PICO_POWER_SUPPLY_* statuses
		self.hasProbeInteractions = False  # (bool) PicoConnect intelligent probes
		self.hasAnalogueOffsetLimits = True

	@property
	def isMSO(self):
		return self.digitalPorts > 0

	def maxChannels (self, resolution):
		"""Returns the number of channels that can be enabled together at this resolution."""
		if resolution not in self.resolutions:
			raise PicoError("Resolution %d bits is not available on %s." % (Resolution.inBits(resolution), self.family),
							Status.PICO_INVALID_DEVICE_RESOLUTION)
		return self.resolutions[resolution]

	def analogChannels (self):
		return Channel.ANALOG[:self.channelCount]

	def digitalPortList (self):
		return Channel.PORTS[:self.digitalPorts]

	def updateFromVariant (self, variant):
		"""
		Adapts channel and port counts to the variant string of the open unit.

		The second character of the variant is the number of analog channels (5444D, 6824E); MSO
		variants have two digital ports.
		"""
		self.variant = variant
		if len(variant) > 1 and variant[1].isdigit() and int(variant[1]) in (2, 4, 8):
			self.channelCount = int(variant[1])
		if "MSO" in variant.upper():
			self.digitalPorts = 2


def getModel(family):
	"""
	Returns a new ModelSpecification for a driver family.

	:param str family: one of PicoscopeFamily.*
	:raise: PicoError if the family is not supported.
	"""
	if family == PicoscopeFamily.PS5000A:
		model = ModelSpecification(family, "ps5000a", "ps5000a")
		model.resolutions = { Resolution.DR_8BIT : 8, Resolution.DR_12BIT : 4, Resolution.DR_14BIT : 2,
							  Resolution.DR_15BIT : 2, Resolution.DR_16BIT : 1 }
		model.maxADC = { Resolution.DR_8BIT : 32512, Resolution.DR_12BIT : 32767, Resolution.DR_14BIT : 32767,
						 Resolution.DR_15BIT : 32767, Resolution.DR_16BIT : 32767 }
		model.bandwidths = (BandwidthLimiter.FULL, BandwidthLimiter.BW_20MHZ)
		model.hasETS = True
		model.hasAWG = True
		model.hasPowerSource = True
		return model
	if family == PicoscopeFamily.PS6000A:
		model = ModelSpecification(family, "ps6000a", "ps6000a")
		model.resolutions = { Resolution.DR_8BIT : 8, Resolution.DR_10BIT : 4, Resolution.DR_12BIT : 2 }
		model.maxADC = { Resolution.DR_8BIT : 32512, Resolution.DR_10BIT : 32704, Resolution.DR_12BIT : 32736 }
		model.couplings = (Coupling.AC, Coupling.DC, Coupling.DC_50OHM)
		model.bandwidths = (BandwidthLimiter.FULL, BandwidthLimiter.BW_20MHZ, BandwidthLimiter.BW_200MHZ)
		model.hasAWG = True
		model.hasProbeInteractions = True
		return model
	raise PicoError("Unsupported family (%s)." % family)


def loadLibrary(name):
	"""
	Loads a Pico driver library from its base name ("ps5000a" gives ps5000a.dll or libps5000a.so).

	The directory named by the PICO_SDK_PATH environment variable is searched first.
	"""
	candidates = []
	sdkPath = os.environ.get("PICO_SDK_PATH")
	if sdkPath:
		if sys.platform == "win32":
			candidates.append(os.path.join(sdkPath, name + ".dll"))
		else:
			candidates.append(os.path.join(sdkPath, "lib" + name + ".so"))
	found = ctypes.util.find_library(name)
	if found:
		candidates.append(found)
	for path in candidates:
		if sys.platform != "win32" or os.path.isfile(path) or path == found:
			try:
				if sys.platform == "win32":
					return ctypes.WinDLL(path)
				return ctypes.CDLL(path)
			except OSError:
				continue
	raise PicoError("Can not load %s library." % name, Status.PICO_NOT_FOUND)


class Driver(object):
	"""
	Operation set of one driver generation.

	Every method returns the PICO_STATUS first; outputs follow in a tuple. Buffers are numpy int16
	arrays owned by the caller. Callbacks may be invoked from a driver thread.
	"""
	def __init__ (self, model):
		self.model = model
		self.handle = None

	def enumerateUnits (self):
		raise NotImplementedError ("enumerateUnits()")

	def openUnit (self, serial, resolution):
		raise NotImplementedError ("openUnit()")

	def changePowerSource (self, powerState):
		raise NotImplementedError ("changePowerSource()")

	def closeUnit (self):
		raise NotImplementedError ("closeUnit()")

	def getUnitInfo (self, info):
		raise NotImplementedError ("getUnitInfo()")

	def getAdcLimits (self, resolution):
		raise NotImplementedError ("getAdcLimits()")

	def setDeviceResolution (self, resolution):
		raise NotImplementedError ("setDeviceResolution()")

	def getDeviceResolution (self):
		raise NotImplementedError ("getDeviceResolution()")

	def setChannelOn (self, channel, coupling, probeRange, analogueOffset, bandwidth):
		raise NotImplementedError ("setChannelOn()")

	def setChannelOff (self, channel):
		raise NotImplementedError ("setChannelOff()")

	def getAnalogueOffsetLimits (self, probeRange, coupling):
		raise NotImplementedError ("getAnalogueOffsetLimits()")

	def setDigitalPortOn (self, port, logicLevels, hysteresis):
		raise NotImplementedError ("setDigitalPortOn()")

	def setDigitalPortOff (self, port):
		raise NotImplementedError ("setDigitalPortOff()")

	def getMaxSegments (self):
		raise NotImplementedError ("getMaxSegments()")

	def memorySegments (self, nSegments):
		raise NotImplementedError ("memorySegments()")

	def setNoOfCaptures (self, nCaptures):
		raise NotImplementedError ("setNoOfCaptures()")

	def getNoOfCaptures (self):
		raise NotImplementedError ("getNoOfCaptures()")

	def getTimebase (self, timebase, noSamples, segmentIndex):
		raise NotImplementedError ("getTimebase()")

	def getMinimumTimebase (self, channelFlags, resolution):
		raise NotImplementedError ("getMinimumTimebase()")

	def setEts (self, mode, cycles, interleave):
		raise NotImplementedError ("setEts()")

	def setEtsTimeBuffer (self, buffer):
		raise NotImplementedError ("setEtsTimeBuffer()")

	def setDataBuffers (self, channel, bufferMax, bufferMin, nSamples, segmentIndex, ratioMode, action):
		raise NotImplementedError ("setDataBuffers()")

	def runBlock (self, preSamples, postSamples, timebase, segmentIndex, readyCallback):
		raise NotImplementedError ("runBlock()")

	def isReady (self):
		raise NotImplementedError ("isReady()")

	def runStreaming (self, sampleInterval, timeUnits, preSamples, postSamples, autoStop, ratio, ratioMode):
		raise NotImplementedError ("runStreaming()")

	def getStreamingLatestValues (self, dataInfos):
		raise NotImplementedError ("getStreamingLatestValues()")

	def getValues (self, startIndex, noOfSamples, ratio, ratioMode, segmentIndex):
		raise NotImplementedError ("getValues()")

	def getValuesBulk (self, startIndex, noOfSamples, fromSegment, toSegment, ratio, ratioMode):
		raise NotImplementedError ("getValuesBulk()")

	def getTriggerInfoBulk (self, fromSegment, toSegment):
		raise NotImplementedError ("getTriggerInfoBulk()")

	def stop (self):
		raise NotImplementedError ("stop()")

	def setTriggerChannelProperties (self, properties, auxOutputEnable, autoTriggerMicroSeconds):
		raise NotImplementedError ("setTriggerChannelProperties()")

	def setTriggerChannelConditions (self, conditions, action):
		raise NotImplementedError ("setTriggerChannelConditions()")

	def setTriggerChannelDirections (self, directions):
		raise NotImplementedError ("setTriggerChannelDirections()")

	def setTriggerDelay (self, delay):
		raise NotImplementedError ("setTriggerDelay()")

	def setPulseWidthQualifierProperties (self, lower, upper, pwType):
		raise NotImplementedError ("setPulseWidthQualifierProperties()")

	def setPulseWidthQualifierConditions (self, conditions, action):
		raise NotImplementedError ("setPulseWidthQualifierConditions()")

	def setPulseWidthQualifierDirections (self, directions):
		raise NotImplementedError ("setPulseWidthQualifierDirections()")

	def setTriggerDigitalPortProperties (self, port, directions):
		raise NotImplementedError ("setTriggerDigitalPortProperties()")

	def setProbeInteractionCallback (self, callback):
		raise NotImplementedError ("setProbeInteractionCallback()")


def _pointer(buffer):
	"""Returns an int16_t* on a numpy buffer, or NULL for None and empty buffers."""
	if buffer is None or len(buffer) == 0:
		return None
	return buffer.ctypes.data_as(POINTER(c_int16))


class CtypesDriver(Driver):
	"""Calls shared by all ctypes driver generations."""
	def __init__ (self, model):
		Driver.__init__(self, model)
		self.dll = loadLibrary(model.dllName)
		# references kept alive while the driver may call them
		self._blockReady = None
		self._probeCallback = None
		self._userBlockReady = None

	def _func (self, name):
		"""
		Retrieves a function of the loaded library based on its name (without prefix).

		:param str name: name of the function (for example "CloseUnit" for "ps5000aCloseUnit")
		:return: a function on success
		:raises: PicoError
		"""
		cmd = self.model.funcPrefix + name
		try:
			func = getattr (self.dll, cmd)
		except AttributeError:
			raise PicoError("The command '%s' is not available in this library (%s)." % (cmd, self.model.dllName), Status.PICO_NOT_USED)
		return func

	def _onBlockReady (self, handle, status, pParameter):
		if self._userBlockReady is not None:
			self._userBlockReady(status)

	def enumerateUnits (self):
		#ps????EnumerateUnits(int16_t* count, int8_t* serials, int16_t* serialLth)
		count = c_int16()
		serials = create_string_buffer(256)
		serialLth = c_int16(len(serials))
		status = self._func("EnumerateUnits")(byref(count), serials, byref(serialLth))
		if status != Status.PICO_OK or count.value == 0:
			return (status, [])
		return (status, [s for s in serials.value.decode("ascii").split(",") if s])

	def closeUnit (self):
		#ps????CloseUnit(int16_t handle)
		status = self._func("CloseUnit") (self.handle)
		if status == Status.PICO_OK:
			self.handle = None
		return status

	def getUnitInfo (self, info):
		#ps????GetUnitInfo(int16_t handle, int8_t* string, int16_t stringLength, int16_t* requiredSize, PICO_INFO info)
		string = create_string_buffer(64)
		requiredSize = c_int16()
		status = self._func("GetUnitInfo") (self.handle, string, c_int16(len(string)), byref(requiredSize), c_uint32(info))
		return (status, string.value.decode("ascii", "replace"))

	def setDeviceResolution (self, resolution):
		#ps????SetDeviceResolution(int16_t handle, enum resolution)
		return self._func("SetDeviceResolution")(self.handle, c_int32(resolution))

	def getDeviceResolution (self):
		#ps????GetDeviceResolution(int16_t handle, enum* resolution)
		resolution = c_int32()
		status = self._func("GetDeviceResolution")(self.handle, byref(resolution))
		return (status, resolution.value)

	def isReady (self):
		#ps????IsReady(int16_t handle, int16_t* ready)
		ready = c_int16(0)
		status = self._func("IsReady") (self.handle, byref(ready))
		return (status, bool(ready.value))

	def stop (self):
		#ps????Stop(int16_t handle)
		return self._func("Stop")(self.handle)

	def setTriggerDelay (self, delay):
		#ps????SetTriggerDelay(int16_t handle, uint32_t delay)
		return self._func("SetTriggerDelay")(self.handle, c_uint32(delay))

	def setPulseWidthQualifierProperties (self, lower, upper, pwType):
		#ps????SetPulseWidthQualifierProperties(int16_t handle, uint32_t lower, uint32_t upper, enum type)
		return self._func("SetPulseWidthQualifierProperties")(self.handle, c_uint32(lower), c_uint32(upper), c_int32(pwType))

	@staticmethod
	def _properties (properties):
		array = (TRIGGER_CHANNEL_PROPERTIES * max(len(properties), 1))()
		for i, p in enumerate(properties):
			array[i] = TRIGGER_CHANNEL_PROPERTIES(p.thresholdUpper, p.upperHysteresis, p.thresholdLower,
												  p.lowerHysteresis, p.channel)
		return array

	@staticmethod
	def _conditions (conditions):
		array = (CONDITION * max(len(conditions), 1))()
		for i, c in enumerate(conditions):
			array[i] = CONDITION(c.source, c.state)
		return array

	@staticmethod
	def _directions (directions):
		array = (DIRECTION * max(len(directions), 1))()
		for i, d in enumerate(directions):
			array[i] = DIRECTION(d.channel, d.direction, d.thresholdMode)
		return array

	@staticmethod
	def _digitalDirections (directions):
		array = (DIGITAL_CHANNEL_DIRECTIONS * max(len(directions), 1))()
		for i, d in enumerate(directions):
			array[i] = DIGITAL_CHANNEL_DIRECTIONS(d.channel, d.direction)
		return array


class Ps5000aDriver(CtypesDriver):
	"""
	PicoScope 5000 series (A/B/D) driver, ps5000a API.

	This generation has no buffer action flags and streams through a callback into a driver-side
	overview buffer, so this class copies streamed samples into the buffers registered by the
	caller and reports PICO_WAITING_FOR_DATA_BUFFERS itself when they are full.
	"""
	def __init__ (self, model=None):
		CtypesDriver.__init__(self, model or getModel(PicoscopeFamily.PS5000A))
		self._registered = {}      # (channel, segment, mode) -> (max, min)
		self._streaming = False
		self._overview = {}        # channel -> (max, min) driver-side streaming buffers
		self._appBuffers = {}      # channel -> (max, min, n) caller buffers receiving streamed data
		self._writeIndex = 0
		self._pending = []         # streamed samples not yet copied, list of ({channel: (max, min)}, trigger offset or None)
		self._autoStop = False
		self._streamingCallback = StreamingReadyFunc(self._onStreamingReady)
		self._latest = None

	def _deviceChannel (self, channel):
		if channel == Channel.EXT:
			return 4
		if channel == Channel.AUX:
			return 5
		if channel in Channel.PORTS:
			return 0x80 + channel - Channel.PORT0
		return channel

	def _deviceRange (self, probeRange):
		"""Maps a PicoConnect probe range onto the PS5000A_RANGE of the input."""
		if ProbeRange.PICO_X1_PROBE_10MV <= probeRange <= ProbeRange.PICO_X1_PROBE_20V:
			return probeRange
		if ProbeRange.PICO_X10_PROBE_100MV <= probeRange <= ProbeRange.PICO_X10_PROBE_200V:
			# a x10 probe divides the signal: 100 mV at the tip is 10 mV at the input
			return probeRange - ProbeRange.PICO_X10_PROBE_100MV
		raise UnknownProbeRange("Probe range %s is not available on the ps5000a driver." % str(ProbeRange.name(probeRange)))

	def openUnit (self, serial, resolution):
		#ps5000aOpenUnit(int16_t* handle, int8_t* serial, PS5000A_DEVICE_RESOLUTION resolution)
		if resolution is None:
			resolution = self.model.defaultResolution
		handle = c_int16()
		status = self._func("OpenUnit")(byref(handle), serial.encode("ascii") if serial else None, c_int32(resolution))
		if handle.value > 0:
			self.handle = handle
		return status

	def changePowerSource (self, powerState):
		#ps5000aChangePowerSource(int16_t handle, PICO_STATUS powerState)
		return self._func("ChangePowerSource")(self.handle, c_uint32(powerState))

	def getAdcLimits (self, resolution):
		#ps5000aMinimumValue(int16_t handle, int16_t* value)
		#ps5000aMaximumValue(int16_t handle, int16_t* value)
		status, current = self.getDeviceResolution()
		if status != Status.PICO_OK:
			return (status, 0, 0)
		if current != resolution:
			# the driver only reports limits of the active resolution
			return (Status.PICO_OK, -self.model.maxADC[resolution], self.model.maxADC[resolution])
		minValue = c_int16()
		maxValue = c_int16()
		status = self._func("MinimumValue")(self.handle, byref(minValue))
		if status == Status.PICO_OK:
			status = self._func("MaximumValue")(self.handle, byref(maxValue))
		return (status, minValue.value, maxValue.value)

	def setChannelOn (self, channel, coupling, probeRange, analogueOffset, bandwidth):
		#ps5000aSetChannel(int16_t handle, PS5000A_CHANNEL channel, int16_t enabled, PS5000A_COUPLING type, PS5000A_RANGE range, float analogOffset)
		status = self._func("SetChannel")(self.handle, c_int32(channel), c_int16(1), c_int32(coupling),
										  c_int32(self._deviceRange(probeRange)), c_float(analogueOffset))
		if status != Status.PICO_OK:
			return status
		#ps5000aSetBandwidthFilter(int16_t handle, PS5000A_CHANNEL channel, PS5000A_BANDWIDTH_LIMITER bandwidth)
		return self._func("SetBandwidthFilter")(self.handle, c_int32(channel),
												c_int32(0 if bandwidth == BandwidthLimiter.FULL else 1))

	def setChannelOff (self, channel):
		#ps5000aSetChannel(int16_t handle, PS5000A_CHANNEL channel, int16_t enabled, PS5000A_COUPLING type, PS5000A_RANGE range, float analogOffset)
		return self._func("SetChannel")(self.handle, c_int32(channel), c_int16(0), c_int32(Coupling.DC), c_int32(0), c_float(0.0))

	def getAnalogueOffsetLimits (self, probeRange, coupling):
		#ps5000aGetAnalogueOffset(int16_t handle, PS5000A_RANGE range, PS5000A_COUPLING coupling, float* maximumVoltage, float* minimumVoltage)
		maximum = c_float()
		minimum = c_float()
		status = self._func("GetAnalogueOffset")(self.handle, c_int32(self._deviceRange(probeRange)), c_int32(coupling),
												 byref(maximum), byref(minimum))
		return (status, minimum.value, maximum.value)

	def setDigitalPortOn (self, port, logicLevels, hysteresis):
		#ps5000aSetDigitalPort(int16_t handle, PS5000A_CHANNEL port, int16_t enabled, int16_t logicLevel)
		return self._func("SetDigitalPort")(self.handle, c_int32(self._deviceChannel(port)), c_int16(1), c_int16(logicLevels[0]))

	def setDigitalPortOff (self, port):
		#ps5000aSetDigitalPort(int16_t handle, PS5000A_CHANNEL port, int16_t enabled, int16_t logicLevel)
		return self._func("SetDigitalPort")(self.handle, c_int32(self._deviceChannel(port)), c_int16(0), c_int16(0))

	def getMaxSegments (self):
		#ps5000aGetMaxSegments(int16_t handle, uint32_t* maxSegments)
		maxSegments = c_uint32()
		status = self._func("GetMaxSegments")(self.handle, byref(maxSegments))
		return (status, maxSegments.value)

	def memorySegments (self, nSegments):
		#ps5000aMemorySegments(int16_t handle, uint32_t nSegments, int32_t* nMaxSamples)
		nMaxSamples = c_int32()
		status = self._func("MemorySegments")(self.handle, c_uint32(nSegments), byref(nMaxSamples))
		return (status, nMaxSamples.value)

	def setNoOfCaptures (self, nCaptures):
		#ps5000aSetNoOfCaptures(int16_t handle, uint32_t nCaptures)
		return self._func("SetNoOfCaptures")(self.handle, c_uint32(nCaptures))

	def getNoOfCaptures (self):
		#ps5000aGetNoOfCaptures(int16_t handle, uint32_t* nCaptures)
		nCaptures = c_uint32()
		status = self._func("GetNoOfCaptures")(self.handle, byref(nCaptures))
		return (status, nCaptures.value)

	def getTimebase (self, timebase, noSamples, segmentIndex):
		#ps5000aGetTimebase2(int16_t handle, uint32_t timebase, int32_t noSamples, float* timeIntervalNanoseconds, int32_t* maxSamples, uint32_t segmentIndex)
		timeIntervalNanoseconds = c_float()
		maxSamples = c_int32()
		status = self._func("GetTimebase2") (self.handle, c_uint32(timebase), c_int32(noSamples), byref(timeIntervalNanoseconds), byref(maxSamples), c_uint32(segmentIndex))
		return (status, timeIntervalNanoseconds.value * 1e-9, maxSamples.value)

	def getMinimumTimebase (self, channelFlags, resolution):
		# no stateless query in this generation: the driver answers for the channels currently set
		for timebase in range(0, 64):
			status, interval, _ = self.getTimebase(timebase, 0, 0)
			if status == Status.PICO_OK:
				return (status, timebase, interval)
			if status != Status.PICO_INVALID_TIMEBASE:
				return (status, 0, 0.0)
		return (Status.PICO_INVALID_TIMEBASE, 0, 0.0)

	def setEts (self, mode, cycles, interleave):
		#ps5000aSetEts(int16_t handle, PS5000A_ETS_MODE mode, int16_t etsCycles, int16_t etsInterleave, int32_t* sampleTimePicoseconds)
		sampleTimePicoseconds = c_int32()
		status = self._func("SetEts")(self.handle, c_int32(mode), c_int16(cycles), c_int16(interleave), byref(sampleTimePicoseconds))
		return (status, sampleTimePicoseconds.value)

	def setEtsTimeBuffer (self, buffer):
		#ps5000aSetEtsTimeBuffer(int16_t handle, int64_t* buffer, int32_t bufferLth)
		if buffer is None:
			return self._func("SetEtsTimeBuffer")(self.handle, None, c_int32(0))
		return self._func("SetEtsTimeBuffer")(self.handle, buffer.ctypes.data_as(POINTER(c_int64)), c_int32(len(buffer)))

	def _setDataBuffers (self, channel, bufferMax, bufferMin, nSamples, segmentIndex, ratioMode):
		#ps5000aSetDataBuffers(int16_t handle, PS5000A_CHANNEL channel, int16_t* bufferMax, int16_t* bufferMin, int32_t bufferLth, uint32_t segmentIndex, PS5000A_RATIO_MODE mode)
		return self._func("SetDataBuffers")(self.handle, c_int32(channel), _pointer(bufferMax), _pointer(bufferMin),
											c_int32(nSamples), c_uint32(segmentIndex), c_int32(ratioMode))

	def setDataBuffers (self, channel, bufferMax, bufferMin, nSamples, segmentIndex, ratioMode, action):
		if action & Action.CLEAR_ALL:
			for (ch, segment, mode) in list(self._registered.keys()):
				status = self._setDataBuffers(ch, None, None, 0, segment, mode)
				if status != Status.PICO_OK:
					return status
			self._registered = {}
			self._appBuffers = {}
		if action & Action.CLEAR_THIS_DATA_BUFFER:
			self._registered.pop((channel, segmentIndex, ratioMode), None)
			self._appBuffers.pop(channel, None)
			return self._setDataBuffers(channel, None, None, 0, segmentIndex, ratioMode)
		if not (action & Action.ADD) or bufferMax is None:
			return Status.PICO_OK
		self._appBuffers[channel] = (bufferMax, bufferMin, nSamples)
		if self._streaming:
			# a fresh set: the overview buffers stay registered with the driver
			self._writeIndex = 0
			return Status.PICO_OK
		self._registered[(channel, segmentIndex, ratioMode)] = (bufferMax, bufferMin)
		return self._setDataBuffers(channel, bufferMax, bufferMin, nSamples, segmentIndex, ratioMode)

	def runBlock (self, preSamples, postSamples, timebase, segmentIndex, readyCallback):
		#ps5000aRunBlock(int16_t handle, int32_t noOfPreTriggerSamples, int32_t noOfPostTriggerSamples, uint32_t timebase, int32_t* timeIndisposedMs, uint32_t segmentIndex, ps5000aBlockReady lpReady, void* pParameter)
		timeIndisposedMs = c_int32()
		self._userBlockReady = readyCallback
		self._blockReady = BlockReadyFunc(self._onBlockReady)
		status = self._func("RunBlock")(self.handle, c_int32(preSamples), c_int32(postSamples), c_uint32(timebase),
										byref(timeIndisposedMs), c_uint32(segmentIndex), self._blockReady, None)
		return (status, timeIndisposedMs.value)

	def runStreaming (self, sampleInterval, timeUnits, preSamples, postSamples, autoStop, ratio, ratioMode):
		#ps5000aRunStreaming(int16_t handle, uint32_t* sampleInterval, PS5000A_TIME_UNITS sampleIntervalTimeUnits, uint32_t maxPreTriggerSamples, uint32_t maxPostTriggerSamples, int16_t autoStop, uint32_t downSampleRatio, PS5000A_RATIO_MODE downSampleRatioMode, uint32_t overviewBufferSize)
		overviewSize = max([n for (_, _, n) in self._appBuffers.values()] or [0])
		self._overview = {}
		for channel, (bufMax, bufMin, n) in self._appBuffers.items():
			ovMax = numpy.zeros(overviewSize, dtype=numpy.int16)
			ovMin = numpy.zeros(overviewSize, dtype=numpy.int16) if len(bufMin) else None
			status = self._setDataBuffers(channel, ovMax, ovMin, overviewSize, 0, ratioMode)
			if status != Status.PICO_OK:
				return (status, sampleInterval)
			self._registered[(channel, 0, ratioMode)] = (ovMax, ovMin)
			self._overview[channel] = (ovMax, ovMin)
		interval = c_uint32(int(sampleInterval))
		status = self._func("RunStreaming")(self.handle, byref(interval), c_int32(timeUnits), c_uint32(preSamples),
											c_uint32(postSamples), c_int16(1 if autoStop else 0), c_uint32(ratio),
											c_int32(ratioMode), c_uint32(overviewSize))
		if status == Status.PICO_OK:
			self._streaming = True
			self._writeIndex = 0
			self._pending = []
			self._autoStop = False
		return (status, interval.value)

	def _onStreamingReady (self, handle, noOfSamples, startIndex, overflow, triggerAt, triggered, autoStop, pParameter):
		chunk = {}
		for channel, (ovMax, ovMin) in self._overview.items():
			chunk[channel] = (ovMax[startIndex:startIndex + noOfSamples].copy(),
							  None if ovMin is None else ovMin[startIndex:startIndex + noOfSamples].copy())
		self._latest = (noOfSamples, overflow, triggerAt, triggered, autoStop, chunk)

	def getStreamingLatestValues (self, dataInfos):
		#ps5000aGetStreamingLatestValues(int16_t handle, ps5000aStreamingReady lpPs5000aReady, void* pParameter)
		triggerInfo = StreamingTriggerInfo()
		status = Status.PICO_OK
		overflow = 0
		if not self._pending:
			self._latest = None
			status = self._func("GetStreamingLatestValues")(self.handle, self._streamingCallback, None)
			if status != Status.PICO_OK:
				return (status, triggerInfo)
			if self._latest is not None:
				noOfSamples, overflow, triggerAt, triggered, autoStop, chunk = self._latest
				if noOfSamples > 0:
					# the driver counts triggerAt from the first sample of the chunk
					self._pending.append((chunk, max(0, triggerAt) if triggered else None))
				self._autoStop = self._autoStop or bool(autoStop)
		copied = 0
		startIndex = self._writeIndex
		while self._pending:
			chunk, chunkTrigger = self._pending[0]
			length = len(next(iter(chunk.values()))[0]) if chunk else 0
			space = min([n for (_, _, n) in self._appBuffers.values()] or [0]) - self._writeIndex
			count = min(space, length)
			for channel, (srcMax, srcMin) in chunk.items():
				bufMax, bufMin, _ = self._appBuffers[channel]
				bufMax[self._writeIndex:self._writeIndex + count] = srcMax[:count]
				if srcMin is not None and len(bufMin):
					bufMin[self._writeIndex:self._writeIndex + count] = srcMin[:count]
			if chunkTrigger is not None and chunkTrigger < count:
				# reported as an index in the caller's buffer set, as the other generations do
				triggerInfo.triggered = True
				triggerInfo.triggerAt = self._writeIndex + chunkTrigger
				chunkTrigger = None
			self._writeIndex += count
			copied += count
			if count < length:
				remainder = { ch: (mx[count:], None if mn is None else mn[count:]) for ch, (mx, mn) in chunk.items() }
				self._pending[0] = (remainder, None if chunkTrigger is None else chunkTrigger - count)
				status = Status.PICO_WAITING_FOR_DATA_BUFFERS
				break
			self._pending.pop(0)
		for info in dataInfos:
			info.noOfSamples = copied
			info.startIndex = startIndex
			info.overflow = 1 if overflow & (1 << info.channel) else 0
		# auto stop is reported with the last samples of the capture
		triggerInfo.autoStop = self._autoStop and not self._pending
		return (status, triggerInfo)

	def getValues (self, startIndex, noOfSamples, ratio, ratioMode, segmentIndex):
		#ps5000aGetValues(int16_t handle, uint32_t startIndex, uint32_t* noOfSamples, uint32_t downSampleRatio, PS5000A_RATIO_MODE downSampleRatioMode, uint32_t segmentIndex, int16_t* overflow)
		retSamples = c_uint32(int(noOfSamples))
		overflow = c_int16(0)
		status = self._func("GetValues")(self.handle, c_uint32(startIndex), byref(retSamples), c_uint32(ratio),
										 c_int32(ratioMode), c_uint32(segmentIndex), byref(overflow))
		return (status, retSamples.value, int(overflow.value))

	def getValuesBulk (self, startIndex, noOfSamples, fromSegment, toSegment, ratio, ratioMode):
		#ps5000aGetValuesBulk(int16_t handle, uint32_t* noOfSamples, uint32_t fromSegmentIndex, uint32_t toSegmentIndex, uint32_t downSampleRatio, PS5000A_RATIO_MODE downSampleRatioMode, int16_t* overflow)
		retSamples = c_uint32(int(noOfSamples))
		overflow = (c_int16 * (toSegment - fromSegment + 1))()
		status = self._func("GetValuesBulk")(self.handle, byref(retSamples), c_uint32(fromSegment), c_uint32(toSegment),
											 c_uint32(ratio), c_int32(ratioMode), overflow)
		return (status, retSamples.value, [int(o) for o in overflow])

	def getTriggerInfoBulk (self, fromSegment, toSegment):
		#ps5000aGetTriggerInfoBulk(int16_t handle, PS5000A_TRIGGER_INFO* triggerInfo, uint32_t fromSegmentIndex, uint32_t toSegmentIndex)
		infos = (PS5000A_TRIGGER_INFO * (toSegment - fromSegment + 1))()
		status = self._func("GetTriggerInfoBulk")(self.handle, infos, c_uint32(fromSegment), c_uint32(toSegment))
		return (status, [TriggerInfo(i.status, i.segmentIndex, i.triggerIndex, float(i.triggerTime), i.timeUnits, 0,
									 i.timeStampCounter) for i in infos])

	def stop (self):
		self._streaming = False
		return CtypesDriver.stop(self)

	def setTriggerChannelProperties (self, properties, auxOutputEnable, autoTriggerMicroSeconds):
		#ps5000aSetTriggerChannelPropertiesV2(int16_t handle, struct* channelProperties, int16_t nChannelProperties, int16_t auxOutputEnable)
		for p in properties:
			p.channel = self._deviceChannel(p.channel)
		status = self._func("SetTriggerChannelPropertiesV2")(self.handle, self._properties(properties) if properties else None,
															 c_int16(len(properties)), c_int16(auxOutputEnable))
		if status != Status.PICO_OK:
			return status
		#ps5000aSetAutoTriggerMicroSeconds(int16_t handle, uint64_t autoTriggerMicroseconds)
		return self._func("SetAutoTriggerMicroSeconds")(self.handle, c_uint64(autoTriggerMicroSeconds))

	def setTriggerChannelConditions (self, conditions, action):
		#ps5000aSetTriggerChannelConditionsV2(int16_t handle, struct* conditions, int16_t nConditions, enum info)
		conditions = [Condition(self._deviceChannel(c.source), c.state) for c in conditions]
		return self._func("SetTriggerChannelConditionsV2")(self.handle, self._conditions(conditions) if conditions else None,
														   c_int16(len(conditions)), c_int32(action))

	def setTriggerChannelDirections (self, directions):
		#ps5000aSetTriggerChannelDirectionsV2(int16_t handle, struct* directions, uint16_t nDirections)
		directions = [Direction(self._deviceChannel(d.channel), d.direction, d.thresholdMode) for d in directions]
		return self._func("SetTriggerChannelDirectionsV2")(self.handle, self._directions(directions) if directions else None,
														   c_uint16(len(directions)))

	def setPulseWidthQualifierConditions (self, conditions, action):
		#ps5000aSetPulseWidthQualifierConditions(int16_t handle, struct* conditions, int16_t nConditions, enum info)
		conditions = [Condition(self._deviceChannel(c.source), c.state) for c in conditions]
		return self._func("SetPulseWidthQualifierConditions")(self.handle, self._conditions(conditions) if conditions else None,
															  c_int16(len(conditions)), c_int32(action))

	def setPulseWidthQualifierDirections (self, directions):
		#ps5000aSetPulseWidthQualifierDirections(int16_t handle, struct* directions, int16_t nDirections)
		directions = [Direction(self._deviceChannel(d.channel), d.direction, d.thresholdMode) for d in directions]
		return self._func("SetPulseWidthQualifierDirections")(self.handle, self._directions(directions) if directions else None,
															  c_int16(len(directions)))

	def setTriggerDigitalPortProperties (self, port, directions):
		#ps5000aSetTriggerDigitalPortProperties(int16_t handle, struct* directions, int16_t nDirections)
		return self._func("SetTriggerDigitalPortProperties")(self.handle, self._digitalDirections(directions) if directions else None,
															 c_int16(len(directions)))

	def setProbeInteractionCallback (self, callback):
		return Status.PICO_NOT_SUPPORTED_BY_THIS_DEVICE


class Ps6000aDriver(CtypesDriver):
	"""PicoScope 6000E series driver, ps6000a API (structures and buffer actions)."""

	# PICO_RATIO_MODE of this generation
	RATIO = { RatioMode.RAW : 0x80000000, RatioMode.AGGREGATE : 1, RatioMode.DECIMATE : 2, RatioMode.AVERAGE : 4 }

	def __init__ (self, model=None):
		CtypesDriver.__init__(self, model or getModel(PicoscopeFamily.PS6000A))

	def openUnit (self, serial, resolution):
		#ps6000aOpenUnit(int16_t* handle, int8_t* serial, PICO_DEVICE_RESOLUTION resolution)
		if resolution is None:
			resolution = self.model.defaultResolution
		handle = c_int16()
		status = self._func("OpenUnit")(byref(handle), serial.encode("ascii") if serial else None, c_int32(resolution))
		if handle.value > 0:
			self.handle = handle
		return status

	def changePowerSource (self, powerState):
		# mains powered: the driver never asks for a power source change
		return Status.PICO_OK

	def getAdcLimits (self, resolution):
		#ps6000aGetAdcLimits(int16_t handle, PICO_DEVICE_RESOLUTION resolution, int16_t* minValue, int16_t* maxValue)
		minValue = c_int16()
		maxValue = c_int16()
		status = self._func("GetAdcLimits")(self.handle, c_int32(resolution), byref(minValue), byref(maxValue))
		return (status, minValue.value, maxValue.value)

	def setChannelOn (self, channel, coupling, probeRange, analogueOffset, bandwidth):
		#ps6000aSetChannelOn(int16_t handle, PICO_CHANNEL channel, PICO_COUPLING coupling, PICO_CONNECT_PROBE_RANGE range, double analogueOffset, PICO_BANDWIDTH_LIMITER bandwidth)
		return self._func("SetChannelOn")(self.handle, c_int32(channel), c_int32(coupling), c_int32(probeRange),
										  c_double(analogueOffset), c_int32(bandwidth))

	def setChannelOff (self, channel):
		#ps6000aSetChannelOff(int16_t handle, PICO_CHANNEL channel)
		return self._func("SetChannelOff")(self.handle, c_int32(channel))

	def getAnalogueOffsetLimits (self, probeRange, coupling):
		#ps6000aGetAnalogueOffsetLimits(int16_t handle, PICO_CONNECT_PROBE_RANGE range, PICO_COUPLING coupling, double* maximumVoltage, double* minimumVoltage)
		maximum = c_double()
		minimum = c_double()
		status = self._func("GetAnalogueOffsetLimits")(self.handle, c_int32(probeRange), c_int32(coupling), byref(maximum), byref(minimum))
		return (status, minimum.value, maximum.value)

	def setDigitalPortOn (self, port, logicLevels, hysteresis):
		#ps6000aSetDigitalPortOn(int16_t handle, PICO_CHANNEL port, int16_t* logicThresholdLevel, int16_t logicThresholdLevelLength, PICO_DIGITAL_PORT_HYSTERESIS hysteresis)
		levels = (c_int16 * len(logicLevels))(*logicLevels)
		return self._func("SetDigitalPortOn")(self.handle, c_int32(port), levels, c_int16(len(logicLevels)), c_int32(hysteresis))

	def setDigitalPortOff (self, port):
		#ps6000aSetDigitalPortOff(int16_t handle, PICO_CHANNEL port)
		return self._func("SetDigitalPortOff")(self.handle, c_int32(port))

	def getMaxSegments (self):
		#ps6000aGetMaximumAvailableMemory is not needed here, only the segment count
		#ps6000aGetMaxSegments(int16_t handle, uint64_t* maxSegments)
		maxSegments = c_uint64()
		status = self._func("GetMaxSegments")(self.handle, byref(maxSegments))
		return (status, maxSegments.value)

	def memorySegments (self, nSegments):
		#ps6000aMemorySegments(int16_t handle, uint64_t nSegments, uint64_t* nMaxSamples)
		nMaxSamples = c_uint64()
		status = self._func("MemorySegments")(self.handle, c_uint64(nSegments), byref(nMaxSamples))
		return (status, nMaxSamples.value)

	def setNoOfCaptures (self, nCaptures):
		#ps6000aSetNoOfCaptures(int16_t handle, uint64_t nCaptures)
		return self._func("SetNoOfCaptures")(self.handle, c_uint64(nCaptures))

	def getNoOfCaptures (self):
		#ps6000aGetNoOfCaptures(int16_t handle, uint64_t* nCaptures)
		nCaptures = c_uint64()
		status = self._func("GetNoOfCaptures")(self.handle, byref(nCaptures))
		return (status, nCaptures.value)

	def getTimebase (self, timebase, noSamples, segmentIndex):
		#ps6000aGetTimebase(int16_t handle, uint32_t timebase, uint64_t noSamples, double* timeIntervalNanoseconds, uint64_t* maxSamples, uint64_t segmentIndex)
		timeIntervalNanoseconds = c_double()
		maxSamples = c_uint64()
		status = self._func("GetTimebase")(self.handle, c_uint32(timebase), c_uint64(noSamples), byref(timeIntervalNanoseconds),
										   byref(maxSamples), c_uint64(segmentIndex))
		return (status, timeIntervalNanoseconds.value * 1e-9, maxSamples.value)

	def getMinimumTimebase (self, channelFlags, resolution):
		#ps6000aGetMinimumTimebaseStateless(int16_t handle, PICO_CHANNEL_FLAGS enabledChannelFlags, uint32_t* timebase, double* timeInterval, PICO_DEVICE_RESOLUTION resolution)
		timebase = c_uint32()
		timeInterval = c_double()
		status = self._func("GetMinimumTimebaseStateless")(self.handle, c_uint32(channelFlags), byref(timebase),
														   byref(timeInterval), c_int32(resolution))
		return (status, timebase.value, timeInterval.value)

	def setEts (self, mode, cycles, interleave):
		if mode == ETSMode.OFF:
			return (Status.PICO_OK, 0)
		return (Status.PICO_ETS_NOT_SUPPORTED, 0)

	def setEtsTimeBuffer (self, buffer):
		return Status.PICO_OK if buffer is None else Status.PICO_ETS_NOT_SUPPORTED

	def setDataBuffers (self, channel, bufferMax, bufferMin, nSamples, segmentIndex, ratioMode, action):
		#ps6000aSetDataBuffers(int16_t handle, PICO_CHANNEL channel, PICO_POINTER bufferMax, PICO_POINTER bufferMin, int32_t nSamples, PICO_DATA_TYPE dataType, uint64_t waveform, PICO_RATIO_MODE downSampleRatioMode, PICO_ACTION action)
		return self._func("SetDataBuffers")(self.handle, c_int32(channel), _pointer(bufferMax), _pointer(bufferMin),
											c_int32(nSamples), c_int32(DataType.INT16_T), c_uint64(segmentIndex),
											c_uint32(self.RATIO[ratioMode]), c_uint32(action))

	def runBlock (self, preSamples, postSamples, timebase, segmentIndex, readyCallback):
		#ps6000aRunBlock(int16_t handle, uint64_t noOfPreTriggerSamples, uint64_t noOfPostTriggerSamples, uint32_t timebase, double* timeIndisposedMs, uint64_t segmentIndex, ps6000aBlockReady lpReady, PICO_POINTER pParameter)
		timeIndisposedMs = c_double()
		self._userBlockReady = readyCallback
		self._blockReady = BlockReadyFunc(self._onBlockReady)
		status = self._func("RunBlock")(self.handle, c_uint64(preSamples), c_uint64(postSamples), c_uint32(timebase),
										byref(timeIndisposedMs), c_uint64(segmentIndex), self._blockReady, None)
		return (status, timeIndisposedMs.value)

	def runStreaming (self, sampleInterval, timeUnits, preSamples, postSamples, autoStop, ratio, ratioMode):
		#ps6000aRunStreaming(int16_t handle, double* sampleInterval, PICO_TIME_UNITS sampleIntervalTimeUnits, uint64_t maxPreTriggerSamples, uint64_t maxPostTriggerSamples, int16_t autoStop, uint64_t downSampleRatio, PICO_RATIO_MODE downSampleRatioMode)
		interval = c_double(sampleInterval)
		status = self._func("RunStreaming")(self.handle, byref(interval), c_int32(timeUnits), c_uint64(preSamples),
											c_uint64(postSamples), c_int16(1 if autoStop else 0), c_uint64(ratio),
											c_uint32(self.RATIO[ratioMode]))
		return (status, interval.value)

	def getStreamingLatestValues (self, dataInfos):
		#ps6000aGetStreamingLatestValues(int16_t handle, PICO_STREAMING_DATA_INFO* streamingDataInfo, uint64_t nStreamingDataInfos, PICO_STREAMING_DATA_TRIGGER_INFO* triggerInfo)
		infos = (STREAMING_DATA_INFO * len(dataInfos))()
		for i, info in enumerate(dataInfos):
			infos[i].channel = info.channel
			infos[i].mode = self.RATIO[info.mode]
			infos[i].type = info.type
		trigger = STREAMING_DATA_TRIGGER_INFO()
		status = self._func("GetStreamingLatestValues")(self.handle, infos, c_uint64(len(dataInfos)), byref(trigger))
		for i, info in enumerate(dataInfos):
			info.noOfSamples = infos[i].noOfSamples
			info.bufferIndex = infos[i].bufferIndex
			info.startIndex = infos[i].startIndex
			info.overflow = infos[i].overflow
		triggerInfo = StreamingTriggerInfo()
		triggerInfo.triggerAt = trigger.triggerAt
		triggerInfo.triggered = bool(trigger.triggered)
		triggerInfo.autoStop = bool(trigger.autoStop)
		return (status, triggerInfo)

	def getValues (self, startIndex, noOfSamples, ratio, ratioMode, segmentIndex):
		#ps6000aGetValues(int16_t handle, uint64_t startIndex, uint64_t* noOfSamples, uint64_t downSampleRatio, PICO_RATIO_MODE downSampleRatioMode, uint64_t segmentIndex, int16_t* overflow)
		retSamples = c_uint64(int(noOfSamples))
		overflow = c_int16(0)
		status = self._func("GetValues")(self.handle, c_uint64(startIndex), byref(retSamples), c_uint64(ratio),
										 c_uint32(self.RATIO[ratioMode]), c_uint64(segmentIndex), byref(overflow))
		return (status, retSamples.value, int(overflow.value))

	def getValuesBulk (self, startIndex, noOfSamples, fromSegment, toSegment, ratio, ratioMode):
		#ps6000aGetValuesBulk(int16_t handle, uint64_t startIndex, uint64_t* noOfSamples, uint64_t fromSegmentIndex, uint64_t toSegmentIndex, uint64_t downSampleRatio, PICO_RATIO_MODE downSampleRatioMode, int16_t* overflow)
		retSamples = c_uint64(int(noOfSamples))
		overflow = (c_int16 * (toSegment - fromSegment + 1))()
		status = self._func("GetValuesBulk")(self.handle, c_uint64(startIndex), byref(retSamples), c_uint64(fromSegment),
											 c_uint64(toSegment), c_uint64(ratio), c_uint32(self.RATIO[ratioMode]), overflow)
		return (status, retSamples.value, [int(o) for o in overflow])

	def getTriggerInfoBulk (self, fromSegment, toSegment):
		#ps6000aGetTriggerInfo(int16_t handle, PICO_TRIGGER_INFO* triggerInfo, uint64_t firstSegmentIndex, uint64_t segmentCount)
		count = toSegment - fromSegment + 1
		infos = (TRIGGER_INFO * count)()
		status = self._func("GetTriggerInfo")(self.handle, infos, c_uint64(fromSegment), c_uint64(count))
		return (status, [TriggerInfo(i.status, i.segmentIndex, i.triggerIndex, i.triggerTime, i.timeUnits,
									 i.missedTriggers, i.timeStampCounter) for i in infos])

	def setTriggerChannelProperties (self, properties, auxOutputEnable, autoTriggerMicroSeconds):
		#ps6000aSetTriggerChannelProperties(int16_t handle, PICO_TRIGGER_CHANNEL_PROPERTIES* channelProperties, int16_t nChannelProperties, int16_t auxOutputEnable, uint32_t autoTriggerMicroSeconds)
		return self._func("SetTriggerChannelProperties")(self.handle, self._properties(properties) if properties else None,
														 c_int16(len(properties)), c_int16(auxOutputEnable),
														 c_uint32(autoTriggerMicroSeconds))

	def setTriggerChannelConditions (self, conditions, action):
		#ps6000aSetTriggerChannelConditions(int16_t handle, PICO_CONDITION* conditions, int16_t nConditions, PICO_ACTION action)
		return self._func("SetTriggerChannelConditions")(self.handle, self._conditions(conditions) if conditions else None,
														 c_int16(len(conditions)), c_uint32(action))

	def setTriggerChannelDirections (self, directions):
		#ps6000aSetTriggerChannelDirections(int16_t handle, PICO_DIRECTION* directions, int16_t nDirections)
		return self._func("SetTriggerChannelDirections")(self.handle, self._directions(directions) if directions else None,
														 c_int16(len(directions)))

	def setTriggerDelay (self, delay):
		#ps6000aSetTriggerDelay(int16_t handle, uint64_t delay)
		return self._func("SetTriggerDelay")(self.handle, c_uint64(delay))

	def setPulseWidthQualifierConditions (self, conditions, action):
		#ps6000aSetPulseWidthQualifierConditions(int16_t handle, PICO_CONDITION* conditions, int16_t nConditions, PICO_ACTION action)
		return self._func("SetPulseWidthQualifierConditions")(self.handle, self._conditions(conditions) if conditions else None,
															  c_int16(len(conditions)), c_uint32(action))

	def setPulseWidthQualifierDirections (self, directions):
		#ps6000aSetPulseWidthQualifierDirections(int16_t handle, PICO_DIRECTION* directions, int16_t nDirections)
		return self._func("SetPulseWidthQualifierDirections")(self.handle, self._directions(directions) if directions else None,
															  c_int16(len(directions)))

	def setTriggerDigitalPortProperties (self, port, directions):
		#ps6000aSetTriggerDigitalPortProperties(int16_t handle, PICO_CHANNEL port, PICO_DIGITAL_CHANNEL_DIRECTIONS* directions, int16_t nDirections)
		return self._func("SetTriggerDigitalPortProperties")(self.handle, c_int32(port),
															 self._digitalDirections(directions) if directions else None,
															 c_int16(len(directions)))

	def _onProbeInteraction (self, handle, status, probes, nProbes):
		interactions = []
		for i in range(nProbes):
			p = probes[i]
			interactions.append(ProbeInteraction(p.channel, bool(p.connected), bool(p.enabled), p.probeName,
												 bool(p.requiresPower), bool(p.isPowered), p.status, p.probeOff,
												 p.rangeFirst, p.rangeLast, p.rangeCurrent, p.couplingFirst,
												 p.couplingLast, p.couplingCurrent, p.filterFlags, p.filterCurrent,
												 p.defaultFilter))
		self._userProbeCallback(status, interactions)

	def setProbeInteractionCallback (self, callback):
		#ps6000aSetProbeInteractionCallback(int16_t handle, PicoProbeInteractions callback)
		self._userProbeCallback = callback
		self._probeCallback = ProbeInteractionsFunc(self._onProbeInteraction)
		return self._func("SetProbeInteractionCallback")(self.handle, self._probeCallback)


def getDriver(family, emulates=None):
	"""
	Returns a driver instance for the requested family.

	:param str family: one of PicoscopeFamily.*; "dummy" returns the simulated peripheral.
	:param str emulates: family whose capabilities the dummy driver reproduces.
	:raise: a PicoError if the family is not supported.
	"""
	if family == PicoscopeFamily.PS5000A:
		return Ps5000aDriver()
	elif family == PicoscopeFamily.PS6000A:
		return Ps6000aDriver()
	elif family == PicoscopeFamily.DUMMY:
		from picoacq.backend.dummy_scope import DummyDriver
		return DummyDriver(getModel(emulates or PicoscopeFamily.PS5000A))
	raise PicoError("Unsupported family (%s)." % family)
