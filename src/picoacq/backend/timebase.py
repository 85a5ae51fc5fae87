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
from picoacq.backend.pico import InvalidTimebase, ConfigurationError, Resolution
from picoacq.config.logging_config import logger

ROUND_FASTER = 'faster'
ROUND_SLOWER = 'slower'

# Relative tolerance when comparing a timebase interval with the requested one
_TOLERANCE = 1e-9


class TimebaseSolver:
    """
    Maps a requested sample interval to a timebase index of the open unit.

    The solver only queries the driver: it never changes the channel, resolution or segment setup.
    """

    def __init__(self, device):
        self.device = device

    def interval_of(self, timebase, n_samples=0, segment_index=0):
        """Returns (interval in seconds, max samples) of a timebase index."""
        return self.device.get_timebase(timebase, n_samples, segment_index)

    def minimum(self, channel_flags, resolution):
        """
        Returns (timebase index, interval in seconds) of the fastest timebase.

        Raises:
            InvalidChannelsForResolution: The channel combination is not valid at this resolution.
        """

        return self.device.get_minimum_timebase(channel_flags, resolution)

    def solve(self, interval_s, channel_flags, resolution=None, n_samples=0, rounding=ROUND_FASTER,
              segment_index=0):
        """
        Finds the timebase closest to a requested sample interval.

        Parameters:
            interval_s (float): Requested interval in seconds, 0 for the fastest timebase.
            channel_flags (int): Enabled channels and ports, see ChannelModel.channel_flags().
            resolution (int): Resolution.DR_* value, the current one by default.
            n_samples (int): Samples per segment the capture needs.
            rounding (str): ROUND_FASTER gives the slowest timebase not slower than requested,
                ROUND_SLOWER the fastest timebase not faster than requested.
            segment_index (int): Segment the capture will use.

        Returns:
            tuple: (timebase index, achievable interval in seconds, max samples per segment).

        Raises:
            InvalidChannelsForResolution: The channel combination is not valid at this resolution.
            InvalidTimebase: No timebase satisfies the request.
        """

        if rounding not in (ROUND_FASTER, ROUND_SLOWER):
            raise ConfigurationError(f"Unknown timebase rounding '{rounding}'")
        if resolution is None:
            resolution = self.device.resolution

        fastest, fastest_interval = self.minimum(channel_flags, resolution)
        logger.debug(f'Fastest timebase at {Resolution.inBits(resolution)} bits: {fastest} '
                     f'({fastest_interval * 1e9:.3f} ns)')

        if interval_s <= 0 or self._matches(fastest_interval, interval_s):
            return self._result(fastest, n_samples, segment_index)
        if interval_s < fastest_interval:
            if rounding == ROUND_SLOWER:
                return self._result(fastest, n_samples, segment_index)
            raise InvalidTimebase(f"Requested interval {interval_s} s is faster than the fastest timebase "
                                  f"({fastest_interval} s)")

        # gallop to bracket the request, then bisect: low is faster, high is not faster
        max_timebase = self.device.model.maxTimeBase
        low, step = fastest, 1
        high = None
        while high is None:
            candidate = min(low + step, max_timebase)
            interval = self.interval_of(candidate, n_samples, segment_index)[0]
            if interval >= interval_s or self._matches(interval, interval_s):
                high = candidate
            elif candidate == max_timebase:
                if rounding == ROUND_FASTER:
                    return self._result(max_timebase, n_samples, segment_index)
                raise InvalidTimebase(f"Requested interval {interval_s} s is slower than the slowest timebase")
            else:
                low = candidate
                step *= 2

        while high - low > 1:
            middle = (low + high) // 2
            interval = self.interval_of(middle, n_samples, segment_index)[0]
            if interval >= interval_s or self._matches(interval, interval_s):
                high = middle
            else:
                low = middle

        high_interval = self.interval_of(high, n_samples, segment_index)[0]
        if rounding == ROUND_SLOWER or self._matches(high_interval, interval_s):
            return self._result(high, n_samples, segment_index)
        return self._result(low, n_samples, segment_index)

    @staticmethod
    def _matches(interval, requested):
        return abs(interval - requested) <= _TOLERANCE * requested

    def _result(self, timebase, n_samples, segment_index):
        interval, max_samples = self.interval_of(timebase, n_samples, segment_index)
        logger.debug(f'Timebase {timebase}: {interval * 1e9:.3f} ns, {max_samples} samples per segment')
        return timebase, interval, max_samples
