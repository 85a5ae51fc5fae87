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
import queue
import threading

# Miscellaneous packages
import numpy as np
import pandas as pd

# Own packages
from picoacq.backend.pico import WriterTimeout, RatioMode
from picoacq.config.logging_config import logger


class CaptureWriter:
    """
    Consumer of capture records.

    write() is called once per record, in capture order. The record arrays are only valid until
    write() returns: a writer that keeps data must copy it.
    """

    def write(self, record):
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False


class MemoryCaptureWriter(CaptureWriter):
    """Keeps a copy of every record in self.records."""

    def __init__(self):
        self.records = []

    def write(self, record):
        self.records.append(record.copy())

    def samples(self, channel):
        """Concatenated max values of channel over every record."""
        return np.concatenate([r.channels[channel].max for r in self.records]) if self.records else np.zeros(0)


def record_to_dataframe(record, scale_to_units=True):
    """
    Tabulates one record.

    Parameters:
        record (CaptureRecord): The record.
        scale_to_units (bool): Convert ADC codes to the unit of each range.

    Returns:
        pandas.DataFrame: One row per value, a time column and one or two columns per channel.
    """

    columns = {'Time [s]': record.times()}
    for channel, data in record.channels.items():
        if scale_to_units and data.scaling is not None:
            values_max, values_min = data.to_units()
            unit = data.scaling.unit
        else:
            values_max, values_min = data.max, data.min
            unit = 'ADC'
        if record.downsample_mode == RatioMode.AGGREGATE:
            columns[f'{data.name} max [{unit}]'] = values_max
            columns[f'{data.name} min [{unit}]'] = values_min
        else:
            columns[f'{data.name} [{unit}]'] = values_max
    return pd.DataFrame(columns)


class CsvCaptureWriter(CaptureWriter):
    """
    Writes each record to its own CSV file.

    File names are <prefix><mode>_<record number>_seg<segment>.csv in directory.
    """

    def __init__(self, directory, prefix='capture_', scale_to_units=True):
        self.directory = directory
        self.prefix = prefix
        self.scale_to_units = scale_to_units
        self.files = []
        self._count = 0
        os.makedirs(directory, exist_ok=True)

    def write(self, record):
        filename = os.path.join(self.directory,
                                f'{self.prefix}{record.mode}_{self._count:04d}_seg{record.segment_index}.csv')
        df = record_to_dataframe(record, self.scale_to_units)
        df.to_csv(filename, index=False)
        self._count += 1
        self.files.append(filename)
        logger.debug(f'Record written to {filename}')


class QueuedCaptureWriter(CaptureWriter):
    """
    Hands copies of the records to another writer running in a worker thread.

    Parameters:
        target (CaptureWriter): Writer doing the actual work.
        maxsize (int): Records waiting at most in the queue.
        timeout (float): Seconds write() waits for room in the queue before raising WriterTimeout,
            None waits forever.
    """

    _STOP = object()

    def __init__(self, target, maxsize=16, timeout=None):
        self.target = target
        self.timeout = timeout
        self._queue = queue.Queue(maxsize=maxsize)
        self._error = None
        self._worker = threading.Thread(target=self._run, name='capture-writer', daemon=True)
        self._worker.start()

    def _run(self):
        while True:
            record = self._queue.get()
            try:
                if record is self._STOP:
                    return
                if self._error is None:
                    self.target.write(record)
            except Exception as exc:
                # kept for the producer, reported at its next write() or close()
                logger.error(f'Capture writer failed: {exc}')
                self._error = exc
            finally:
                self._queue.task_done()

    def _raise_error(self):
        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def write(self, record):
        self._raise_error()
        try:
            self._queue.put(record.copy(), timeout=self.timeout)
        except queue.Full:
            raise WriterTimeout(f"Writer did not take record {record.segment_index} within {self.timeout} s")

    def flush(self):
        """Waits until every queued record is written."""
        self._queue.join()
        self._raise_error()

    def close(self):
        if self._worker.is_alive():
            self._queue.put(self._STOP)
            self._worker.join()
        self.target.close()
        self._raise_error()
