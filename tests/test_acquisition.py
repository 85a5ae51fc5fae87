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
import configparser
import os

# Miscellaneous packages
import pytest

# Own packages
from picoacq.backend.acquisition import Acquisition
from picoacq.backend.dummy_scope import DummyDriver
from picoacq.backend.pico import Channel, Coupling, UnknownProbeRange
from picoacq.backend.records import BLOCK, RAPID, STREAMING
from picoacq.backend.writer import MemoryCaptureWriter
from picoacq.config.config import config_info, channel_section, get_named, save_config


@pytest.fixture
def config(tmp_path):
    copied = configparser.ConfigParser(interpolation=None)
    for section in config_info.sections():
        copied[section] = dict(config_info[section])
    copied['Acquisition.Output']['Directory'] = str(tmp_path / 'output')
    copied['Acquisition']['Wait poll interval (s)'] = '0.001'
    return copied


@pytest.fixture
def driver():
    return DummyDriver(captureDelay=0.001, streamingChunk=2500)


def test_packaged_defaults():
    assert config_info['Acquisition.Device']['Family'] == 'dummy'
    assert config_info.getboolean(channel_section('A'), 'Enabled')
    assert config_info['Acquisition']['Mode'] == BLOCK


def test_block_acquisition(config, driver):
    writer = MemoryCaptureWriter()
    with Acquisition(config, writer, driver) as acquisition:
        assert acquisition.channels.enabled_channels() == [Channel.A]
        assert acquisition.descriptor.timebase == 0
        records = acquisition.run()
    assert len(records) == 1
    assert len(writer.records) == 1
    assert len(writer.samples(Channel.A)) == 1000
    assert driver.handle is None


def test_rapid_acquisition_to_csv(config, driver, tmp_path):
    config['Acquisition']['Mode'] = RAPID
    config['Acquisition']['Captures'] = '5'
    config['Acquisition']['Segments'] = '5'
    config['Acquisition']['Samples'] = '200'
    with Acquisition(config, driver=driver) as acquisition:
        acquisition.run()
        files = acquisition.writer.files
    assert len(files) == 5
    assert all(os.path.exists(f) for f in files)
    assert os.path.dirname(files[0]) == str(tmp_path / 'output')


def test_streaming_acquisition(config, driver):
    config['Acquisition']['Mode'] = STREAMING
    config['Acquisition']['Samples'] = '20000'
    config['Acquisition']['Sample interval (s)'] = '1e-6'
    config['Acquisition']['Streaming buffer samples'] = '5000'
    writer = MemoryCaptureWriter()
    with Acquisition(config, writer, driver) as acquisition:
        acquisition.run()
    assert len(writer.samples(Channel.A)) == 20000


def test_triggered_acquisition(config, driver):
    config['Acquisition.Trigger']['Enabled'] = 'True'
    config['Acquisition']['Pre-trigger samples'] = '100'
    writer = MemoryCaptureWriter()
    with Acquisition(config, writer, driver) as acquisition:
        assert acquisition.trigger.active.enabled
        acquisition.run(timeout=5.0)
    assert writer.records[0].trigger_sample == 100


def test_two_channels(config, driver):
    config[channel_section('B')]['Enabled'] = 'True'
    config[channel_section('B')]['Range'] = 'PICO_X1_PROBE_5V'
    writer = MemoryCaptureWriter()
    with Acquisition(config, writer, driver) as acquisition:
        acquisition.run()
    assert set(writer.records[0].channels) == {Channel.A, Channel.B}
    assert writer.records[0].channels[Channel.B].scaling.max_scale == 5


def test_bad_range_closes_the_unit(config, driver):
    config[channel_section('A')]['Range'] = 'PICO_X1_PROBE_3V'
    with pytest.raises(UnknownProbeRange):
        Acquisition(config, MemoryCaptureWriter(), driver)
    assert driver.handle is None


def test_get_named(config):
    section = config[channel_section('A')]
    assert get_named(section, 'Coupling', Coupling.NUMBER) == Coupling.DC
    assert get_named(section, 'Missing', Coupling.NUMBER, 'ac') == Coupling.AC
    section['Coupling'] = 'DC_1MOHM'
    with pytest.raises(ValueError):
        get_named(section, 'Coupling', Coupling.NUMBER)
    with pytest.raises(ValueError):
        get_named(section, 'Missing', Coupling.NUMBER)


def test_settings_saved_next_to_output(config, driver, tmp_path):
    with Acquisition(config, driver=driver) as acquisition:
        acquisition.run()
    saved = configparser.ConfigParser(interpolation=None)
    saved.read(tmp_path / 'output' / 'capture_settings.ini')
    assert saved['Acquisition']['Mode'] == BLOCK

    save_config(str(tmp_path / 'copy' / 'settings.ini'), config)
    assert os.path.exists(tmp_path / 'copy' / 'settings.ini')
