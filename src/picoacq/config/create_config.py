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

import configparser

CONFIG_FOLDER = 'config'  # should be in the same directory as code
CONFIG_FILE = 'acquisition_config.ini'

config = configparser.ConfigParser(interpolation=None)

config['Versions'] = {}
config['Versions']['picoscope-acquisition'] = '0.8'

config['General'] = {}
config['General']['Logger name'] = 'picoacq'

config['Acquisition.Device'] = {}
config['Acquisition.Device']['Family'] = 'dummy'
config['Acquisition.Device']['Serial'] = ''
config['Acquisition.Device']['Resolution'] = '8'
config['Acquisition.Device']['Dummy emulates'] = 'ps5000a'

for channel_name in ['A', 'B', 'C', 'D']:
    section = 'Acquisition.Channel.' + channel_name
    config[section] = {}
    config[section]['Enabled'] = str(channel_name == 'A')
    config[section]['Coupling'] = 'DC'
    config[section]['Range'] = 'PICO_X1_PROBE_2V'
    config[section]['Analogue offset'] = '0.0'
    config[section]['Bandwidth'] = 'FULL'

config['Acquisition.Trigger'] = {}
config['Acquisition.Trigger']['Enabled'] = 'False'
config['Acquisition.Trigger']['Source'] = 'A'
config['Acquisition.Trigger']['Threshold'] = '1.0'
config['Acquisition.Trigger']['Direction'] = 'RISING'
config['Acquisition.Trigger']['Hysteresis'] = '2560'
config['Acquisition.Trigger']['Delay'] = '0'
config['Acquisition.Trigger']['Auto trigger (us)'] = '0'

config['Acquisition'] = {}
config['Acquisition']['Mode'] = 'block'
config['Acquisition']['Samples'] = '1000'
config['Acquisition']['Pre-trigger samples'] = '0'
config['Acquisition']['Sample interval (s)'] = '0'
config['Acquisition']['Rounding'] = 'faster'
config['Acquisition']['Downsample mode'] = 'RAW'
config['Acquisition']['Downsample ratio'] = '1'
config['Acquisition']['Captures'] = '10'
config['Acquisition']['Segments'] = '10'
config['Acquisition']['ETS mode'] = 'FAST'
config['Acquisition']['ETS cycles'] = '20'
config['Acquisition']['ETS interleave'] = '4'
config['Acquisition']['Streaming buffer sets'] = '3'
config['Acquisition']['Streaming buffer samples'] = '10000'
config['Acquisition']['Streaming poll fraction'] = '0.3'
config['Acquisition']['Auto stop'] = 'True'
config['Acquisition']['Wait poll interval (s)'] = '0.01'

config['Acquisition.Buffers'] = {}
config['Acquisition.Buffers']['Memory budget (MB)'] = '512'

config['Acquisition.Output'] = {}
config['Acquisition.Output']['Directory'] = 'output'
config['Acquisition.Output']['Prefix'] = 'capture_'
config['Acquisition.Output']['Scale to units'] = 'True'

config['Acquisition.Dummy'] = {}
config['Acquisition.Dummy']['Serials'] = 'DUMMY001'
config['Acquisition.Dummy']['Capture delay (s)'] = '0.005'
config['Acquisition.Dummy']['Streaming chunk'] = '2500'
config['Acquisition.Dummy']['Variant'] = ''
config['Acquisition.Dummy']['Max segments'] = '10000'
config['Acquisition.Dummy']['Memory samples'] = '134217728'

with open(CONFIG_FILE, 'w') as configfile:
    config.write(configfile)
