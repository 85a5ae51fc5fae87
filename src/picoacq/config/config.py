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
import configparser
from importlib import resources as impresources

# Own packages


# Initialize ConfigParser
config_info = configparser.ConfigParser(interpolation=None)


def read_config(file_path):
    abs_path = os.path.abspath(file_path)
    if not os.path.exists(abs_path):
        raise FileNotFoundError(f"Configuration file '{abs_path}' not found.")
    config_info.read(abs_path)


def read_additional_config(file_path):
    """
    Merges an acquisition configuration on top of the packaged defaults.

    Options already present are overwritten, so a site file only has to list what differs from
    acquisition_config.ini.

    Parameters:
        file_path (str): Path of the additional .ini file.
    """

    additional_config = configparser.ConfigParser(interpolation=None)
    abs_path = os.path.abspath(file_path)
    if not os.path.exists(abs_path):
        raise FileNotFoundError(f"Configuration file '{abs_path}' not found.")
    additional_config.read(abs_path)

    # Iterate through the sections and options
    for section in additional_config.sections():
        if not config_info.has_section(section):
            config_info.add_section(section)

        for option, value in additional_config.items(section):
            config_info.set(section, option, value)


def channel_section(channel_name):
    return 'Acquisition.Channel.' + channel_name


def get_named(section, option, table, fallback=None):
    """
    Looks up the value stored under a symbolic name, e.g. 'Coupling = DC'.

    Parameters:
        section (SectionProxy): Configuration section holding the option.
        option (str): Option name.
        table (dict): Upper case name to value.
        fallback (str): Name used when the option is absent.

    Returns:
        The value of the name in table.

    Raises:
        ValueError: When the stored name is not in table.
    """

    name = section.get(option, fallback)
    if name is None:
        raise ValueError(f"Option '{option}' missing in [{section.name}]")
    try:
        return table[name.strip().upper()]
    except KeyError:
        raise ValueError(f"Invalid value '{name}' for '{option}' in [{section.name}], "
                         f"expected one of: {', '.join(sorted(table))}") from None


def save_config(file_path, settings=None):
    """Writes the settings of an acquisition next to its output."""

    settings = config_info if settings is None else settings
    os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)
    with open(file_path, 'w') as configfile:
        settings.write(configfile)


# Automatically read the main configuration file when the module is imported
inp_file = (impresources.files('picoacq.config') / 'acquisition_config.ini')
read_config(inp_file)
