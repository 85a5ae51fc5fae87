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
import argparse
import os
import sys

# Miscellaneous packages

# Own packages
from picoacq.backend.acquisition import Acquisition
from picoacq.backend.pico import PicoError
from picoacq.config.config import config_info, read_additional_config
from picoacq.config.logging_config import initialize_logger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog='picoacq',
                                     description='Runs one PicoScope acquisition described by a configuration file.')
    parser.add_argument('--config', required=True,
                        help='.ini file overriding the packaged acquisition_config.ini')
    parser.add_argument('--log-dir', default=None,
                        help='directory of the log file (default: the output directory)')
    parser.add_argument('--timeout', type=float, default=None,
                        help='seconds before a block capture is cancelled')
    return parser.parse_args(argv)


def main(argv=None):
    """
    Main function to run one acquisition.
    """

    args = parse_args(argv)
    read_additional_config(args.config)

    log_dir = args.log_dir or config_info['Acquisition.Output']['Directory']
    config_name = os.path.splitext(os.path.basename(args.config))[0]
    logger = initialize_logger(log_dir, config_name)

    version = config_info['Versions']['picoscope-acquisition']
    logger.info(f'Acquisition performed with the following software: {version}')

    try:
        with Acquisition(config_info) as acquisition:
            logger.info(f'Performing the following acquisition: {acquisition.descriptor}')
            records = acquisition.run(args.timeout)
            for filename in getattr(acquisition.writer, 'files', []):
                logger.info(f'Output written to {filename}')
    except PicoError as e:
        logger.error(f'Acquisition failed: {e}')
        return 1

    logger.info(f'{len(records)} record(s) written')
    return 0


if __name__ == '__main__':
    sys.exit(main())
