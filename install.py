#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry point for the Jetson stack installer.

Also the command the resume unit runs after a reboot.
"""

import sys

from jetson_setup.cli_handler import main

if __name__ == "__main__":
    sys.exit(main())
