#!/usr/bin/env python3
"""Entry point for the CSEK sample: `python encryption.py <command> ...`."""
import sys

from csek.cli import main

if __name__ == '__main__':
    sys.exit(main())
