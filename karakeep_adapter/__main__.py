#!/usr/bin/env python3
"""
Package entry point for the Karakeep Adapter.

This allows the package to be executed with: python -m karakeep_adapter
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
