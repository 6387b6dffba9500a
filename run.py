#!/usr/bin/env python3
"""
Launcher script for ez.
Run this script to use ez from a source checkout.
"""

import sys
import os

# Add the current directory to Python path so we can import ezterm
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from ezterm.main import main

if __name__ == "__main__":
    sys.exit(main())
