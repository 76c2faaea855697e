#!/usr/bin/env python3
"""
Mint Tracker - attribute candy machine mints to known bots

Usage:
    python start_tracker.py --config config/config.yml
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from mint_tracker.cli import main


if __name__ == "__main__":
    sys.exit(main())
