#!/usr/bin/env python3
"""
Workstation bootstrap from the dotfiles repository.

Usage:
    install.py                 # Choose the OS interactively and set everything up
    install.py --os linux      # Non-interactive
    install.py --dry-run       # Show the package plan only
"""

import os
import sys

# Add current directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dots_bootstrap.cli import main


if __name__ == "__main__":
    sys.exit(main())
