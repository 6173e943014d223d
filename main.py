#!/usr/bin/env python3
"""
Main entry point script for mtgdeck.

This script can be run directly from the command line to start the
interactive deck building prompt.
"""

import sys
from pathlib import Path

# Add the project directory to Python path
project_dir = Path(__file__).parent
sys.path.insert(0, str(project_dir))

# Check if we're in a virtual environment, if not, try to activate it
if not (hasattr(sys, 'base_prefix') and sys.base_prefix != sys.prefix):
    venv_python = project_dir / '.venv' / 'bin' / 'python'
    if venv_python.exists():
        import subprocess
        # Re-run this script with the virtual environment's Python
        result = subprocess.run([str(venv_python), __file__] + sys.argv[1:])
        sys.exit(result.returncode)

from mtgdeck.cli import main

if __name__ == "__main__":
    main()
