#!/usr/bin/env python3
"""Launch the Hanki command-line app from a source checkout."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from hanki.ui.main import app

if __name__ == "__main__":
    app()
