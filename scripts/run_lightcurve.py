#!/usr/bin/env python3
"""UCAN light-curve pipeline runner.

Usage:
    python scripts/run_lightcurve.py scripts/user_config.py
    python scripts/run_lightcurve.py scripts/user_config.py --reference-index 3
    python scripts/run_lightcurve.py scripts/user_config.py --correspondences picks.json

Note: User config in scripts/user_config.py, expert defaults in src/ucan/schemas/param.py
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from ucan.cli.run_lightcurve import main


if __name__ == "__main__":
    sys.exit(main())
