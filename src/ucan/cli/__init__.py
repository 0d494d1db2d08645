"""Command-line interface modules for the light-curve pipeline.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from ucan.cli.run_lightcurve import run_lightcurve, main

__all__ = ['run_lightcurve', 'main']
