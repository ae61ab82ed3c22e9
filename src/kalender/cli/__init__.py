"""
Kalender command line interface
"""

from kalender.cli.kalender_cli import cli, main

__all__ = ["cli", "main"]
