#!/usr/bin/env python3
"""
Spreads League Management CLI

This script provides command-line management functionality for the spreads league.
"""

from league import create_app
from league.cli import cli

if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()
