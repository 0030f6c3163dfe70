#!/usr/bin/env python3
"""
hastily CLI.

Entry point for running the client from a source checkout.

Usage:
    python cli.py --help
    python cli.py models get users --filter active=true
    python cli.py models update users --source patch.yaml --dry-run
    python cli.py auth login

Options:
    --verbose, -v     Enable verbose output
    --debug           Enable debug mode (detailed logging)
    --help            Show help message
"""

import sys
from pathlib import Path

# Add project root to path for absolute imports
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from hastily.cli.app import app  # noqa: E402

if __name__ == "__main__":
    app()
