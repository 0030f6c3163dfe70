"""
CLI Client Module.

Command-line client built with Typer for working with backend models.

Architecture:
- CLI is a thin presentation layer
- Configuration and credentials are resolved here into an ApiContext
- All model logic lives in hastily.api
- Output is rendered with Rich

Usage:
    python cli.py --help
    python cli.py models get users --filter active=true
    python cli.py models update users --source patch.yaml --filter team=core
    python cli.py auth login
"""
