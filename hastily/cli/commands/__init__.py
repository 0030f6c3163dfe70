"""
CLI Commands.

Organized by domain/feature area.
"""

from hastily.cli.commands.auth import app as auth_app
from hastily.cli.commands.models import app as models_app
from hastily.cli.commands.system import app as system_app

__all__ = [
    "auth_app",
    "models_app",
    "system_app",
]
