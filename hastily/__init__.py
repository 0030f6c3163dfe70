"""
hastily.

Generic command-line client for REST-style backends.

- api/: Transport, resource model, result aggregation, orchestration, export
- core/: Configuration, logging, exceptions, concurrency, credentials
- cli/: Typer command-line interface
"""

__version__ = "0.3.0"
