"""
Core Infrastructure.

Configuration, logging, exceptions, concurrency and credential handling
shared by the API layer and the CLI.
"""
