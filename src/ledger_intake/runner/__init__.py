"""
CLI runner module.

Provides commands:
- analyze: Extract candidate transactions from a file
- toon: Parse informal notes (optionally resolving registry ids)
- prompt: Print the TOON system prompt
- init-config: Write a default config file
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
