"""
pm - tpm plugin management CLI tool.

This is the command-line interface for managing plugins.
Supports installation, removal, update, query and run commands.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
