"""
tpm - plugin manager for command-line tools.

Installs, lists, runs, updates and removes plugins: bundles of an executable
and a plugin.yaml manifest declaring the platforms they support.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
