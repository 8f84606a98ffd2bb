"""commonbin - command-line framework core.

Recursive subcommand dispatch with a normalized execution context, and
supervision of the child processes commands launch.
"""

__version__ = "0.1.0"
