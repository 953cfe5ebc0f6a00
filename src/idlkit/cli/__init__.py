"""
idlkit Command-Line Interface
=============================

This package provides the command-line tools for idlkit:

- **idlc**: IDL front end (preprocess, parse, dump or re-emit IDL)

Each tool is a Click application with its own help text.
"""

__all__ = ["idlc"]
