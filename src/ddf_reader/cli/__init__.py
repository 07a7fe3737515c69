"""
DDF Reader Command-Line Interface
=================================

This package provides the command-line tool for the DDF reader:

- **ddfdump**: Inspect the schema and records of ISO 8211 files

The tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["ddfdump"]
