"""
CLI module for the Rebrand Tool.

This module provides the command-line interface built on Click and Rich.
"""

from rebrand_tool.cli.main import main

__all__ = ["main"]
