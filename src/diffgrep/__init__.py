"""Diff Grep.

Search the lines a branch introduces for a pattern, ignoring lines that were
only moved or reformatted.
"""

__version__ = "1.0.0"

__all__ = []
