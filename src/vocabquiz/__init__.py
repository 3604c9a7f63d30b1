"""Vocabulary multiple-choice quiz fed from a published spreadsheet."""

__version__ = "0.1.0"
