"""Spreadsheet export and import for scenario scripts and their localizations."""

__version__ = "0.1.0"
