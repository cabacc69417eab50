"""Data-access client for the PKS Jember complaint intake application."""

__version__ = "0.1.0"
