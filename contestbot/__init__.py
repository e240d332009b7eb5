"""Telegram contest registration bot with a web administration panel."""

__version__ = "0.1.0"