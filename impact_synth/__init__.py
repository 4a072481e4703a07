"""Synthetic session generation for the Impact Fund Dashboard."""

__version__ = "1.0.0"
