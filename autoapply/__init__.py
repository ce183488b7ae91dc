"""Autonomous job application agent: search, judge, and drive the browser through apply flows."""

__version__ = "0.3.0"
