"""Offline-first gateway for the Zewed career assistant."""

__version__ = "2.0.0"
