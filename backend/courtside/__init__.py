"""Doubles round-robin scheduling for pickup badminton sessions."""

__version__ = "0.1.0"
