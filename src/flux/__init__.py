"""Flux - household finance ledger and dashboard engine."""

__version__ = "0.1.0"
