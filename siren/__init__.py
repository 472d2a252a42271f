"""Siren safety escalation service."""

__version__ = "0.4.0"
