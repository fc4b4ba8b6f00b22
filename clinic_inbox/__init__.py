"""Clinic WhatsApp inbox."""

__version__ = "1.0.0"
