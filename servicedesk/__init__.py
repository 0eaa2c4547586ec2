"""Bilingual service request platform API."""
__version__ = "1.0.0"
