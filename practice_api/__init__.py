"""Recurring appointment scheduling service for medical practices"""

__version__ = "1.0.0"
