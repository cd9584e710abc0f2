"""Waitlist Domain - patients waiting for an opening with a provider"""

from .router import router

__all__ = ["router"]
