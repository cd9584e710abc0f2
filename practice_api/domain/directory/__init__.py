"""Directory Domain - read-only patient, provider and appointment type search"""

from .router import router

__all__ = ["router"]
