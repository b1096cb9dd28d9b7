"""
Service directory adapters.
"""

from .static import StaticServiceDirectory

__all__ = ["StaticServiceDirectory"]
