"""
Domain models for the cache gateway.
"""

from .models import LogicalRequest

__all__ = ["LogicalRequest"]
