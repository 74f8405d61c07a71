"""
Adapters package for the Gateway Service.

Contains the HTTP client wrapper for upstream APIs. Adapters encapsulate:

- Base URLs and injected fixed parameters
- Timeouts
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .upstream_client import UpstreamClient

__all__ = ["UpstreamClient"]
