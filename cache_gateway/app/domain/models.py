"""
Request models shared by the routing and caching layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping


@dataclass(frozen=True)
class LogicalRequest:
    """One inbound ``GET /api/{upstream}/{resource}?<query>`` call."""

    upstream: str
    resource: str
    params: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_query(cls, upstream: str, resource: str, query: Mapping[str, str]) -> "LogicalRequest":
        params: Dict[str, str] = {str(key): str(value) for key, value in query.items()}
        return cls(upstream=upstream, resource=resource, params=params)
