"""
Upstream API catalog for the Gateway.
"""

from .catalog import YOUTUBE_ALLOWED_RESOURCES, UpstreamDefinition, build_upstreams

__all__ = ["YOUTUBE_ALLOWED_RESOURCES", "UpstreamDefinition", "build_upstreams"]
