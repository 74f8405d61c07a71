"""
Upstream catalog and resource validation.

An upstream either restricts callers to a fixed set of resources (YouTube)
or passes any path through beneath its base URL (WordPress).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from shared.config import BaseConfig
from shared.errors import ValidationError


YOUTUBE_ALLOWED_RESOURCES: Tuple[str, ...] = (
    "search",
    "videos",
    "channels",
    "playlists",
    "playlistItems",
)


@dataclass(frozen=True)
class UpstreamDefinition:
    """Static description of one fronted API."""

    name: str
    display_name: str
    base_url: str
    allowed_resources: Optional[Tuple[str, ...]] = None
    fixed_params: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_passthrough(self) -> bool:
        return self.allowed_resources is None

    def resolve_endpoint(self, resource: str) -> str:
        """Validate ``resource`` and return the endpoint path to call.

        Raises ValidationError for resources outside the allow-list, and for
        passthrough paths that try to climb out of the base URL.
        """
        if self.allowed_resources is not None:
            if resource not in self.allowed_resources:
                allowed = ", ".join(self.allowed_resources)
                raise ValidationError(
                    f'Invalid resource: "{resource}". Allowed: {allowed}',
                    details={"resource": resource, "allowed": list(self.allowed_resources)},
                )
            return f"/{resource}"

        path = resource.strip("/")
        if ".." in path.split("/"):
            raise ValidationError(
                f'Invalid path: "{resource}"',
                details={"resource": resource},
            )
        return f"/{path}" if path else ""

    def catalog(self) -> Dict[str, Any]:
        """Describe what callers may request from this upstream."""
        return {
            "message": f"{self.display_name} API Cache Service",
            "available_resources": list(self.allowed_resources or ()),
            "usage": f"/api/{self.name}/:resource?param1=value1&param2=value2",
        }


def build_upstreams(config: BaseConfig) -> Dict[str, UpstreamDefinition]:
    """Upstream definitions keyed by the name used in ``/api/{upstream}``."""
    youtube = UpstreamDefinition(
        name="youtube",
        display_name="YouTube",
        base_url=config.youtube_base_url.rstrip("/"),
        allowed_resources=YOUTUBE_ALLOWED_RESOURCES,
        fixed_params={"key": config.youtube_api_key, "channelId": config.channel_id},
    )
    wordpress = UpstreamDefinition(
        name="wp",
        display_name="WordPress",
        base_url=config.wordpress_base_url.rstrip("/"),
    )
    return {youtube.name: youtube, wordpress.name: wordpress}
