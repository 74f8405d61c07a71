"""
Cache key derivation.
"""

import json
from typing import Mapping


def canonical_params(params: Mapping[str, str]) -> str:
    """Serialize query parameters independent of insertion order."""
    return json.dumps(dict(params), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def derive_cache_key(namespace: str, endpoint: str, params: Mapping[str, str]) -> str:
    """Build the Redis key for ``endpoint`` called with ``params``.

    ``derive_cache_key("youtube", "/search", {"q": "test"})`` gives
    ``youtube:/search:{"q":"test"}``. Set-equal mappings always produce the
    same key.
    """
    return f"{namespace}:{endpoint}:{canonical_params(params)}"
