"""HTTP cache decoration: Cache-Control headers, strong ETags, conditional requests.

Consumed by the HTTP layer. ETags hash only the data payload, never response
metadata (timestamps, cache status), so identical on-chain data always yields
the same tag and revalidation can answer 304.
"""

import hashlib
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .policy import Category, FreshnessPolicy, FreshnessPolicyTable, HttpDirectives, to_http_directives

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {
    'Cache-Control': 'no-store, no-cache, must-revalidate, proxy-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}

_HASHED_BUNDLE = re.compile(r"-[a-zA-Z0-9]{8,}\.(js|css)$")


@dataclass
class HttpDecoration:
    """Status code and headers to apply to a response."""
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def not_modified(self) -> bool:
        return self.status_code == 304


def build_cache_control(directives: HttpDirectives) -> str:
    """Render directives as a Cache-Control header value."""
    parts = [directives.visibility, f"max-age={directives.max_age}"]
    if directives.stale_while_revalidate > 0:
        parts.append(f"stale-while-revalidate={directives.stale_while_revalidate}")
    if directives.immutable:
        parts.append("immutable")
    if directives.must_revalidate:
        parts.append("must-revalidate")
    return ", ".join(parts)


def generate_etag(data: Any) -> str:
    """
    Strong ETag for a payload.

    Args:
        data: String or JSON-serializable payload

    Returns:
        Quoted first 32 hex chars of the SHA-256 of the canonical JSON
    """
    if isinstance(data, str):
        content = data
    else:
        content = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(content.encode()).hexdigest()[:32]
    return f'"{digest}"'


def decorate_response(
    policy: FreshnessPolicy,
    data: Any,
    if_none_match: Optional[str] = None,
    enabled: bool = True
) -> HttpDecoration:
    """
    Compute cache headers for a data response.

    Args:
        policy: Freshness policy of the response's category
        data: Data payload (the part hashed into the ETag)
        if_none_match: Client's If-None-Match header, if any
        enabled: HTTP caching switch; when off, no-store headers are returned

    Returns:
        HttpDecoration with status 304 on an ETag match, else 200
    """
    if not enabled:
        return HttpDecoration(status_code=200, headers=dict(NO_STORE_HEADERS))

    etag = generate_etag(data)
    headers = {
        'Cache-Control': build_cache_control(to_http_directives(policy)),
        'ETag': etag,
        'Vary': 'Accept-Encoding',
    }
    if if_none_match and if_none_match == etag:
        logger.debug("304 Not Modified for ETag %s", etag[1:17])
        return HttpDecoration(status_code=304, headers=headers)
    return HttpDecoration(status_code=200, headers=headers)


class HttpCacheDecorator:
    """Decorates responses by category with the configured policies and switch."""

    def __init__(self, table: Optional[FreshnessPolicyTable] = None, enabled: bool = True):
        self.table = table if table is not None else FreshnessPolicyTable()
        self.enabled = enabled

    @classmethod
    def from_config(cls, config) -> "HttpCacheDecorator":
        """Build from a loaded `Config` (freshness policies and `http_cache.enabled`)."""
        return cls(FreshnessPolicyTable.from_config(config), enabled=config.http_cache.enabled)

    def decorate(
        self,
        category: Union[Category, str],
        data: Any,
        if_none_match: Optional[str] = None
    ) -> HttpDecoration:
        """Headers for a data response of `category`; see `decorate_response`."""
        return decorate_response(self.table.resolve(category), data, if_none_match, enabled=self.enabled)

    def decorate_static(self, path: str) -> Optional[HttpDecoration]:
        """Cache-Control for a static asset, or None when the path has no category."""
        if not self.enabled:
            return HttpDecoration(status_code=200, headers=dict(NO_STORE_HEADERS))
        category = static_asset_category(path)
        if category is None:
            return None
        directives = self.table.http_directives(category)
        return HttpDecoration(status_code=200, headers={'Cache-Control': build_cache_control(directives)})


def static_asset_category(path: str) -> Optional[Category]:
    """
    Category for a static file path.

    index.html always revalidates; content-hashed JS/CSS bundles are immutable.
    Other assets get no category and are left to the HTTP layer.
    """
    path = path.lower()
    if path == "/" or path.endswith("index.html"):
        return Category.NO_CACHE
    if _HASHED_BUNDLE.search(path):
        return Category.IMMUTABLE
    return None
