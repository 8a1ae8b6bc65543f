"""Freshness policy - one table mapping each data category to its staleness budget.

Category          | Fresh   | Stale until | Visibility | Notes
------------------+---------+-------------+------------+------------------------------
projectConfig     | 24 h    | 48 h        | public     | Season config rarely changes
globalState       | 1 h     | 2 h         | public     | Loyalty pool moves with claims
userClaim         | 1 h     | 1 h         | private    | Never served stale
immutable         | 1 year  | 1 year      | public     | Hashed static bundles
noCache           | 0       | 0           | public     | index.html, always revalidate

`stale_seconds` is measured from the store time, like `fresh_seconds`, so the
stale-while-revalidate window is `stale_seconds - fresh_seconds`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Union

from ..errors import ConfigurationError


class Category(Enum):
    """Closed set of freshness categories."""
    PROJECT_CONFIG = "projectConfig"
    GLOBAL_STATE = "globalState"
    USER_CLAIM = "userClaim"
    IMMUTABLE = "immutable"
    NO_CACHE = "noCache"

    @property
    def is_data(self) -> bool:
        """Whether the category holds on-chain data (as opposed to static assets)."""
        return self in DATA_CATEGORIES


DATA_CATEGORIES = frozenset({Category.PROJECT_CONFIG, Category.GLOBAL_STATE, Category.USER_CLAIM})


@dataclass(frozen=True)
class FreshnessPolicy:
    """Staleness budget for one category."""
    fresh_seconds: int
    stale_seconds: int
    is_public: bool
    immutable: bool = False
    must_revalidate: bool = False

    @property
    def stale_window_seconds(self) -> int:
        """Seconds an entry may be served stale. Always zero for private data."""
        if not self.is_public:
            return 0
        return max(0, self.stale_seconds - self.fresh_seconds)

    @property
    def store_seconds(self) -> int:
        """Seconds an entry stays servable in a cache."""
        return self.fresh_seconds + self.stale_window_seconds


@dataclass(frozen=True)
class HttpDirectives:
    """Cache-Control directives for one policy."""
    max_age: int
    stale_while_revalidate: int
    visibility: str  # "public" or "private"
    immutable: bool = False
    must_revalidate: bool = False


DEFAULT_POLICIES: Dict[Category, FreshnessPolicy] = {
    Category.PROJECT_CONFIG: FreshnessPolicy(fresh_seconds=86400, stale_seconds=172800, is_public=True),
    Category.GLOBAL_STATE: FreshnessPolicy(fresh_seconds=3600, stale_seconds=7200, is_public=True),
    Category.USER_CLAIM: FreshnessPolicy(fresh_seconds=3600, stale_seconds=3600, is_public=False),
    Category.IMMUTABLE: FreshnessPolicy(
        fresh_seconds=31536000, stale_seconds=31536000, is_public=True, immutable=True
    ),
    Category.NO_CACHE: FreshnessPolicy(
        fresh_seconds=0, stale_seconds=0, is_public=True, must_revalidate=True
    ),
}


def to_http_directives(policy: FreshnessPolicy) -> HttpDirectives:
    """
    Map a freshness policy onto HTTP cache directives.

    max-age is the fresh window; stale-while-revalidate is the stale window,
    clamped to zero for private categories.
    """
    return HttpDirectives(
        max_age=policy.fresh_seconds,
        stale_while_revalidate=policy.stale_window_seconds,
        visibility="public" if policy.is_public else "private",
        immutable=policy.immutable,
        must_revalidate=policy.must_revalidate
    )


class FreshnessPolicyTable:
    """Immutable lookup from category to freshness policy."""

    def __init__(self, policies: Optional[Mapping[Category, FreshnessPolicy]] = None):
        """
        Build the table. Every category must be present.

        Raises:
            ConfigurationError: If a category is missing or a policy is inconsistent
        """
        table = dict(DEFAULT_POLICIES if policies is None else policies)
        missing = [c.value for c in Category if c not in table]
        if missing:
            raise ConfigurationError(f"Missing freshness policies: {', '.join(missing)}")
        for category, policy in table.items():
            if policy.stale_seconds < policy.fresh_seconds:
                raise ConfigurationError(
                    f"{category.value}: stale_seconds ({policy.stale_seconds}) "
                    f"< fresh_seconds ({policy.fresh_seconds})"
                )
        self._policies = table

    @classmethod
    def from_config(cls, config) -> "FreshnessPolicyTable":
        """Build from a loaded `Config`."""
        return cls({
            Category(name): FreshnessPolicy(**entry.model_dump())
            for name, entry in config.freshness.by_category().items()
        })

    def resolve(self, category: Union[Category, str]) -> FreshnessPolicy:
        """
        Look up the policy for a category.

        Args:
            category: Category member or its wire name (e.g. "projectConfig")

        Raises:
            ConfigurationError: If the category is unknown
        """
        if not isinstance(category, Category):
            try:
                category = Category(category)
            except ValueError:
                raise ConfigurationError(f"Unknown freshness category: {category!r}") from None
        return self._policies[category]

    def http_directives(self, category: Union[Category, str]) -> HttpDirectives:
        return to_http_directives(self.resolve(category))
