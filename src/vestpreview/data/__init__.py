"""On-chain data shapes, sources and the cached data service."""

from .models import GlobalState, ProjectConfig, UserClaim
from .service import CachedValue, CacheStatus, VestingDataService, build_service
from .source import ApiDataSource, DataSource, StaticDataSource

__all__ = [
    "ApiDataSource",
    "CacheStatus",
    "CachedValue",
    "DataSource",
    "GlobalState",
    "ProjectConfig",
    "StaticDataSource",
    "UserClaim",
    "VestingDataService",
    "build_service"
]
