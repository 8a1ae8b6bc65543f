"""Data source adapters for on-chain values.

The service only depends on the DataSource protocol: three async fetches that
return the value shapes in `models` or raise.
"""

import logging
from typing import Dict, Optional, Protocol, Tuple

import httpx

from .models import GlobalState, ProjectConfig, UserClaim

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    """Supplier of project config, global pool state and per-user claim state."""

    async def fetch_project_config(self, project_id: str) -> ProjectConfig:
        ...

    async def fetch_global_state(self, project_id: str) -> GlobalState:
        ...

    async def fetch_user_claim(self, project_id: str, wallet_address: str, max_token_amount: float) -> UserClaim:
        ...


class StaticDataSource:
    """Serves fixed values, e.g. simulation inputs or recorded snapshots.

    Missing entries raise LookupError, like a source that has no data.
    """

    def __init__(
        self,
        configs: Optional[Dict[str, ProjectConfig]] = None,
        global_states: Optional[Dict[str, GlobalState]] = None,
        user_claims: Optional[Dict[Tuple[str, str], UserClaim]] = None
    ):
        self.configs = {k.lower(): v for k, v in (configs or {}).items()}
        self.global_states = {k.lower(): v for k, v in (global_states or {}).items()}
        self.user_claims = {
            (p.lower(), w.lower()): v for (p, w), v in (user_claims or {}).items()
        }

    async def fetch_project_config(self, project_id: str) -> ProjectConfig:
        try:
            return self.configs[project_id.lower()]
        except KeyError:
            raise LookupError(f"No project config for {project_id}") from None

    async def fetch_global_state(self, project_id: str) -> GlobalState:
        try:
            return self.global_states[project_id.lower()]
        except KeyError:
            raise LookupError(f"No global state for {project_id}") from None

    async def fetch_user_claim(self, project_id: str, wallet_address: str, max_token_amount: float) -> UserClaim:
        try:
            return self.user_claims[(project_id.lower(), wallet_address.lower())]
        except KeyError:
            raise LookupError(f"No claim for {wallet_address} in {project_id}") from None


class ApiDataSource:
    """Reads decoded contract values from the intermediate HTTP API.

    Endpoints (relative to the base URL):
        GET  /project/config?tokenAddress=..&seasonId=..
        GET  /project/global-state?tokenAddress=..&seasonId=..
        POST /project/user-claim?tokenAddress=..  {userAddress, maxTokenAmount, seasonId}

    Responses carry the decoded values under `blockchainData`.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, season_id: int = 1):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._season_id = season_id

    @classmethod
    def from_config(cls, config, client: Optional[httpx.AsyncClient] = None) -> "ApiDataSource":
        """Build from a loaded `Config`."""
        settings = config.data_source
        if client is None:
            client = httpx.AsyncClient(timeout=settings.timeout_seconds)
        return cls(client, settings.api_base_url, settings.default_season_id)

    async def _blockchain_data(self, response: httpx.Response) -> dict:
        logger.debug("%s %s -> %d", response.request.method, response.url, response.status_code)
        response.raise_for_status()
        body = response.json()
        data = body.get("blockchainData")
        if data is None:
            raise ValueError(f"Response from {response.url} is missing blockchainData")
        return data

    async def fetch_project_config(self, project_id: str) -> ProjectConfig:
        response = await self._client.get(
            f"{self._base_url}/project/config",
            params={"tokenAddress": project_id, "seasonId": self._season_id},
        )
        return ProjectConfig.from_payload(await self._blockchain_data(response))

    async def fetch_global_state(self, project_id: str) -> GlobalState:
        response = await self._client.get(
            f"{self._base_url}/project/global-state",
            params={"tokenAddress": project_id, "seasonId": self._season_id},
        )
        return GlobalState.from_payload(await self._blockchain_data(response))

    async def fetch_user_claim(self, project_id: str, wallet_address: str, max_token_amount: float) -> UserClaim:
        response = await self._client.post(
            f"{self._base_url}/project/user-claim",
            params={"tokenAddress": project_id},
            json={
                "userAddress": wallet_address,
                "maxTokenAmount": max_token_amount,
                "seasonId": self._season_id,
            },
        )
        return UserClaim.from_payload(await self._blockchain_data(response))

    async def aclose(self) -> None:
        await self._client.aclose()
