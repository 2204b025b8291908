"""GitHub App authentication.

The app authenticates as itself with a short lived RS256 JWT, exchanges it
for installation access tokens, and keeps one GitHubClient per installation
in a TTL cache. Lookups and insertions share a single lock so concurrent jobs
for the same installation create the client once.
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx
import jwt
from cachetools import TTLCache

from readme_sync.config import Settings
from readme_sync.github.base import GitHubAPIError
from readme_sync.github.client import GITHUB_API_VERSION, GitHubClient


logger = logging.getLogger(__name__)

# GitHub rejects app JWTs valid for more than 10 minutes
JWT_EXPIRATION_SECONDS = 9 * 60
# Tolerate clock drift between us and GitHub
JWT_CLOCK_SKEW_SECONDS = 60


class GitHubApp:
    """Creates and caches installation clients for a GitHub App."""

    def __init__(
        self,
        app_id: int,
        private_key: str,
        base_url: str = "https://api.github.com",
        cache_ttl: float = 300,
        cache_size: int = 1024,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not app_id or not private_key:
            raise ValueError("GitHub App ID and private key must be configured")

        self.app_id = app_id
        self.base_url = base_url
        self._private_key = private_key
        self._timeout = timeout
        self._transport = transport
        self._clients: TTLCache[int, GitHubClient] = TTLCache(maxsize=cache_size, ttl=cache_ttl)
        self._lock = asyncio.Lock()
        self._app_client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> GitHubApp:
        return cls(
            app_id=settings.github_app_id,
            private_key=settings.github_private_key,
            base_url=settings.github_api_url,
            cache_ttl=settings.installation_cache_ttl_seconds,
            cache_size=settings.installation_cache_size,
            timeout=settings.github_timeout_seconds,
        )

    def app_token(self) -> str:
        """Sign a JWT identifying the app itself."""
        now = int(time.time())
        claims = {
            "iat": now - JWT_CLOCK_SKEW_SECONDS,
            "exp": now + JWT_EXPIRATION_SECONDS,
            "iss": str(self.app_id),
        }
        return jwt.encode(claims, self._private_key, algorithm="RS256")

    async def installation_client(self, installation_id: int) -> GitHubClient:
        """Return the authenticated client of an installation, creating it once."""
        async with self._lock:
            client = self._clients.get(installation_id)
            if client is not None:
                return client

            logger.debug(f"Creating new client for installation {installation_id}")
            token = await self._installation_token(installation_id)
            client = GitHubClient(
                token,
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
            self._clients[installation_id] = client
            return client

    async def _installation_token(self, installation_id: int) -> str:
        url = f"/app/installations/{installation_id}/access_tokens"
        try:
            response = await self._app_client.post(
                url,
                headers={"Authorization": f"Bearer {self.app_token()}"},
            )
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"POST {url}: {e}") from e
        if response.is_error:
            raise GitHubAPIError(
                f"POST {url}: {response.status_code} failed getting installation token",
                status_code=response.status_code,
            )
        logger.info(f"Using new installation token for installation {installation_id}")
        return response.json()["token"]

    async def close(self) -> None:
        """Close the app client and every cached installation client."""
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            await client.close()
        await self._app_client.aclose()
