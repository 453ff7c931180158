"""AUR RPC API client."""
import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import aiohttp

from core.config import AURConfig
from core.errors import NetworkError
from models.version import Version, parse_version

logger = logging.getLogger(__name__)


class RemoteLookup(Protocol):
    """Resolves the upstream version of one package; None means not found."""

    async def __call__(self, name: str) -> Optional[Version]:
        ...


class AURClient:
    """Client for the AUR RPC interface."""

    def __init__(self, config: AURConfig):
        """
        Initialize AUR client.

        Args:
            config: AUR configuration
        """
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Initialize HTTP session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
                headers={'User-Agent': self.config.user_agent}
            )
            logger.debug("AUR client session started")

    async def close(self):
        """Close HTTP session."""
        if self.session:
            await asyncio.wait_for(self.session.close(), timeout=2.0)
            self.session = None
            logger.debug("AUR client session closed")

    async def _request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make API request.

        Args:
            endpoint: API endpoint
            params: Query parameters

        Returns:
            JSON response

        Raises:
            NetworkError: On connection failures, HTTP errors and error bodies
            TimeoutError: If the request times out
        """
        if self.session is None:
            await self.start()

        url = f"{self.config.api_base_url.rstrip('/')}/{endpoint}"

        try:
            logger.debug(f"Requesting: {url} with params: {params}")
            async with self.session.get(url, params=params) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"request to {url} timed out") from e
        except aiohttp.ClientResponseError as e:
            raise NetworkError(f"AUR returned HTTP {e.status}: {e.message}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"AUR request failed: {e}") from e
        except ValueError as e:
            raise NetworkError(f"AUR returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise NetworkError("AUR returned an unexpected response")
        if data.get('type') == 'error':
            raise NetworkError(f"AUR error: {data.get('error', 'unknown error')}")
        return data

    async def lookup(self, name: str) -> Optional[Version]:
        """
        Get the upstream version of a package.

        Args:
            name: Package name

        Returns:
            Version, or None if the AUR does not know the package
        """
        data = await self._request("v5/info", params={"arg[]": name})

        for result in data.get('results') or []:
            if result.get('Name') == name and result.get('Version'):
                try:
                    return parse_version(result['Version'])
                except ValueError as e:
                    raise NetworkError(f"AUR returned invalid version for {name}: {e}") from e

        logger.debug(f"Package '{name}' not found in AUR")
        return None

    __call__ = lookup
