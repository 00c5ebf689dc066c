"""
Shared HTTP plumbing for the REST gateways.

Every gateway holds a reference to one shared httpx.AsyncClient (owned by the
service container), injects its API key, and translates transport and HTTP
failures into the CivicPulse error kinds.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from civicpulse.config import is_configured
from civicpulse.errors import (
    MalformedResponse,
    UpstreamAuthFailure,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamTimeout,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


class BaseGateway:
    provider = "upstream"
    key_param: Optional[str] = "api_key"
    requires_key = True

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return is_configured(self.api_key)

    def _auth_params(self) -> Dict[str, str]:
        if not self.configured:
            if self.requires_key:
                raise UpstreamAuthFailure(self.provider, "API key not configured")
            return {}
        if self.key_param is None:
            return {}
        return {self.key_param: self.api_key.strip()}

    async def _request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        allow_not_found: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """Issue a request and return the decoded JSON body.

        Returns None for a 404 when `allow_not_found` is set.
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        query.update(self._auth_params())
        url = f"{self.base_url}{path}"

        try:
            response = await self.client.request(
                method,
                url,
                params=query,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(self.provider, f"timed out calling {path}") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailable(self.provider, f"network error calling {path}: {e}") from e

        status = response.status_code
        if status == 404 and allow_not_found:
            return None
        if status in (401, 403):
            raise UpstreamAuthFailure(self.provider, "request rejected", status)
        if status == 429:
            raise UpstreamRateLimited(self.provider, "rate limited", status)
        if status >= 500:
            raise UpstreamUnavailable(self.provider, f"server error {status}", status)
        if status >= 400:
            raise UpstreamError(self.provider, f"unexpected status {status}: {response.text[:200]}", status)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(self.provider, f"invalid JSON from {path}", status) from e

        if not isinstance(data, dict):
            raise MalformedResponse(self.provider, f"expected a JSON object from {path}", status)

        logger.debug("%s %s -> %d", self.provider, path, status)
        return data
